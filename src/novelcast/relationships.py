"""Relationship words and the gender they imply for one party.

Rules are keyed by the lowercased relationship word. An :class:`Absolute`
rule fixes the gender of the party the word describes; a
:class:`ConditionalOnPartner` rule looks the implied gender up by the other
party's gender. Unrecognized words and unmatched partner genders yield
``Gender.UNKNOWN``.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Union

from .gender import Gender


@dataclass(frozen=True, slots=True)
class Absolute:
    gender: Gender

    def implies(self, partner: Gender) -> Gender:
        return self.gender


@dataclass(frozen=True, slots=True)
class ConditionalOnPartner:
    by_partner: Mapping[Gender, Gender]

    def implies(self, partner: Gender) -> Gender:
        return self.by_partner.get(partner, Gender.UNKNOWN)


RelationshipRule = Union[Absolute, ConditionalOnPartner]

_OPPOSITE = ConditionalOnPartner(MappingProxyType({Gender.MALE: Gender.FEMALE, Gender.FEMALE: Gender.MALE}))

ROMANTIC_VERBS: tuple[str, ...] = ("loved", "kissed", "embraced", "married", "dating")
FAMILY_ROLES: tuple[str, ...] = ("brother", "sister", "son", "daughter", "father", "mother", "husband", "wife")

RELATIONSHIP_RULES: Mapping[str, RelationshipRule] = MappingProxyType(
    {
        **{verb: _OPPOSITE for verb in ROMANTIC_VERBS},
        "husband": ConditionalOnPartner(MappingProxyType({Gender.FEMALE: Gender.MALE})),
        "wife": ConditionalOnPartner(MappingProxyType({Gender.MALE: Gender.FEMALE})),
        "father": Absolute(Gender.MALE),
        "son": Absolute(Gender.MALE),
        "brother": Absolute(Gender.MALE),
        "mother": Absolute(Gender.FEMALE),
        "daughter": Absolute(Gender.FEMALE),
        "sister": Absolute(Gender.FEMALE),
    }
)

# Word naming one party's role -> word naming the other party's role.
# Parent/child and sibling words have no gender-determined counterpart.
RECIPROCAL_ROLES: Mapping[str, str] = MappingProxyType(
    {"husband": "wife", "wife": "husband", **{verb: verb for verb in ROMANTIC_VERBS}}
)


def infer_gender(word: str, partner_gender: Gender) -> Gender:
    """Gender implied for the party ``word`` describes, given the partner's gender."""
    rule = RELATIONSHIP_RULES.get(word.lower())
    if rule is None:
        return Gender.UNKNOWN
    return rule.implies(Gender.parse(partner_gender))


def infer_from_partner_role(word: str, partner_gender: Gender) -> Gender:
    """Gender implied for a party whose *partner* is described by ``word``.

    ``"Mary's husband John"`` with John male implies Mary female.
    """
    counterpart = RECIPROCAL_ROLES.get(word.lower())
    if counterpart is None:
        return Gender.UNKNOWN
    return infer_gender(counterpart, partner_gender)


__all__ = [
    "Absolute",
    "ConditionalOnPartner",
    "FAMILY_ROLES",
    "RECIPROCAL_ROLES",
    "RELATIONSHIP_RULES",
    "ROMANTIC_VERBS",
    "RelationshipRule",
    "infer_from_partner_role",
    "infer_gender",
]
