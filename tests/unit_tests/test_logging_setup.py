"""Tests for the call-tracing decorator."""

import asyncio
import logging

import pytest

from novelcast.logging_setup import TRACE_LEVEL, log_call


@log_call()
def _double(value: int) -> int:
    return value * 2


@log_call()
async def _fail() -> None:
    raise RuntimeError("store down")


def test_log_call_traces_entry_and_exit(caplog) -> None:
    caplog.set_level(logging.DEBUG, logger=__name__)

    assert _double(21) == 42

    messages = [r.getMessage() for r in caplog.records]
    assert any(m.startswith("ENTER _double args=(21,)") for m in messages)
    assert any(m == "EXIT _double -> 42" for m in messages)


def test_log_call_reraises_from_coroutines(caplog) -> None:
    caplog.set_level(logging.DEBUG, logger=__name__)

    with pytest.raises(RuntimeError, match="store down"):
        asyncio.run(_fail())

    assert any(r.levelno == logging.ERROR and "ERROR in _fail" in r.getMessage() for r in caplog.records)


def test_trace_level_is_registered() -> None:
    assert logging.getLevelName(TRACE_LEVEL) == "TRACE"
