from __future__ import annotations

import os
import sys
import tempfile
from pathlib import Path

# Ensure src/ is on sys.path so tests import novelcast without installing it.
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

# CLI tests configure logging; keep log files out of the working tree.
os.environ.setdefault("NOVELCAST_LOG_DIR", tempfile.mkdtemp(prefix="novelcast-logs-"))


import pytest


@pytest.fixture
def anyio_backend():
    # The code under test is built on asyncio (asyncio.wait_for / asyncio.run).
    return "asyncio"
