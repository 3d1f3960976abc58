# SPDX-License-Identifier: MIT
"""Pytest fixtures and environment setup.

* Ensure the repository root is importable so tests can resolve in-tree
  packages without installing them.
* Keep the root logger's handlers stable across tests; the CLI installs its
  own handler on every invocation.
"""

from __future__ import annotations

import logging
import pathlib
import sys
from typing import Iterator

import pytest

ROOT = pathlib.Path(__file__).resolve().parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture(autouse=True)
def _restore_root_logger() -> Iterator[None]:
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
