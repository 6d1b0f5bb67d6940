"""Pytest configuration.

The package is laid out flat at the repository root. Depending on how pytest
is invoked the root may not be on `sys.path`, which breaks imports like
`from mailthread.modules...` and `from tests.helpers ...`.

This file makes test imports robust by explicitly adding the repo root to
`sys.path` during test collection.
"""

from __future__ import annotations

import sys
from pathlib import Path


REPO_ROOT = Path(__file__).resolve().parents[1]

# NOTE: Insert at the front so local imports win over any similarly named
# installed packages.
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))
