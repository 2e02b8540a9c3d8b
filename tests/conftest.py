from __future__ import annotations

import logging
from pathlib import Path

import pytest

from tests._fixtures.source_tree import SourceTree


@pytest.fixture
def source_tree(tmp_path: Path) -> SourceTree:
    """Provide a reusable configuration source rooted at the pytest tmp_path."""
    return SourceTree(tmp_path)


@pytest.fixture(autouse=True)
def _reset_ciconfig_logger():
    yield
    logger = logging.getLogger("ciconfig")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
