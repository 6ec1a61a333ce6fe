from __future__ import annotations

import logging

import pytest


@pytest.fixture(autouse=True)
def _reset_package_logger() -> None:
    package_logger = logging.getLogger("storybundle")
    level = package_logger.level
    yield
    package_logger.setLevel(level)
