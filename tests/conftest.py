"""Shared fixtures for the dicebot tests."""

import random
import sys
from pathlib import Path

import pytest

project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))


class HighRoller(random.Random):
    """Every die lands on its highest face."""

    def randint(self, a: int, b: int) -> int:
        return b


class LowRoller(random.Random):
    """Every die lands on 1."""

    def randint(self, a: int, b: int) -> int:
        return a


@pytest.fixture
def high() -> random.Random:
    return HighRoller()


@pytest.fixture
def low() -> random.Random:
    return LowRoller()


@pytest.fixture
def seeded() -> random.Random:
    return random.Random(1234)
