"""
Root conftest.py - shared test configuration.

Puts the tests directory on the path so fixture modules can be loaded
through pytest_plugins from tests/fixtures/.
"""

from pathlib import Path
import sys

import pytest

TESTS_DIR = Path(__file__).parent.resolve()
if str(TESTS_DIR) not in sys.path:
    sys.path.insert(0, str(TESTS_DIR))

pytest_plugins = [
    "fixtures.domain_fixtures",
]


@pytest.fixture(scope="session")
def tests_dir():
    """Path to tests directory."""
    return TESTS_DIR
