import os
import sys

import pytest


# Ensure repository src directory is on sys.path for tests
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
SRC = os.path.join(ROOT, "src")
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from threshold_eg.context import make_election_context  # noqa: E402
from threshold_eg.group import hash_elems  # noqa: E402
from threshold_eg.guardian import Guardian  # noqa: E402
from threshold_eg.mediator import run_key_ceremony  # noqa: E402

NUMBER_OF_GUARDIANS = 3
QUORUM = 2


@pytest.fixture
def guardians():
    return [Guardian(f"guardian-{i}", i, QUORUM) for i in range(1, NUMBER_OF_GUARDIANS + 1)]


@pytest.fixture
def ceremony(guardians):
    result = run_key_ceremony(guardians, QUORUM)
    assert result is not None
    return result


@pytest.fixture
def context(ceremony):
    return make_election_context(
        NUMBER_OF_GUARDIANS, QUORUM, ceremony.joint_key, hash_elems("test-manifest")
    )
