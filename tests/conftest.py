"""
Shared fixtures for CosmicMind tests.
"""

import pytest

from cosmicmind import CosmicMind, Goal, SelfConcept
from cosmicmind.storage import ContinuityStore


def make_self_concept(goals=None) -> SelfConcept:
    if goals is None:
        goals = [Goal("Understand greeting pattern", 0.9)]
    return SelfConcept.create(
        identity="TestUnit",
        core_values=["Testing"],
        understanding="I am a test.",
        goals=goals,
    )


@pytest.fixture
def self_concept():
    return make_self_concept()


@pytest.fixture
def mind(self_concept):
    """Ephemeral mind: no continuity store."""
    m = CosmicMind(telos="To pass tests", self_concept=self_concept, agent_id="test-mind")
    yield m
    m.close()


@pytest.fixture
def store(tmp_path):
    return ContinuityStore(tmp_path, "persistent-mind")


@pytest.fixture
def persistent_mind(self_concept, store):
    m = CosmicMind(telos="To pass tests", self_concept=self_concept,
                   agent_id="persistent-mind", store=store)
    yield m
    m.close()
