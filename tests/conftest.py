"""Shared fixtures: sample overview, pillar scores, idea and a seeded store."""

from typing import List

import pytest

from contracts import Idea, PillarId, PillarScore, ProductOverview
from store import InMemoryStore

from support import OWNER_ID, PROJECT_ID, overview_payload


@pytest.fixture
def overview() -> ProductOverview:
    return ProductOverview.model_validate(overview_payload())


@pytest.fixture
def pillar_scores() -> List[PillarScore]:
    return [
        PillarScore(pillar=PillarId.AUDIENCE_FIT, score=60, rationale="Audience is broad and loosely defined"),
        PillarScore(pillar=PillarId.COMPETITION, score=30, rationale="Crowded market with strong incumbents"),
        PillarScore(pillar=PillarId.MARKET_DEMAND, score=80, rationale="Clear demand signals"),
        PillarScore(pillar=PillarId.FEASIBILITY, score=70, rationale="Buildable with known tools"),
        PillarScore(pillar=PillarId.PRICING_POTENTIAL, score=50, rationale="Willingness to pay is unproven"),
    ]


@pytest.fixture
def idea() -> Idea:
    return Idea(title="Pantry Planner", summary="Meal plans from what is already in your fridge.")


@pytest.fixture
def store() -> InMemoryStore:
    store = InMemoryStore()
    store.register_project(PROJECT_ID, OWNER_ID)
    return store
