"""Shared test fixtures for Duet.

Provides sample schemas, in-memory duets, and an in-memory SQLite
engine/session for storage tests.
"""

import pytest

from duet import (
    ArrayType,
    BooleanType,
    EnumType,
    NumberType,
    ObjectType,
    Refinement,
    StringType,
    create_duet,
    field,
)
from duet.schema import DuetSchema
from duet.storage.engine import create_duet_engine, init_db, open_session
from duet.store import SharedState


def trip_fields() -> dict:
    """TripBudget fields: the canonical example used across the suite."""
    return {
        "destination": field(StringType(min_length=1), "Destination", "Tokyo"),
        "budget": field(NumberType(minimum=0, maximum=100000), "Budget", 5000),
        "days": field(NumberType(minimum=1, maximum=365, integer=True), "Days", 7),
        "travelers": field(NumberType(minimum=1, maximum=20, integer=True), "Travelers", 2),
        "style": field(EnumType(("budget", "mid", "luxury")), "Travel style", "mid"),
        "insured": field(BooleanType(), "Insured", False),
    }


def contact_fields() -> dict:
    """Form with a structured field and a refined structured field."""
    return {
        "name": field(StringType(), "Name", ""),
        "count": field(NumberType(minimum=0, maximum=100), "Count", 0),
        "contact": field(
            ObjectType({
                "name": StringType(),
                "email": StringType(),
                "phone": StringType(),
            }),
            "Contact",
            {"name": "", "email": "", "phone": ""},
        ),
        "settings": field(
            ObjectType({
                "count": NumberType(minimum=0, maximum=10),
                "label": StringType().optional(),
            }),
            "Settings",
            {"count": 1},
        ),
        "rating": field(
            ObjectType(
                {"stars": ArrayType(StringType())},
                refinements=(
                    Refinement(lambda v: len(v["stars"]) <= 5, "At most 5 stars"),
                ),
            ),
            "Rating",
            {"stars": []},
        ),
    }


@pytest.fixture
def trip_schema() -> DuetSchema:
    return DuetSchema("TripBudget", trip_fields())


@pytest.fixture
def contact_schema() -> DuetSchema:
    return DuetSchema("ContactForm", contact_fields())


@pytest.fixture
def trip_state(trip_schema) -> SharedState:
    return SharedState(trip_schema)


@pytest.fixture
def trip():
    """In-memory TripBudget duet."""
    d = create_duet("TripBudget", trip_fields())
    yield d
    d.close()


@pytest.fixture
def form():
    """In-memory ContactForm duet."""
    d = create_duet("ContactForm", contact_fields())
    yield d
    d.close()


@pytest.fixture
def engine():
    """In-memory SQLite engine with all tables created."""
    eng = create_duet_engine(":memory:")
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session(engine):
    """Session with automatic rollback after each test."""
    sess = open_session(engine)
    yield sess
    sess.rollback()
    sess.close()
