"""Shared fixtures for the retail_reports test suite."""

from datetime import date

import pytest

from retail_reports import (
    FixedClock,
    ReportEngine,
    ReportingSettings,
    TableStore,
    create_sample_store,
)


TODAY = date(2024, 1, 20)


@pytest.fixture
def clock() -> FixedClock:
    """Clock fixed a few days after the sample sales."""
    return FixedClock(TODAY)


@pytest.fixture
def store(clock: FixedClock) -> TableStore:
    """Empty store."""
    return TableStore(clock=clock)


@pytest.fixture
def sample_store(clock: FixedClock) -> TableStore:
    """Store loaded with the sample dataset."""
    return create_sample_store(clock=clock)


@pytest.fixture
def engine(sample_store: TableStore) -> ReportEngine:
    """Report engine over the sample dataset with default settings."""
    return ReportEngine(sample_store, settings=ReportingSettings())
