"""
Shared pytest fixtures for daylight tests.

This module provides common fixtures used across all test files, including:
- Time freezing utilities
- An isolated DAYLIGHT_HOME so log files never leave the test directory
- Task record factories
"""

import pytest
from datetime import date
from freezegun import freeze_time

from daylight.daylight_env import DaylightEnvironment
from daylight.record import TaskRecord


@pytest.fixture(autouse=True)
def daylight_home(tmp_path, monkeypatch):
    """
    Points DAYLIGHT_HOME at a per-test directory.

    Engine code writes log entries under the runtime home; this keeps
    them inside tmp_path.
    """
    home = tmp_path / "daylight-home"
    monkeypatch.setenv("DAYLIGHT_HOME", str(home))
    return home


@pytest.fixture
def frozen_time():
    """
    Freezes time to 2026-02-05 09:00:00, the reference "today" used by
    the classification scenarios.

    Usage:
        def test_something(frozen_time):
            assert date.today() == date(2026, 2, 5)
            frozen_time.tick(delta=timedelta(days=1))
    """
    with freeze_time("2026-02-05 09:00:00") as frozen:
        yield frozen


@pytest.fixture
def freeze_at():
    """
    Returns a function that freezes time to a specific datetime.

    Usage:
        def test_something(freeze_at):
            with freeze_at("2026-03-01 23:59:00"):
                ...
    """
    return freeze_time


@pytest.fixture
def today():
    return date(2026, 2, 5)


@pytest.fixture
def test_env():
    """
    Provides a DaylightEnvironment rooted at the per-test home.
    """
    env = DaylightEnvironment()
    env.ensure(init_config=True)
    return env


@pytest.fixture
def record_factory():
    """
    Provides a factory for TaskRecord instances from frontmatter-style
    keyword arguments.

    Usage:
        def test_something(record_factory):
            record = record_factory(scheduled="2026-02-01")
            recurring = record_factory(
                recurrence="DTSTART:20260201;FREQ=DAILY",
                isSeriesTemplate=True,
                active_instances=["2026-02-05"],
            )
    """

    def _create(title: str = "task", **frontmatter) -> TaskRecord:
        return TaskRecord.from_frontmatter(frontmatter, title=title)

    return _create


@pytest.fixture
def series_factory(record_factory):
    """
    Factory for series templates: a recurrence string plus instance
    collections given as lists of 'YYYY-MM-DD' strings.
    """

    def _create(
        recurrence: str = "DTSTART:20260201;FREQ=DAILY",
        title: str = "series",
        **frontmatter,
    ) -> TaskRecord:
        frontmatter.setdefault("isSeriesTemplate", True)
        return record_factory(title=title, recurrence=recurrence, **frontmatter)

    return _create
