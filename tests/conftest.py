"""Shared test fixtures."""
from datetime import date

import pytest

from sales_kpi.kpi_engine.models import (
    ActivityEvent,
    GroupRecord,
    KPISettings,
    PerformanceSnapshot,
    TargetRecord,
    UserRecord,
)


AS_OF = date(2026, 10, 17)


@pytest.fixture
def as_of():
    """Fixed "today" for every report: 17 Oct 2026 (31-day month)."""
    return AS_OF


@pytest.fixture
def settings():
    """Default tracking settings (7-day window, 1 walk-in per day)."""
    return KPISettings()


@pytest.fixture
def manager():
    return UserRecord(
        email='meera@example.com',
        job_title='Sales Manager',
        full_name='Meera Manager',
    )


@pytest.fixture
def team_users(manager):
    """Manager + two direct reports + one user on another team."""
    return [
        manager,
        UserRecord(
            email='Asha@Example.com',
            reports_to='meera@example.com',
            job_title='Sales Executive',
            full_name='Asha',
        ),
        UserRecord(
            email='bilal@example.com',
            reports_to='MEERA@example.com',
            job_title='Sales Executive',
            full_name='Bilal',
        ),
        UserRecord(
            email='chen@example.com',
            reports_to='other.manager@example.com',
            job_title='Sales Executive',
            full_name='Chen',
        ),
    ]


@pytest.fixture
def admin():
    return UserRecord(email='root@example.com', role='admin', job_title='Director')


@pytest.fixture
def make_snapshot():
    """Factory fixture for PerformanceSnapshot records."""
    def _make(user_email='asha@example.com', day=AS_OF, **counts):
        return PerformanceSnapshot(
            user_email=user_email,
            date=day.isoformat() if isinstance(day, date) else day,
            walkins_count=counts.get('walkins', 0),
            meetings_count=counts.get('meetings', 0),
            followups_count=counts.get('followups', 0),
            bookings_count=counts.get('bookings', 0),
        )
    return _make


@pytest.fixture
def make_event():
    """Factory fixture for ActivityEvent records (verified by default)."""
    def _make(user_email='asha@example.com', day=AS_OF, type='walk_in', **overrides):
        fields = dict(
            user_email=user_email,
            date=day.isoformat() if isinstance(day, date) else day,
            type=type,
            status=None,
            builder_email=None,
            builder_verification_status=None,
            ro_verification_status='verified',
        )
        fields.update(overrides)
        return ActivityEvent(**fields)
    return _make


@pytest.fixture
def make_target():
    """Factory fixture for TargetRecord records (October 2026)."""
    def _make(user_email=None, walkins=0, bookings=0, **overrides):
        fields = dict(
            user_email=user_email,
            group_id=None,
            project_id=None,
            walkin_target=walkins,
            booking_count_target=bookings,
            month='2026-10',
        )
        fields.update(overrides)
        return TargetRecord(**fields)
    return _make


@pytest.fixture
def make_group():
    def _make(id, *members):
        return GroupRecord(id=id, members=frozenset(members))
    return _make


@pytest.fixture
def reload_config(monkeypatch):
    """
    Re-read the config singleton after monkeypatching the environment.

    The singleton is reloaded again at teardown, once monkeypatch has
    restored the original environment.
    """
    from sales_kpi.config import config

    yield config.reload
    monkeypatch.undo()
    config.reload()
