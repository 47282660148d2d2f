"""Tests for sales_kpi.kpi_engine.metrics: KPI aggregation and report."""
import json
from datetime import date, datetime

import pytest

from sales_kpi.kpi_engine.metrics import (
    SalesKPIMetrics,
    build_kpi_report,
    calculate_compliance,
    calculate_period_days,
    classify_day,
)
from sales_kpi.kpi_engine.models import KPISettings, PerformanceSnapshot, UserRecord


# ---------------------------------------------------------------------------
# Pure calculations
# ---------------------------------------------------------------------------

class TestCalculateCompliance:

    def test_ratio_rounded(self):
        assert calculate_compliance(2, 30) == 7
        assert calculate_compliance(4, 14) == 29

    def test_zero_target_with_effort_is_bonus(self):
        assert calculate_compliance(3, 0) == 100

    def test_zero_target_without_effort(self):
        assert calculate_compliance(0, 0) == 0

    def test_over_achievement_not_capped(self):
        assert calculate_compliance(21, 7) == 300


class TestClassifyDay:

    def test_default_minimum(self):
        assert classify_day(0, 1) == 'missed'
        assert classify_day(1, 1) == 'met'
        assert classify_day(4, 1) == 'met'

    def test_partial_below_higher_minimum(self):
        assert classify_day(1, 2) == 'partial'
        assert classify_day(2, 2) == 'met'


class TestCalculatePeriodDays:

    def test_window_ends_on_as_of(self, as_of):
        days = calculate_period_days(as_of, 7)
        assert days[0] == date(2026, 10, 11)
        assert days[-1] == as_of
        assert len(days) == 7

    def test_window_crosses_month_boundary(self):
        days = calculate_period_days(date(2026, 11, 2), 7)
        assert days[0] == date(2026, 10, 27)


# ---------------------------------------------------------------------------
# Full report for a manager's team
# ---------------------------------------------------------------------------

@pytest.fixture
def team_data(team_users, make_snapshot, make_event, make_target):
    """
    Manager view on 17 Oct 2026 (window 11-17 Oct):

    Asha  - window walk-ins 4, MTD closures 2, target 60/4
    Bilal - meetings only, no target
    Chen  - another team, must never show up
    """
    snapshots = [
        make_snapshot('asha@example.com', date(2026, 10, 17), walkins=2, meetings=1, followups=1),
        make_snapshot('asha@example.com', date(2026, 10, 12), walkins=1),
        make_snapshot('asha@example.com', date(2026, 10, 3), walkins=5, bookings=1),
        make_snapshot('bilal@example.com', date(2026, 10, 14), meetings=2),
        make_snapshot('chen@example.com', date(2026, 10, 17), walkins=10, bookings=5),
        make_snapshot('asha@example.com', 'bad-date', walkins=50),
    ]
    events = [
        make_event('asha@example.com', date(2026, 10, 17), 'walk_in'),
        make_event('asha@example.com', date(2026, 10, 16), 'walk_in',
                   ro_verification_status='pending'),
        make_event('asha@example.com', date(2026, 10, 5), 'closure'),
        make_event('chen@example.com', date(2026, 10, 17), 'closure'),
        make_event('asha@example.com', date(2026, 9, 30), 'closure'),
    ]
    targets = [
        make_target('asha@example.com', walkins=60, bookings=4),
        make_target('asha@example.com', walkins=10, bookings=1, project_id='P1'),
        make_target('chen@example.com', walkins=30, bookings=3),
    ]
    return dict(users=team_users, snapshots=snapshots, events=events,
                targets=targets, groups=[])


@pytest.fixture
def manager_report(team_data, manager, as_of, settings):
    metrics = SalesKPIMetrics(settings=settings, **team_data)
    return metrics.build_report(manager, as_of)


def _stats(report, email):
    return next(s for s in report.user_stats if s.user_email == email)


class TestUserStats:

    def test_visible_users_in_order(self, manager_report):
        assert [s.user_email for s in manager_report.user_stats] == [
            'meera@example.com', 'asha@example.com', 'bilal@example.com',
        ]

    def test_effort_metrics_over_tracking_window(self, manager_report):
        asha = _stats(manager_report, 'asha@example.com')
        # snapshots 2 + 1, verified walk-in event 1; pending event ignored
        assert asha.walk_ins_count == 4
        assert asha.meetings_count == 1
        assert asha.followups_count == 1

    def test_closures_month_to_date(self, manager_report):
        asha = _stats(manager_report, 'asha@example.com')
        # snapshot booking on 3 Oct + closure event on 5 Oct; 30 Sep excluded
        assert asha.closures_count == 2

    def test_targets_scaled_and_compliance(self, manager_report):
        asha = _stats(manager_report, 'asha@example.com')
        assert asha.targets.walk_in_target == 14  # ceil(60 * 7 / 30)
        assert asha.targets.closure_target == 4
        assert asha.walk_in_compliance == 29      # round(4 / 14 * 100)
        assert asha.closure_compliance == 50
        assert asha.target_source == 'individual'

    def test_unassigned_user_gets_scaled_default(self, manager_report):
        bilal = _stats(manager_report, 'bilal@example.com')
        assert bilal.targets.walk_in_target == 7
        assert bilal.targets.closure_target == 3
        assert bilal.walk_in_compliance == 0
        assert bilal.closure_compliance == 0
        assert bilal.target_source == 'default'

    def test_daily_progress(self, manager_report):
        asha = _stats(manager_report, 'asha@example.com')
        assert [(d.date, d.count, d.status) for d in asha.daily_progress] == [
            ('2026-10-11', 0, 'missed'),
            ('2026-10-12', 1, 'met'),
            ('2026-10-13', 0, 'missed'),
            ('2026-10-14', 0, 'missed'),
            ('2026-10-15', 0, 'missed'),
            ('2026-10-16', 0, 'missed'),
            ('2026-10-17', 3, 'met'),
        ]
        assert asha.days_with_walk_in == 2


class TestTeamTotals:

    def test_team_targets_use_configured_records_only(self, manager_report):
        totals = manager_report.totals
        assert totals.team_walk_in_target == 60
        assert totals.team_booking_target == 4

    def test_month_to_date_and_forecast(self, manager_report):
        totals = manager_report.totals
        assert totals.mtd_bookings == 2
        assert totals.mtd_performance_pct == 50
        assert totals.mtd_walk_ins == 9
        assert totals.forecast_bookings == 4    # 2 / 17 * 31 = 3.65
        assert totals.forecast_walk_ins == 16   # 9 / 17 * 31 = 16.4

    def test_today(self, manager_report):
        totals = manager_report.totals
        assert totals.today_walk_ins == 3
        assert totals.today_meetings == 1
        assert totals.today_followups == 1
        assert totals.today_closures == 0

    def test_window_sums(self, manager_report):
        totals = manager_report.totals
        assert totals.walk_ins == 4
        assert totals.meetings == 3
        assert totals.followups == 1
        assert totals.closures == 2

    def test_chart_data(self, manager_report):
        chart = {p.date: p for p in manager_report.chart_data}
        assert list(chart) == [
            '2026-10-11', '2026-10-12', '2026-10-13', '2026-10-14',
            '2026-10-15', '2026-10-16', '2026-10-17',
        ]
        assert chart['2026-10-12'].walk_ins == 1
        assert chart['2026-10-14'].meetings == 2
        assert chart['2026-10-17'].walk_ins == 3
        assert chart['2026-10-17'].closures == 0

    def test_underperformers(self, manager_report):
        assert manager_report.underperformers == (
            'meera@example.com', 'asha@example.com', 'bilal@example.com',
        )

    def test_period(self, manager_report, as_of):
        assert manager_report.period == 7
        assert manager_report.as_of == as_of


# ---------------------------------------------------------------------------
# Report-wide properties
# ---------------------------------------------------------------------------

class TestReportProperties:

    def test_idempotent(self, team_data, manager, as_of, settings):
        metrics = SalesKPIMetrics(settings=settings, **team_data)
        first = metrics.build_report(manager, as_of)
        second = metrics.build_report(manager, as_of)
        assert first == second
        assert json.dumps(first.to_dict()) == json.dumps(second.to_dict())

    def test_fresh_engine_gives_same_output(self, team_data, manager, as_of, settings):
        one = SalesKPIMetrics(settings=settings, **team_data).build_report(manager, as_of)
        two = SalesKPIMetrics(settings=settings, **team_data).build_report(manager, as_of)
        assert one.to_dict() == two.to_dict()

    def test_visibility_containment(self, manager_report):
        payload = json.dumps(manager_report.to_dict())
        assert 'chen@example.com' not in payload
        assert manager_report.totals.today_walk_ins == 3

    def test_unverified_events_never_count(self, team_users, admin, as_of, settings, make_event):
        events = [
            make_event('asha@example.com', as_of, 'walk_in', ro_verification_status=status,
                       builder_email=builder, builder_verification_status=builder_status)
            for status in ('pending', 'not_verified', None)
            for builder, builder_status in ((None, None), ('b@x.com', 'verified'))
        ] + [
            make_event('asha@example.com', as_of, 'closure', ro_verification_status=status)
            for status in ('pending', 'not_verified')
        ]
        report = build_kpi_report(admin, team_users, [], events, [], [], as_of, settings)
        assert report.totals.walk_ins == 0
        assert report.totals.closures == 0
        assert report.totals.today_walk_ins == 0
        assert report.totals.mtd_bookings == 0
        assert all(p.walk_ins == 0 for p in report.chart_data)

    def test_executive_report_contains_only_self(self, team_data, as_of, settings):
        viewer = UserRecord(email='bilal@example.com', job_title='Sales Executive')
        report = SalesKPIMetrics(settings=settings, **team_data).build_report(viewer, as_of)
        assert [s.user_email for s in report.user_stats] == ['bilal@example.com']
        assert report.totals.mtd_bookings == 0
        assert report.totals.team_booking_target == 0
        assert report.totals.mtd_performance_pct == 0


# ---------------------------------------------------------------------------
# Targets, bonus rule and scaling through the engine
# ---------------------------------------------------------------------------

class TestTargetPolicies:

    def test_end_to_end_default_target_long_window(self, admin, as_of, make_snapshot):
        users = [UserRecord(email='a@example.com'), UserRecord(email='b@example.com')]
        snapshots = [make_snapshot('a@example.com', date(2026, 10, 1), walkins=2)]
        settings = KPISettings(tracking_period_days=30)

        report = build_kpi_report(admin, users, snapshots, [], [], [], as_of, settings)

        a = _stats(report, 'a@example.com')
        assert a.targets.walk_in_target == 30
        assert a.walk_ins_count == 2
        assert a.walk_in_compliance == 7

    def test_nineteen_day_window_scales(self, admin, as_of):
        users = [UserRecord(email='a@example.com')]
        report = build_kpi_report(admin, users, [], [], [], [], as_of,
                                  KPISettings(tracking_period_days=19))
        assert report.user_stats[0].targets.walk_in_target == 19

    def test_twenty_day_window_does_not_scale(self, admin, as_of):
        users = [UserRecord(email='a@example.com')]
        report = build_kpi_report(admin, users, [], [], [], [], as_of,
                                  KPISettings(tracking_period_days=20))
        assert report.user_stats[0].targets.walk_in_target == 30

    def test_zero_target_bonus(self, admin, as_of, settings, make_snapshot, make_target):
        users = [UserRecord(email='a@example.com'), UserRecord(email='b@example.com')]
        snapshots = [make_snapshot('a@example.com', as_of, walkins=1, bookings=1)]
        targets = [
            make_target('a@example.com', walkins=0, bookings=0),
            make_target('b@example.com', walkins=0, bookings=0),
        ]
        report = build_kpi_report(admin, users, snapshots, [], targets, [], as_of, settings)

        a = _stats(report, 'a@example.com')
        b = _stats(report, 'b@example.com')
        assert (a.walk_in_compliance, a.closure_compliance) == (100, 100)
        assert (b.walk_in_compliance, b.closure_compliance) == (0, 0)
        # Zero targets are not flagged
        assert report.underperformers == ()

    def test_default_target_with_enough_effort_reads_full(self, admin, as_of, settings,
                                                          make_snapshot):
        users = [UserRecord(email='a@example.com')]
        snapshots = [make_snapshot('a@example.com', as_of, walkins=7)]
        report = build_kpi_report(admin, users, snapshots, [], [], [], as_of, settings)
        assert report.user_stats[0].walk_in_compliance == 100

    def test_group_target_applies_per_user_not_team(self, admin, as_of, settings,
                                                    make_target, make_group):
        users = [UserRecord(email='a@example.com')]
        targets = [make_target(group_id='g1', walkins=90, bookings=9)]
        groups = [make_group('g1', 'a@example.com')]
        report = build_kpi_report(admin, users, [], [], targets, groups, as_of, settings)

        stats = report.user_stats[0]
        assert stats.targets.walk_in_target == 21   # ceil(90 * 7 / 30)
        assert stats.targets.closure_target == 9
        assert stats.target_source == 'group'
        assert report.totals.team_booking_target == 0


# ---------------------------------------------------------------------------
# Input handling
# ---------------------------------------------------------------------------

class TestInputs:

    def test_accepts_raw_dicts_and_datetime(self):
        report = build_kpi_report(
            viewer={'email': 'boss@example.com', 'role': 'admin'},
            users=[{'email': 'a@example.com', 'full_name': 'A'}],
            snapshots=[{'user_email': 'a@example.com', 'date': '2026-10-17',
                        'walkins_count': '3'}],
            events=[{'user_email': 'a@example.com', 'date': '2026-10-17T11:00:00',
                     'type': 'walk_in', 'ro_verification_status': 'verified'}],
            targets=[{'user_email': 'a@example.com', 'walkin_target': 30,
                      'booking_count_target': None, 'month': '2026-10'}],
            groups=[],
            as_of=datetime(2026, 10, 17, 15, 0),
            settings=KPISettings(),
        )
        stats = report.user_stats[0]
        assert stats.full_name == 'A'
        assert stats.walk_ins_count == 4
        assert stats.targets.closure_target == 0
        assert report.as_of == date(2026, 10, 17)

    def test_min_walkins_per_day_setting(self, admin, as_of, make_snapshot):
        users = [UserRecord(email='a@example.com')]
        snapshots = [make_snapshot('a@example.com', as_of, walkins=1)]
        settings = KPISettings(min_walkins_per_day=2)
        report = build_kpi_report(admin, users, snapshots, [], [], [], as_of, settings)
        assert report.user_stats[0].daily_progress[-1].status == 'partial'
        assert report.user_stats[0].days_with_walk_in == 0

    def test_invalid_settings_rejected(self):
        with pytest.raises(ValueError):
            KPISettings(tracking_period_days=0)
        with pytest.raises(ValueError):
            KPISettings(min_walkins_per_day=-1)
        with pytest.raises(ValueError):
            KPISettings(min_walkins_per_day=0)

    def test_no_users(self, admin, as_of, settings):
        report = build_kpi_report(admin, [], [], [], [], [], as_of, settings)
        assert report.user_stats == ()
        assert report.totals.walk_ins == 0
        assert len(report.chart_data) == 7

    def test_user_stats_frame(self, manager_report):
        df = manager_report.user_stats_frame()
        assert list(df['user_email']) == [
            'meera@example.com', 'asha@example.com', 'bilal@example.com',
        ]
        assert df.loc[df['user_email'] == 'asha@example.com', 'walk_in_target'].iloc[0] == 14

    def test_settings_carried_into_report(self, admin, as_of):
        settings = KPISettings(min_closures_per_period=2)
        report = build_kpi_report(admin, [], [], [], [], [], as_of, settings)
        assert report.settings is settings
        assert report.to_dict()['settings']['min_closures_per_period'] == 2

    def test_non_finite_snapshot_count_does_not_break_report(self, admin, as_of):
        users = [UserRecord(email='a@example.com')]
        snapshots = [PerformanceSnapshot(
            user_email='a@example.com', date='2026-10-17',
            walkins_count=float('inf'), meetings_count=2,
        )]
        report = build_kpi_report(admin, users, snapshots, [], [], [], as_of, KPISettings())
        assert report.user_stats[0].walk_ins_count == 0
        assert report.user_stats[0].meetings_count == 2
