# sales_kpi/kpi_engine/metrics.py
"""
KPI Aggregation for Sales Performance

Combines reconciled snapshots/events with resolved targets:
- Effort metrics (walk-ins, meetings, follow-ups) over the tracking window
- Outcome metrics (closures/bookings) month-to-date
- Daily walk-in progress (met / partial / missed)
- Walk-in and closure compliance per user
- Team totals, today's figures, run-rate forecasts
- Daily chart series and underperformance alerts

The current date is always passed in (as_of); nothing reads the clock.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

import pandas as pd

from ..config import config
from .access_control import AccessControl
from .constants import (
    DATE_KEY_FORMAT,
    DAY_STATUS_MET,
    DAY_STATUS_MISSED,
    DAY_STATUS_PARTIAL,
    MONTH_KEY_FORMAT,
)
from .data_processor import ReconciledRecords, RecordReconciler
from .forecast import forecast_for
from .helpers import normalize_email, round_half_up
from .models import (
    ActivityEvent,
    ChartPoint,
    DailyProgress,
    GroupRecord,
    KPIReport,
    KPISettings,
    PerformanceSnapshot,
    TargetRecord,
    TeamTotals,
    UserRecord,
    UserStats,
    UserTargets,
    coerce_records,
)
from .targets import ResolvedTarget, TargetResolver, TeamTargets, scale_walkin_target

logger = logging.getLogger(__name__)

COUNT_COLUMNS = ['walk_ins', 'meetings', 'followups', 'closures']


# =============================================================================
# PURE CALCULATIONS
# =============================================================================

def calculate_compliance(count: int, target: int) -> int:
    """
    Compliance percentage of count against target.

    A zero target reads 100% when anything was logged and 0% otherwise,
    so an unset goal never shows as an unmeetable 0%.

    Example:
        >>> calculate_compliance(2, 30)
        7
        >>> calculate_compliance(3, 0)
        100
    """
    if target > 0:
        return round_half_up(count / target * 100)
    return 100 if count > 0 else 0


def classify_day(count: int, min_per_day: int) -> str:
    """Daily walk-in status: met, partial or missed."""
    if count >= min_per_day:
        return DAY_STATUS_MET
    if count > 0:
        return DAY_STATUS_PARTIAL
    return DAY_STATUS_MISSED


def calculate_period_days(as_of: date, tracking_period_days: int) -> List[date]:
    """Calendar days of the tracking window, ending on as_of."""
    start = as_of - timedelta(days=tracking_period_days - 1)
    return [start + timedelta(days=i) for i in range(tracking_period_days)]


def aggregate_counts(
    records: ReconciledRecords,
    keys: List[str]
) -> Dict[Any, Dict[str, int]]:
    """
    Sum walk-ins, meetings, follow-ups and closures from both sources.

    Snapshots contribute their count fields. Each verified event adds one
    walk-in (type walk_in) or one closure (type closure or status
    closed_won).

    Args:
        records: Reconciled window
        keys: Grouping columns, e.g. ['email_key'] or ['email_key', 'date_str']

    Returns:
        Dict keyed by group value (tuple for multiple keys) of count dicts
    """
    frames = []

    snaps = records.snapshots
    if not snaps.empty:
        snap_counts = snaps[keys].copy()
        snap_counts['walk_ins'] = snaps['walkins_count']
        snap_counts['meetings'] = snaps['meetings_count']
        snap_counts['followups'] = snaps['followups_count']
        snap_counts['closures'] = snaps['bookings_count']
        frames.append(snap_counts)

    events = records.events
    if not events.empty:
        event_counts = events[keys].copy()
        event_counts['walk_ins'] = events['is_walk_in'].astype(int)
        event_counts['meetings'] = 0
        event_counts['followups'] = 0
        event_counts['closures'] = events['is_closure'].astype(int)
        frames.append(event_counts)

    if not frames:
        return {}

    combined = pd.concat(frames, ignore_index=True)
    grouped = combined.groupby(keys)[COUNT_COLUMNS].sum()

    return {
        idx: {col: int(row[col]) for col in COUNT_COLUMNS}
        for idx, row in grouped.iterrows()
    }


def total_counts(records: ReconciledRecords) -> Dict[str, int]:
    """Counts summed across every user in the window."""
    totals = {col: 0 for col in COUNT_COLUMNS}
    for counts in aggregate_counts(records, ['email_key']).values():
        for col in COUNT_COLUMNS:
            totals[col] += counts[col]
    return totals


def _empty_counts() -> Dict[str, int]:
    return {col: 0 for col in COUNT_COLUMNS}


# =============================================================================
# AGGREGATION ENGINE
# =============================================================================

class SalesKPIMetrics:
    """
    KPI aggregation for the sales team dashboard.

    Usage:
        metrics = SalesKPIMetrics(users, snapshots, events, targets, groups)

        report = metrics.build_report(viewer, as_of=date(2026, 10, 17))
        report.totals.forecast_bookings
        report.user_stats_frame()
    """

    def __init__(
        self,
        users: Iterable[Union[UserRecord, Dict]],
        snapshots: Iterable[Union[PerformanceSnapshot, Dict]],
        events: Iterable[Union[ActivityEvent, Dict]],
        targets: Iterable[Union[TargetRecord, Dict]] = (),
        groups: Iterable[Union[GroupRecord, Dict]] = (),
        settings: Optional[KPISettings] = None
    ):
        """
        Initialize with data.

        Args:
            users: Candidate users (sales department)
            snapshots: Daily performance snapshots
            events: Logged activity events
            targets: Target records (any month; filtered per report)
            groups: Group records for group-level targets
            settings: Tracking settings; defaults to the configured values
        """
        self.users = coerce_records(users, UserRecord)
        self.targets = coerce_records(targets, TargetRecord)
        self.groups = coerce_records(groups, GroupRecord)
        self.settings = settings if settings is not None else config.get_kpi_settings()

        self.reconciler = RecordReconciler(
            coerce_records(snapshots, PerformanceSnapshot),
            coerce_records(events, ActivityEvent),
        )

    # =========================================================================
    # MAIN ENTRY POINT
    # =========================================================================

    def build_report(
        self,
        viewer: Union[UserRecord, Dict],
        as_of: Union[date, datetime],
        is_manager: Optional[bool] = None
    ) -> KPIReport:
        """
        Build the KPI report for one viewer.

        Args:
            viewer: The user viewing the dashboard
            as_of: Current date (end of the tracking window and of MTD)
            is_manager: Optional external manager classification

        Returns:
            KPIReport scoped to the users the viewer may see
        """
        if not isinstance(viewer, UserRecord):
            viewer = UserRecord.from_dict(viewer)
        if isinstance(as_of, datetime):
            as_of = as_of.date()

        settings = self.settings

        access = AccessControl(viewer, is_manager=is_manager)
        visible_users = access.get_visible_users(self.users)
        visible_emails = [normalize_email(u.email) for u in visible_users]

        period_days = calculate_period_days(as_of, settings.tracking_period_days)
        window = self.reconciler.reconcile(period_days[0], as_of, visible_emails)
        mtd = self.reconciler.reconcile(as_of.replace(day=1), as_of, visible_emails)
        today = self.reconciler.reconcile_day(as_of, visible_emails)

        resolver = TargetResolver(
            self.targets,
            self.groups,
            month=as_of.strftime(MONTH_KEY_FORMAT),
            default_walkin_target=settings.default_walkin_target,
            default_booking_target=settings.default_booking_target,
        )

        window_by_user = aggregate_counts(window, ['email_key'])
        mtd_by_user = aggregate_counts(mtd, ['email_key'])
        daily_by_user = aggregate_counts(window, ['email_key', 'date_str'])

        user_stats = tuple(
            self._build_user_stats(
                user=user,
                window_counts=window_by_user.get(email, _empty_counts()),
                mtd_counts=mtd_by_user.get(email, _empty_counts()),
                daily_counts=daily_by_user,
                period_days=period_days,
                resolved=resolver.resolve(email),
            )
            for user, email in zip(visible_users, visible_emails)
        )

        totals = self._calculate_totals(
            user_stats=user_stats,
            mtd=mtd,
            today=today,
            team_targets=resolver.team_targets(visible_emails),
            as_of=as_of,
        )

        report = KPIReport(
            as_of=as_of,
            period=settings.tracking_period_days,
            user_stats=user_stats,
            totals=totals,
            chart_data=self._prepare_chart_data(window, period_days),
            underperformers=self._find_underperformers(user_stats),
            settings=settings,
        )

        logger.info(
            f"KPI report built for {access.viewer_email or 'anonymous'}: "
            f"{len(user_stats)} users, window {period_days[0]}..{as_of}, "
            f"MTD bookings={totals.mtd_bookings}/{totals.team_booking_target}"
        )
        return report

    # =========================================================================
    # PER-USER STATS
    # =========================================================================

    def _build_user_stats(
        self,
        user: UserRecord,
        window_counts: Dict[str, int],
        mtd_counts: Dict[str, int],
        daily_counts: Dict[Tuple[str, str], Dict[str, int]],
        period_days: Sequence[date],
        resolved: ResolvedTarget
    ) -> UserStats:
        settings = self.settings
        email = normalize_email(user.email)

        daily_progress = []
        for day in period_days:
            day_str = day.strftime(DATE_KEY_FORMAT)
            count = daily_counts.get((email, day_str), _empty_counts())['walk_ins']
            daily_progress.append(DailyProgress(
                date=day_str,
                count=count,
                status=classify_day(count, settings.min_walkins_per_day),
            ))

        walk_in_target = scale_walkin_target(
            resolved.monthly_walkin_target,
            settings.tracking_period_days,
        )
        # Closure targets stay monthly; closures are counted MTD
        closure_target = resolved.monthly_closure_target

        walk_ins = window_counts['walk_ins']
        closures = mtd_counts['closures']

        return UserStats(
            user_email=email,
            full_name=user.full_name,
            walk_ins_count=walk_ins,
            meetings_count=window_counts['meetings'],
            followups_count=window_counts['followups'],
            closures_count=closures,
            daily_progress=tuple(daily_progress),
            days_with_walk_in=sum(1 for d in daily_progress if d.status == DAY_STATUS_MET),
            walk_in_compliance=calculate_compliance(walk_ins, walk_in_target),
            closure_compliance=calculate_compliance(closures, closure_target),
            targets=UserTargets(
                walk_in_target=walk_in_target,
                closure_target=closure_target,
            ),
            target_source=resolved.source,
        )

    # =========================================================================
    # TEAM TOTALS
    # =========================================================================

    def _calculate_totals(
        self,
        user_stats: Sequence[UserStats],
        mtd: ReconciledRecords,
        today: ReconciledRecords,
        team_targets: TeamTargets,
        as_of: date
    ) -> TeamTotals:
        mtd_totals = total_counts(mtd)
        today_totals = total_counts(today)

        mtd_bookings = mtd_totals['closures']
        mtd_walk_ins = mtd_totals['walk_ins']

        if team_targets.booking_target > 0:
            mtd_performance_pct = round_half_up(mtd_bookings / team_targets.booking_target * 100)
        else:
            mtd_performance_pct = 0

        return TeamTotals(
            mtd_bookings=mtd_bookings,
            team_booking_target=team_targets.booking_target,
            team_walk_in_target=team_targets.walkin_target,
            mtd_performance_pct=mtd_performance_pct,
            forecast_bookings=forecast_for(mtd_bookings, as_of),
            forecast_walk_ins=forecast_for(mtd_walk_ins, as_of),
            today_walk_ins=today_totals['walk_ins'],
            today_meetings=today_totals['meetings'],
            today_followups=today_totals['followups'],
            today_closures=today_totals['closures'],
            mtd_walk_ins=mtd_walk_ins,
            walk_ins=sum(s.walk_ins_count for s in user_stats),
            meetings=sum(s.meetings_count for s in user_stats),
            followups=sum(s.followups_count for s in user_stats),
            closures=sum(s.closures_count for s in user_stats),
        )

    # =========================================================================
    # CHART DATA & ALERTS
    # =========================================================================

    def _prepare_chart_data(
        self,
        window: ReconciledRecords,
        period_days: Sequence[date]
    ) -> Tuple[ChartPoint, ...]:
        """Daily team totals across the tracking window."""
        by_day = aggregate_counts(window, ['date_str'])

        points = []
        for day in period_days:
            day_str = day.strftime(DATE_KEY_FORMAT)
            counts = by_day.get(day_str, _empty_counts())
            points.append(ChartPoint(
                date=day_str,
                walk_ins=counts['walk_ins'],
                meetings=counts['meetings'],
                followups=counts['followups'],
                closures=counts['closures'],
            ))
        return tuple(points)

    def _find_underperformers(self, user_stats: Sequence[UserStats]) -> Tuple[str, ...]:
        """Users below the compliance threshold on any configured target."""
        threshold = self.settings.underperformance_threshold
        return tuple(
            s.user_email for s in user_stats
            if (s.targets.walk_in_target > 0 and s.walk_in_compliance < threshold)
            or (s.targets.closure_target > 0 and s.closure_compliance < threshold)
        )


def build_kpi_report(
    viewer: Union[UserRecord, Dict],
    users: Iterable[Union[UserRecord, Dict]],
    snapshots: Iterable[Union[PerformanceSnapshot, Dict]],
    events: Iterable[Union[ActivityEvent, Dict]],
    targets: Iterable[Union[TargetRecord, Dict]],
    groups: Iterable[Union[GroupRecord, Dict]],
    as_of: Union[date, datetime],
    settings: Optional[KPISettings] = None,
    is_manager: Optional[bool] = None
) -> KPIReport:
    """Build a KPI report in one call."""
    metrics = SalesKPIMetrics(users, snapshots, events, targets, groups, settings)
    return metrics.build_report(viewer, as_of, is_manager=is_manager)
