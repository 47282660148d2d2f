# sales_kpi/kpi_engine/models.py
"""
Data Containers for the Sales KPI Engine

Input records (read-only, one aggregation pass):
- PerformanceSnapshot: daily batch counts per user
- ActivityEvent: individually logged walk-ins / closures
- TargetRecord, GroupRecord, UserRecord

Settings:
- KPISettings: tracking window and thresholds

Report (output of SalesKPIMetrics.build_report):
- DailyProgress, UserTargets, UserStats, TeamTotals, ChartPoint, KPIReport
"""

from dataclasses import asdict, dataclass, field
from datetime import date
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

import pandas as pd

from .constants import (
    ACTIVITY_CLOSURE,
    ACTIVITY_WALK_IN,
    DEFAULT_BOOKING_TARGET,
    DEFAULT_MIN_CLOSURES_PER_PERIOD,
    DEFAULT_MIN_WALKINS_PER_DAY,
    DEFAULT_TRACKING_PERIOD_DAYS,
    DEFAULT_UNDERPERFORMANCE_THRESHOLD,
    DEFAULT_WALKIN_TARGET,
    STATUS_CLOSED_WON,
    VERIFICATION_VERIFIED,
)
from .helpers import safe_int


# =============================================================================
# INPUT RECORDS
# =============================================================================

@dataclass(frozen=True)
class PerformanceSnapshot:
    """One row per user per calendar day, produced by the daily batch."""
    user_email: Optional[str]
    date: Any
    walkins_count: int = 0
    meetings_count: int = 0
    followups_count: int = 0
    bookings_count: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PerformanceSnapshot':
        return cls(
            user_email=data.get('user_email'),
            date=data.get('date'),
            walkins_count=safe_int(data.get('walkins_count')),
            meetings_count=safe_int(data.get('meetings_count')),
            followups_count=safe_int(data.get('followups_count')),
            bookings_count=safe_int(data.get('bookings_count')),
        )


@dataclass(frozen=True)
class ActivityEvent:
    """One logged sales event (walk-in or closure) awaiting verification."""
    user_email: Optional[str]
    date: Any
    type: Optional[str] = None
    status: Optional[str] = None
    builder_email: Optional[str] = None
    builder_verification_status: Optional[str] = None
    ro_verification_status: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ActivityEvent':
        return cls(
            user_email=data.get('user_email'),
            date=data.get('date'),
            type=data.get('type'),
            status=data.get('status'),
            builder_email=data.get('builder_email'),
            builder_verification_status=data.get('builder_verification_status'),
            ro_verification_status=data.get('ro_verification_status'),
        )

    @property
    def is_verified(self) -> bool:
        """
        Verification gate: counts only when the builder (if any) and the
        reporting officer have both verified the event.
        """
        builder_ok = (
            not self.builder_email
            or self.builder_verification_status == VERIFICATION_VERIFIED
        )
        return builder_ok and self.ro_verification_status == VERIFICATION_VERIFIED

    @property
    def is_walk_in(self) -> bool:
        return self.type == ACTIVITY_WALK_IN

    @property
    def is_closure(self) -> bool:
        return self.type == ACTIVITY_CLOSURE or self.status == STATUS_CLOSED_WON


@dataclass(frozen=True)
class TargetRecord:
    """Monthly walk-in / booking target for a user or a group."""
    user_email: Optional[str] = None
    group_id: Optional[str] = None
    project_id: Optional[str] = None
    walkin_target: int = 0
    booking_count_target: int = 0
    month: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TargetRecord':
        return cls(
            user_email=data.get('user_email'),
            group_id=data.get('group_id'),
            project_id=data.get('project_id'),
            walkin_target=safe_int(data.get('walkin_target')),
            booking_count_target=safe_int(data.get('booking_count_target')),
            month=data.get('month'),
        )

    @property
    def is_individual(self) -> bool:
        return bool(self.user_email) and not self.group_id


@dataclass(frozen=True)
class GroupRecord:
    id: str
    members: FrozenSet[str] = frozenset()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'GroupRecord':
        return cls(
            id=data.get('id'),
            members=frozenset(m for m in (data.get('members') or []) if m),
        )


@dataclass(frozen=True)
class UserRecord:
    email: Optional[str]
    reports_to: Optional[str] = None
    role: Optional[str] = None
    job_title: Optional[str] = None
    full_name: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'UserRecord':
        return cls(
            email=data.get('email'),
            reports_to=data.get('reports_to'),
            role=data.get('role'),
            job_title=data.get('job_title'),
            full_name=data.get('full_name'),
        )


def coerce_records(records, record_cls) -> List[Any]:
    """Accept dataclass instances or raw dicts; return dataclass instances."""
    if not records:
        return []
    return [
        r if isinstance(r, record_cls) else record_cls.from_dict(r)
        for r in records
    ]


# =============================================================================
# SETTINGS
# =============================================================================

@dataclass(frozen=True)
class KPISettings:
    """Tracking window and thresholds for one aggregation pass."""
    tracking_period_days: int = DEFAULT_TRACKING_PERIOD_DAYS
    min_walkins_per_day: int = DEFAULT_MIN_WALKINS_PER_DAY
    min_closures_per_period: int = DEFAULT_MIN_CLOSURES_PER_PERIOD
    underperformance_threshold: int = DEFAULT_UNDERPERFORMANCE_THRESHOLD
    default_walkin_target: int = DEFAULT_WALKIN_TARGET
    default_booking_target: int = DEFAULT_BOOKING_TARGET

    def __post_init__(self):
        if self.tracking_period_days < 1:
            raise ValueError(
                f"tracking_period_days must be >= 1, got {self.tracking_period_days}"
            )
        if self.min_walkins_per_day < 1:
            raise ValueError(
                f"min_walkins_per_day must be >= 1, got {self.min_walkins_per_day}"
            )
        if self.default_walkin_target < 0 or self.default_booking_target < 0:
            raise ValueError("Default targets must be >= 0")


# =============================================================================
# REPORT
# =============================================================================

@dataclass(frozen=True)
class DailyProgress:
    date: str
    count: int
    status: str


@dataclass(frozen=True)
class UserTargets:
    walk_in_target: int
    closure_target: int


@dataclass(frozen=True)
class UserStats:
    user_email: str
    full_name: Optional[str]
    walk_ins_count: int
    meetings_count: int
    followups_count: int
    closures_count: int
    daily_progress: Tuple[DailyProgress, ...]
    days_with_walk_in: int
    walk_in_compliance: int
    closure_compliance: int
    targets: UserTargets
    target_source: str


@dataclass(frozen=True)
class TeamTotals:
    mtd_bookings: int
    team_booking_target: int
    team_walk_in_target: int
    mtd_performance_pct: int
    forecast_bookings: int
    forecast_walk_ins: int
    today_walk_ins: int
    today_meetings: int
    today_followups: int
    today_closures: int
    mtd_walk_ins: int
    # Tracking-window sums across visible users
    walk_ins: int
    meetings: int
    followups: int
    closures: int


@dataclass(frozen=True)
class ChartPoint:
    date: str
    walk_ins: int
    meetings: int
    followups: int
    closures: int


@dataclass(frozen=True)
class KPIReport:
    as_of: date
    period: int
    user_stats: Tuple[UserStats, ...]
    totals: TeamTotals
    chart_data: Tuple[ChartPoint, ...]
    underperformers: Tuple[str, ...] = field(default_factory=tuple)
    settings: Optional[KPISettings] = None

    def to_dict(self) -> Dict[str, Any]:
        """Plain, JSON-compatible representation with stable ordering."""
        return {
            'as_of': self.as_of.isoformat(),
            'period': self.period,
            'user_stats': [
                {
                    **{k: v for k, v in asdict(s).items() if k != 'daily_progress'},
                    'daily_progress': [asdict(d) for d in s.daily_progress],
                }
                for s in self.user_stats
            ],
            'totals': asdict(self.totals),
            'chart_data': [asdict(p) for p in self.chart_data],
            'underperformers': list(self.underperformers),
            'settings': asdict(self.settings) if self.settings is not None else None,
        }

    def user_stats_frame(self) -> pd.DataFrame:
        """One row per visible user, for tables and export."""
        columns = [
            'user_email', 'full_name', 'walk_ins_count', 'walk_in_target',
            'walk_in_compliance', 'meetings_count', 'followups_count',
            'closures_count', 'closure_target', 'closure_compliance',
            'days_with_walk_in', 'target_source',
        ]
        rows = [
            {
                'user_email': s.user_email,
                'full_name': s.full_name,
                'walk_ins_count': s.walk_ins_count,
                'walk_in_target': s.targets.walk_in_target,
                'walk_in_compliance': s.walk_in_compliance,
                'meetings_count': s.meetings_count,
                'followups_count': s.followups_count,
                'closures_count': s.closures_count,
                'closure_target': s.targets.closure_target,
                'closure_compliance': s.closure_compliance,
                'days_with_walk_in': s.days_with_walk_in,
                'target_source': s.target_source,
            }
            for s in self.user_stats
        ]
        return pd.DataFrame(rows, columns=columns)

    def chart_frame(self) -> pd.DataFrame:
        columns = ['date', 'walk_ins', 'meetings', 'followups', 'closures']
        return pd.DataFrame([asdict(p) for p in self.chart_data], columns=columns)
