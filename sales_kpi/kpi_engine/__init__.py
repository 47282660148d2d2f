# sales_kpi/kpi_engine/__init__.py
"""
Sales KPI Engine

Pure aggregation of sales performance: reconciles daily snapshots with
verified activity events, resolves targets, and builds per-user and team
KPI reports. No I/O; callers supply the records.

Components:
- access_control: Role-based visibility (executive/manager/admin)
- data_processor: Record reconciliation over date windows
- targets: Target resolution waterfall and period scaling
- metrics: KPI aggregation and report building
- forecast: Linear month-end forecast
- export: Formatted Excel report generation

Usage:
    from sales_kpi.kpi_engine import (
        SalesKPIMetrics,
        KPIReportExport,
        UserRecord,
    )

    metrics = SalesKPIMetrics(users, snapshots, events, targets, groups)
    report = metrics.build_report(viewer, as_of=date(2026, 10, 17))
"""

from .access_control import AccessControl, AccessLevel, resolve_access_level
from .data_processor import RecordReconciler, ReconciledRecords
from .targets import (
    ResolvedTarget,
    TargetResolver,
    TeamTargets,
    pick_individual_target,
    scale_walkin_target,
)
from .metrics import (
    SalesKPIMetrics,
    build_kpi_report,
    calculate_compliance,
    classify_day,
)
from .forecast import forecast_for, linear_forecast
from .export import KPIReportExport

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
)

# Constants
from .constants import (
    DEFAULT_BOOKING_TARGET,
    DEFAULT_TRACKING_PERIOD_DAYS,
    DEFAULT_WALKIN_TARGET,
    DAY_STATUS_MET,
    DAY_STATUS_MISSED,
    DAY_STATUS_PARTIAL,
)

__all__ = [
    # Classes
    'AccessControl',
    'AccessLevel',
    'RecordReconciler',
    'ReconciledRecords',
    'TargetResolver',
    'ResolvedTarget',
    'TeamTargets',
    'SalesKPIMetrics',
    'KPIReportExport',

    # Functions
    'resolve_access_level',
    'pick_individual_target',
    'scale_walkin_target',
    'build_kpi_report',
    'calculate_compliance',
    'classify_day',
    'forecast_for',
    'linear_forecast',

    # Records
    'ActivityEvent',
    'ChartPoint',
    'DailyProgress',
    'GroupRecord',
    'KPIReport',
    'KPISettings',
    'PerformanceSnapshot',
    'TargetRecord',
    'TeamTotals',
    'UserRecord',
    'UserStats',
    'UserTargets',

    # Constants
    'DEFAULT_BOOKING_TARGET',
    'DEFAULT_TRACKING_PERIOD_DAYS',
    'DEFAULT_WALKIN_TARGET',
    'DAY_STATUS_MET',
    'DAY_STATUS_MISSED',
    'DAY_STATUS_PARTIAL',
]

__version__ = '1.0.0'
