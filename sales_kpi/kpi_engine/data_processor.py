# sales_kpi/kpi_engine/data_processor.py
"""
Record Reconciler for the Sales KPI Engine

Filters and normalizes raw performance snapshots and activity events into
date-stamped, verified rows that the aggregation engine can sum.

All operations are Pandas-based. The raw collections are converted to
DataFrames once (dates parsed, emails normalized, numerics coerced); each
window (tracking period, month-to-date, today) is then a cheap filter.

Usage:
    reconciler = RecordReconciler(snapshots, events)
    window = reconciler.reconcile(start, end, visible_emails)
    window.snapshots   # DataFrame
    window.events      # DataFrame
"""

import logging
from dataclasses import asdict, dataclass
from datetime import date
from typing import Iterable, List

import pandas as pd

from .constants import DATE_KEY_FORMAT
from .helpers import normalize_email, parse_date, safe_int
from .models import ActivityEvent, PerformanceSnapshot

logger = logging.getLogger(__name__)

SNAPSHOT_COUNT_COLUMNS = [
    'walkins_count',
    'meetings_count',
    'followups_count',
    'bookings_count',
]

SNAPSHOT_COLUMNS = ['user_email', 'date'] + SNAPSHOT_COUNT_COLUMNS

EVENT_COLUMNS = [
    'user_email', 'date', 'type', 'status', 'builder_email',
    'builder_verification_status', 'ro_verification_status',
    'is_verified', 'is_walk_in', 'is_closure',
]

# Columns added during preparation
DERIVED_COLUMNS = ['email_key', 'day', 'date_str']


@dataclass(frozen=True)
class ReconciledRecords:
    """Snapshots and verified events for one date window."""
    start: date
    end: date
    snapshots: pd.DataFrame
    events: pd.DataFrame


class RecordReconciler:
    """
    Reconcile snapshots and activity events over date windows.

    Attributes:
        snapshots_raw: All snapshots with a parsable date
        events_raw: All verified events with a parsable date
    """

    def __init__(
        self,
        snapshots: Iterable[PerformanceSnapshot],
        events: Iterable[ActivityEvent]
    ):
        """
        Initialize with raw records.

        Args:
            snapshots: PerformanceSnapshot records (any date range)
            events: ActivityEvent records (any date range)
        """
        self.snapshots_raw = self._prepare_snapshots(list(snapshots))
        self.events_raw = self._prepare_events(list(events))

    # =========================================================================
    # PREPARATION
    # =========================================================================

    def _prepare_snapshots(self, snapshots: List[PerformanceSnapshot]) -> pd.DataFrame:
        """Build the snapshot frame with coerced counts and parsed days."""
        df = pd.DataFrame([asdict(s) for s in snapshots], columns=SNAPSHOT_COLUMNS)

        for col in SNAPSHOT_COUNT_COLUMNS:
            df[col] = df[col].map(safe_int).clip(lower=0).astype(int)

        return self._attach_day_keys(df, 'snapshots')

    def _prepare_events(self, events: List[ActivityEvent]) -> pd.DataFrame:
        """Build the event frame, keeping only events that pass verification."""
        rows = []
        for e in events:
            row = asdict(e)
            row['is_verified'] = e.is_verified
            row['is_walk_in'] = e.is_walk_in
            row['is_closure'] = e.is_closure
            rows.append(row)

        df = pd.DataFrame(rows, columns=EVENT_COLUMNS)
        df['is_verified'] = df['is_verified'].astype(bool)
        df['is_walk_in'] = df['is_walk_in'].astype(bool)
        df['is_closure'] = df['is_closure'].astype(bool)

        unverified = int((~df['is_verified']).sum())
        if unverified:
            logger.debug(f"Excluded {unverified} unverified activity events")

        df = df[df['is_verified']]
        return self._attach_day_keys(df, 'events')

    @staticmethod
    def _attach_day_keys(df: pd.DataFrame, label: str) -> pd.DataFrame:
        """Add email_key, day and date_str; drop rows with unparsable dates."""
        df = df.copy()
        df['email_key'] = df['user_email'].map(normalize_email)
        df['day'] = df['date'].map(parse_date)

        invalid = df['day'].isna()
        if invalid.any():
            logger.debug(f"Excluded {int(invalid.sum())} {label} with unparsable dates")
            df = df[~invalid].copy()

        df['date_str'] = df['day'].map(lambda d: d.strftime(DATE_KEY_FORMAT))
        return df.reset_index(drop=True)

    # =========================================================================
    # WINDOW FILTERING
    # =========================================================================

    def reconcile(
        self,
        start: date,
        end: date,
        visible_emails: Iterable[str]
    ) -> ReconciledRecords:
        """
        Filter both collections to a date window and the visible users.

        Args:
            start: First calendar day (inclusive)
            end: Last calendar day (inclusive)
            visible_emails: Lower-cased emails the viewer may see

        Returns:
            ReconciledRecords with filtered snapshot and event frames
        """
        visible = {normalize_email(e) for e in visible_emails}

        return ReconciledRecords(
            start=start,
            end=end,
            snapshots=self._filter_window(self.snapshots_raw, start, end, visible),
            events=self._filter_window(self.events_raw, start, end, visible),
        )

    def reconcile_day(self, day: date, visible_emails: Iterable[str]) -> ReconciledRecords:
        return self.reconcile(day, day, visible_emails)

    @staticmethod
    def _filter_window(
        df: pd.DataFrame,
        start: date,
        end: date,
        visible: set
    ) -> pd.DataFrame:
        if df.empty:
            return df

        in_window = df['day'].map(lambda d: start <= d <= end)
        is_visible = df['email_key'].isin(visible)

        return df[in_window & is_visible].reset_index(drop=True)
