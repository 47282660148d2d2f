# sales_kpi/kpi_engine/targets.py
"""
Target Resolution and Period Scaling

Resolution waterfall (per user):
1. Individual targets (user_email matches, no group_id)
   - prefer the "All Projects" record (project_id is None)
   - otherwise lowest project_id, then input order
2. Group targets for any group the user belongs to (first in input order)
3. Default monthly targets (30 walk-ins, 3 bookings)

Team aggregate targets sum deduplicated individual records only; defaults
never inflate the team figure.

Scaling: monthly walk-in targets are prorated when the tracking window is
shorter than 20 days. Booking targets are always monthly.
"""

import logging
import math
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from .constants import (
    DAYS_PER_TARGET_MONTH,
    DEFAULT_BOOKING_TARGET,
    DEFAULT_WALKIN_TARGET,
    SHORT_PERIOD_THRESHOLD_DAYS,
    TARGET_SOURCE_DEFAULT,
    TARGET_SOURCE_GROUP,
    TARGET_SOURCE_INDIVIDUAL,
)
from .helpers import normalize_email, safe_int
from .models import GroupRecord, TargetRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedTarget:
    monthly_walkin_target: int
    monthly_closure_target: int
    had_explicit_target: bool
    source: str


@dataclass(frozen=True)
class TeamTargets:
    walkin_target: int
    booking_target: int


# =============================================================================
# PERIOD SCALING
# =============================================================================

def scale_walkin_target(monthly_walkin_target: int, tracking_period_days: int) -> int:
    """
    Scale a monthly walk-in target to the tracking window.

    Args:
        monthly_walkin_target: Target for a full month
        tracking_period_days: Length of the tracking window in days

    Returns:
        ceil(monthly × days / 30) for windows under 20 days, else the
        monthly figure unchanged

    Example:
        >>> scale_walkin_target(30, 7)
        7
        >>> scale_walkin_target(30, 20)
        30
    """
    if tracking_period_days < SHORT_PERIOD_THRESHOLD_DAYS:
        return math.ceil(monthly_walkin_target * tracking_period_days / DAYS_PER_TARGET_MONTH)
    return monthly_walkin_target


# =============================================================================
# TARGET RESOLUTION
# =============================================================================

def pick_individual_target(records: List[TargetRecord]) -> Optional[TargetRecord]:
    """
    Choose one individual target among several for the same user.

    The "All Projects" record (project_id is None) wins. Among
    project-scoped records the lowest project_id wins; ties keep input
    order.
    """
    if not records:
        return None

    for record in records:
        if not record.project_id:
            return record

    # min() returns the first of equal keys, so input order breaks ties
    return min(records, key=lambda r: str(r.project_id))


class TargetResolver:
    """
    Resolve the applicable target for each user.

    Usage:
        resolver = TargetResolver(targets, groups, month='2026-10')

        resolved = resolver.resolve('asha@example.com')
        team = resolver.team_targets(visible_emails)
    """

    def __init__(
        self,
        targets: Iterable[TargetRecord],
        groups: Iterable[GroupRecord],
        month: Optional[str] = None,
        default_walkin_target: int = DEFAULT_WALKIN_TARGET,
        default_booking_target: int = DEFAULT_BOOKING_TARGET
    ):
        """
        Initialize with target and group records.

        Args:
            targets: TargetRecord list (input order matters for group fallback)
            groups: GroupRecord list
            month: Report month (YYYY-MM). Records for other months are
                ignored; records without a month always apply.
            default_walkin_target: Monthly walk-in figure for unconfigured users
            default_booking_target: Monthly booking figure for unconfigured users
        """
        self.targets = [
            t for t in targets
            if month is None or not t.month or t.month == month
        ]
        self.groups = list(groups)
        self.month = month
        self.default_walkin_target = default_walkin_target
        self.default_booking_target = default_booking_target

        self._individual: Dict[str, List[TargetRecord]] = {}
        for t in self.targets:
            if t.is_individual:
                self._individual.setdefault(normalize_email(t.user_email), []).append(t)

    def resolve(self, user_email: str) -> ResolvedTarget:
        """
        Resolve one user's monthly targets.

        An assigned target keeps its figures even when they are 0; only a
        user with no target at all gets the defaults.
        """
        email = normalize_email(user_email)

        assigned = pick_individual_target(self._individual.get(email, []))
        source = TARGET_SOURCE_INDIVIDUAL

        if assigned is None:
            assigned = self._find_group_target(email)
            source = TARGET_SOURCE_GROUP

        if assigned is None:
            return ResolvedTarget(
                monthly_walkin_target=self.default_walkin_target,
                monthly_closure_target=self.default_booking_target,
                had_explicit_target=False,
                source=TARGET_SOURCE_DEFAULT,
            )

        return ResolvedTarget(
            monthly_walkin_target=safe_int(assigned.walkin_target),
            monthly_closure_target=safe_int(assigned.booking_count_target),
            had_explicit_target=True,
            source=source,
        )

    def _find_group_target(self, email: str) -> Optional[TargetRecord]:
        group_ids = {
            g.id for g in self.groups
            if email in {normalize_email(m) for m in g.members}
        }
        if not group_ids:
            return None

        for t in self.targets:
            if t.group_id and t.group_id in group_ids:
                return t
        return None

    def team_targets(self, visible_emails: Iterable[str]) -> TeamTargets:
        """
        Sum configured individual targets across visible users.

        Group targets and defaults are not included.
        """
        walkin_total = 0
        booking_total = 0

        for email in dict.fromkeys(normalize_email(e) for e in visible_emails):
            record = pick_individual_target(self._individual.get(email, []))
            if record is None:
                continue
            walkin_total += safe_int(record.walkin_target)
            booking_total += safe_int(record.booking_count_target)

        logger.debug(
            f"Team targets: walk-ins={walkin_total}, bookings={booking_total}"
        )
        return TeamTargets(walkin_target=walkin_total, booking_target=booking_total)
