# sales_kpi/kpi_engine/access_control.py
"""
Role-based Visibility for the Sales KPI Engine

Narrows the trackable users to those a viewer is authorized to see:
- Sales Executive: own data only
- Sales Manager: self + direct reports (reports_to == viewer email)
- Admin / Sales Head / unclassified: all candidates

The viewer's role is resolved once into an AccessLevel; every downstream
filter uses the resulting lower-cased email set.
"""

import logging
from enum import Enum
from typing import Iterable, List, Optional

import pandas as pd

from .constants import (
    FULL_ACCESS_ROLES,
    SALES_EXECUTIVE_TITLE,
    SALES_HEAD_TITLE,
    SALES_MANAGER_TITLE,
)
from .helpers import normalize_email
from .models import UserRecord

logger = logging.getLogger(__name__)


class AccessLevel(str, Enum):
    EXECUTIVE = 'self'
    MANAGER = 'team'
    ADMIN = 'full'


def resolve_access_level(
    viewer: UserRecord,
    is_manager: Optional[bool] = None
) -> AccessLevel:
    """
    Classify the viewer.

    Args:
        viewer: The user viewing the dashboard
        is_manager: Externally supplied manager classification. When None,
            the job title decides.

    Returns:
        AccessLevel for the viewer
    """
    if viewer.job_title == SALES_EXECUTIVE_TITLE:
        return AccessLevel.EXECUTIVE

    if is_manager is None:
        is_manager = viewer.job_title == SALES_MANAGER_TITLE

    if is_manager:
        return AccessLevel.MANAGER

    return AccessLevel.ADMIN


class AccessControl:
    """
    Manage data visibility based on viewer role and reporting line.

    Usage:
        access = AccessControl(viewer)

        level = access.access_level              # AccessLevel.MANAGER
        emails = access.get_visible_emails(users)
        filtered_df = access.filter_frame(df, users, 'user_email')
    """

    def __init__(self, viewer: UserRecord, is_manager: Optional[bool] = None):
        """
        Initialize access control.

        Args:
            viewer: Viewer identity (email, reports_to, role, job_title)
            is_manager: Optional manager classification from the caller
        """
        self.viewer = viewer
        self.viewer_email = normalize_email(viewer.email)
        self.access_level = resolve_access_level(viewer, is_manager)

        logger.debug(
            f"AccessControl initialized: email={self.viewer_email}, "
            f"level={self.access_level.value}"
        )

    # =========================================================================
    # VISIBLE USERS
    # =========================================================================

    def get_visible_users(self, candidates: Iterable[UserRecord]) -> List[UserRecord]:
        """
        Get the users this viewer may see, in candidate order.

        Users without an email are skipped and duplicate emails keep the
        first record. Executives and managers always see themselves, even
        when the viewer is missing from the candidate list.

        Args:
            candidates: Full list of trackable users

        Returns:
            List of visible UserRecords
        """
        unique = []
        seen = set()
        for user in candidates:
            email = normalize_email(user.email)
            if not email or email in seen:
                continue
            seen.add(email)
            unique.append(user)

        if self.access_level == AccessLevel.ADMIN:
            visible = unique
        elif self.access_level == AccessLevel.MANAGER:
            visible = [
                u for u in unique
                if normalize_email(u.email) == self.viewer_email
                or normalize_email(u.reports_to) == self.viewer_email
            ]
        else:
            visible = [u for u in unique if normalize_email(u.email) == self.viewer_email]

        if (
            self.access_level != AccessLevel.ADMIN
            and self.viewer_email
            and self.viewer_email not in {normalize_email(u.email) for u in visible}
        ):
            visible = [self.viewer] + visible

        logger.info(f"Visible users ({self.access_level.value}): {len(visible)}")
        return visible

    def get_visible_emails(self, candidates: Iterable[UserRecord]) -> List[str]:
        """Ordered, lower-cased emails of the visible users."""
        return [normalize_email(u.email) for u in self.get_visible_users(candidates)]

    # =========================================================================
    # DATA FILTERING
    # =========================================================================

    def filter_frame(
        self,
        df: pd.DataFrame,
        candidates: Iterable[UserRecord],
        email_col: str = 'user_email'
    ) -> pd.DataFrame:
        """
        Filter a DataFrame to rows owned by visible users.

        Args:
            df: DataFrame to filter
            candidates: Full list of trackable users
            email_col: Column holding the owner's email

        Returns:
            Filtered DataFrame
        """
        if df.empty:
            return df

        if email_col not in df.columns:
            logger.warning(f"Column '{email_col}' not found in DataFrame")
            return df.head(0)

        visible = set(self.get_visible_emails(candidates))
        filtered = df[df[email_col].map(normalize_email).isin(visible)]
        logger.debug(f"Filtered DataFrame: {len(df)} -> {len(filtered)} rows")

        return filtered

    # =========================================================================
    # PERMISSION CHECKS
    # =========================================================================

    def can_manage(self, target_user: UserRecord) -> bool:
        """
        Check if the viewer may edit or approve another user's sales data.

        Admins and Sales Heads manage everyone, managers manage themselves
        and their direct reports, everyone else only themselves.
        """
        if normalize_email(self.viewer.role) in [r.lower() for r in FULL_ACCESS_ROLES]:
            return True

        if normalize_email(target_user.email) == self.viewer_email:
            return True

        if self.viewer.job_title == SALES_HEAD_TITLE:
            return True

        if self.access_level == AccessLevel.MANAGER:
            return normalize_email(target_user.reports_to) == self.viewer_email

        return False

    def __repr__(self) -> str:
        return (
            f"AccessControl(email='{self.viewer_email}', "
            f"level='{self.access_level.value}')"
        )
