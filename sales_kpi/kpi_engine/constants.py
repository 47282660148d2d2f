# sales_kpi/kpi_engine/constants.py
"""
Constants for the Sales KPI Engine

Centralized configuration for:
- Role definitions
- Activity types and verification statuses
- Default targets and tracking settings
- Daily progress statuses
- Export styles
"""

# =====================================================================
# ROLE DEFINITIONS
# =====================================================================

SALES_HEAD_TITLE = 'Sales Head'
SALES_MANAGER_TITLE = 'Sales Manager'
SALES_EXECUTIVE_TITLE = 'Sales Executive'

# Full access by system role, regardless of job title
FULL_ACCESS_ROLES = ['admin']

# =====================================================================
# ACTIVITY EVENTS
# =====================================================================

ACTIVITY_WALK_IN = 'walk_in'
ACTIVITY_CLOSURE = 'closure'

STATUS_CLOSED_WON = 'closed_won'

# Builder and RO verification (pending, verified, not_verified)
VERIFICATION_VERIFIED = 'verified'

# =====================================================================
# TARGETS
# =====================================================================

# Monthly figures applied when a user has no individual or group target
DEFAULT_WALKIN_TARGET = 30
DEFAULT_BOOKING_TARGET = 3

# Windows shorter than this get a prorated walk-in target
SHORT_PERIOD_THRESHOLD_DAYS = 20

# Month length used for prorating monthly targets
DAYS_PER_TARGET_MONTH = 30

TARGET_SOURCE_INDIVIDUAL = 'individual'
TARGET_SOURCE_GROUP = 'group'
TARGET_SOURCE_DEFAULT = 'default'

# =====================================================================
# TRACKING SETTINGS
# =====================================================================

DEFAULT_TRACKING_PERIOD_DAYS = 7
DEFAULT_MIN_WALKINS_PER_DAY = 1
DEFAULT_MIN_CLOSURES_PER_PERIOD = 1

# Compliance below this percentage flags an underperformer
DEFAULT_UNDERPERFORMANCE_THRESHOLD = 50

# =====================================================================
# DAILY PROGRESS
# =====================================================================

DAY_STATUS_MET = 'met'
DAY_STATUS_PARTIAL = 'partial'
DAY_STATUS_MISSED = 'missed'

DATE_KEY_FORMAT = '%Y-%m-%d'
MONTH_KEY_FORMAT = '%Y-%m'

# =====================================================================
# EXPORT SETTINGS
# =====================================================================

EXCEL_STYLES = {
    "header_fill_color": "1f77b4",
    "header_font_color": "FFFFFF",
    "good_fill_color": "C6EFCE",
    "bad_fill_color": "FFC7CE",
    "partial_fill_color": "FFEB9C",
    "date_format": 'YYYY-MM-DD',
}

DAY_STATUS_FILLS = {
    DAY_STATUS_MET: EXCEL_STYLES["good_fill_color"],
    DAY_STATUS_PARTIAL: EXCEL_STYLES["partial_fill_color"],
    DAY_STATUS_MISSED: EXCEL_STYLES["bad_fill_color"],
}
