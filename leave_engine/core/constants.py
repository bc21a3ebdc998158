"""
Application constants
"""
from decimal import Decimal

# Leave type codes with special handling
ANNUAL_LEAVE_CODE = "ANNUAL"
UNPAID_LEAVE_CODE = "UNPAID"
CALENDAR_DAY_LEAVE_CODES = frozenset({"MATERNITY_PRE", "MATERNITY_POST", "PATERNITY"})

# Unpaid leave caps
UNPAID_MAX_DAYS_PER_REQUEST = Decimal("5")
UNPAID_MAX_USES_PER_FISCAL_YEAR = 2

# Job levels whose leave needs executive sign-off when the policy requires it
MANAGER_TIER_LEVELS = frozenset({"Manager", "Director", "Executive"})

# Leave settings defaults (used when a company has no stored settings row)
DEFAULT_ANNUAL_LEAVE_BASE_DAYS = Decimal("16")
DEFAULT_ACCRUAL_DIVISOR = 365
DEFAULT_FISCAL_YEAR_START_MONTH = 1
DEFAULT_INCREMENT_PERIOD_YEARS = 2
DEFAULT_INCREMENT_AMOUNT = Decimal("1")
DEFAULT_EXPIRY_NOTIFICATION_DAYS = 30
DEFAULT_ENCASHMENT_SALARY_DIVISOR = 30
