### models/__init__.py
from .verification_code import VerificationCode, Purpose, CodeState, parse_timestamp
from .company import (
    COMPANIES,
    EMPLOYEES,
    PROFILES,
    SUBSCRIPTIONS,
    COMPANY_PATCH_FIELDS,
    ProfileRole,
    EmployeeStatus,
)
