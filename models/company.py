import enum

COMPANIES = "companies"
EMPLOYEES = "employees"
PROFILES = "profiles"
SUBSCRIPTIONS = "subscriptions"

# fields an owner may change through update-company
COMPANY_PATCH_FIELDS = (
    "company_name",
    "address",
    "logo_url",
    "primary_color",
    "secondary_color",
    "text_color",
)


class ProfileRole(enum.Enum):
    OWNER = "owner"
    EMPLOYEE = "employee"


class EmployeeStatus(enum.Enum):
    ACTIVE = "active"
    ARCHIVED = "archived"

    @classmethod
    def parse(cls, value) -> "EmployeeStatus":
        """Anything other than 'archived' is active."""
        if str(value or "").strip().lower() == cls.ARCHIVED.value:
            return cls.ARCHIVED
        return cls.ACTIVE
