import html
from typing import Any


def clean_str(value: Any) -> str:
    """Coerce a JSON body value to a stripped string; None becomes ''."""
    if value is None:
        return ""
    return str(value).strip()


def normalize_email(value: Any) -> str:
    return clean_str(value).lower()


def normalize_company_code(value: Any) -> str:
    return clean_str(value).upper()


def escape_html(value: Any) -> str:
    """Escape user-supplied text before it is embedded in an email body."""
    return html.escape(clean_str(value), quote=True)


def company_prefix(company_name: Any, default: str = "COM") -> str:
    """First three alphanumerics of a company name, upper-cased and padded with X."""
    letters = "".join(ch for ch in clean_str(company_name) if ch.isascii() and ch.isalnum())
    if not letters:
        return default
    return letters.upper()[:3].ljust(3, "X")


def normalize_name(value: Any) -> str:
    """Casefolded full name with runs of whitespace collapsed, for roster matching."""
    return " ".join(clean_str(value).split()).casefold()
