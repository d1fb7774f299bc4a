"""Business (tenant) and plaza branding records."""

from dataclasses import dataclass


@dataclass(frozen=True)
class BusinessProfile:
    """A tenant business occupying a unit in the plaza."""

    business_id: str
    name: str
    shop_number: str
    floor_number: int | None = None
    business_type: str | None = None  # category, e.g. "Commercial"


@dataclass(frozen=True)
class BusinessInfo:
    """Plaza branding and contact details."""

    business_name: str | None = None
    logo_url: str | None = None
    contact_email: str | None = None
    contact_phone: str | None = None
