"""Identity resolution and business-info collaborators.

Lookups are tolerant: unknown ids resolve to ``None`` rather than raising,
so documents can always be produced with placeholder text.
"""

from abc import ABC, abstractmethod
from typing import Iterable

from plaza_billing.exceptions import ResolutionGapError
from plaza_billing.models.business import BusinessInfo, BusinessProfile


class IdentityResolver(ABC):
    """Maps internal business ids to display metadata."""

    @abstractmethod
    def business_profile(self, business_id: str | None) -> BusinessProfile | None:
        """Full business record, if known."""

    @abstractmethod
    def floor_label(self, floor_number: int | None) -> str | None:
        """Display label for a floor number."""

    def business_info(self) -> BusinessInfo | None:
        """Plaza branding and contact details, if configured."""
        return None

    def business_name(self, business_id: str | None) -> str | None:
        profile = self.business_profile(business_id)
        return profile.name if profile else None

    def business_code(self, business_id: str | None) -> str | None:
        """Unit/shop code for a business."""
        profile = self.business_profile(business_id)
        return profile.shop_number if profile else None

    def require_profile(self, business_id: str | None) -> BusinessProfile:
        """Like :meth:`business_profile` but raises ResolutionGapError when unknown."""
        profile = self.business_profile(business_id)
        if profile is None:
            raise ResolutionGapError(f"Business {business_id!r} could not be resolved")
        return profile


class DirectoryResolver(IdentityResolver):
    """In-memory directory of businesses, floors and plaza branding.

    Parameters
    ----------
    businesses : Iterable[BusinessProfile]
        Known businesses.
    floor_labels : dict[int, str] | None
        Explicit floor labels. Floors without an entry are labelled
        ``"Ground Floor"`` (0) or ``"Floor N"``.
    info : BusinessInfo | None
        Plaza branding and contact details.
    """

    def __init__(
        self,
        businesses: Iterable[BusinessProfile] = (),
        floor_labels: dict[int, str] | None = None,
        info: BusinessInfo | None = None,
    ) -> None:
        self._businesses: dict[str, BusinessProfile] = {}
        self._floor_labels = dict(floor_labels or {})
        self._info = info
        for profile in businesses:
            self.add_business(profile)

    def add_business(self, profile: BusinessProfile) -> None:
        self._businesses[profile.business_id] = profile

    def business_profile(self, business_id: str | None) -> BusinessProfile | None:
        if business_id is None:
            return None
        return self._businesses.get(business_id)

    def floor_label(self, floor_number: int | None) -> str | None:
        if floor_number is None:
            return None
        if floor_number in self._floor_labels:
            return self._floor_labels[floor_number]
        if floor_number < 0:
            return None
        return "Ground Floor" if floor_number == 0 else f"Floor {floor_number}"

    def business_info(self) -> BusinessInfo | None:
        return self._info
