"""Tests for identity resolution."""

import pytest

from plaza_billing.exceptions import ResolutionGapError
from plaza_billing.models import BusinessInfo, BusinessProfile
from plaza_billing.store import DirectoryResolver


class TestDirectoryResolver:
    """Tests for DirectoryResolver."""

    def test_known_business(self, resolver: DirectoryResolver, business: BusinessProfile) -> None:
        """Test lookups for a known business."""
        assert resolver.business_profile(business.business_id) == business
        assert resolver.business_name(business.business_id) == "Karachi Traders"
        assert resolver.business_code(business.business_id) == "G-12"

    def test_unknown_business(self, resolver: DirectoryResolver) -> None:
        """Test unknown ids resolve to None."""
        assert resolver.business_profile("missing") is None
        assert resolver.business_profile(None) is None
        assert resolver.business_name("missing") is None
        assert resolver.business_code("missing") is None

    def test_require_profile(self, resolver: DirectoryResolver) -> None:
        """Test the strict lookup raises ResolutionGapError."""
        with pytest.raises(ResolutionGapError, match="missing"):
            resolver.require_profile("missing")

    @pytest.mark.parametrize(
        "floor,label",
        [(0, "Ground Floor"), (2, "Floor 2"), (None, None), (-1, None)],
    )
    def test_default_floor_labels(self, floor: int | None, label: str | None) -> None:
        """Test generated floor labels."""
        assert DirectoryResolver().floor_label(floor) == label

    def test_explicit_floor_labels(self) -> None:
        """Test configured labels take precedence."""
        resolver = DirectoryResolver(floor_labels={-1: "Basement", 1: "Mezzanine"})

        assert resolver.floor_label(-1) == "Basement"
        assert resolver.floor_label(1) == "Mezzanine"

    def test_business_info(self, resolver: DirectoryResolver, business_info: BusinessInfo) -> None:
        """Test plaza branding is returned when configured."""
        assert resolver.business_info() == business_info
        assert DirectoryResolver().business_info() is None

    def test_add_business(self) -> None:
        """Test businesses can be added after construction."""
        resolver = DirectoryResolver()
        resolver.add_business(BusinessProfile("biz-2", "Bakery", "F-01", 1))

        assert resolver.business_name("biz-2") == "Bakery"
