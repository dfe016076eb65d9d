"""
Session / Profile Manager

Holds the shop profile and the onboarding flag, and decides which view the
UI is allowed to show. Until onboarding is complete, only setup is shown.
"""

from enum import Enum
from typing import Any, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from src.ledger.errors import ValidationError
from src.models.ledger import GeoLocation, ShopProfile


class View(str, Enum):
    """Screens of the app."""
    SETUP = "setup"
    DASHBOARD = "dashboard"
    LOGS = "logs"
    REPORTS = "reports"
    STAFF = "staff"
    SETTINGS = "settings"


EDITABLE_PROFILE_FIELDS = frozenset({
    "name",
    "email",
    "business_name",
    "business_address",
    "location",
    "shop_image",
})


class SessionManager:
    """Owner of the single ShopProfile for this session."""

    def __init__(self, profile: Optional[ShopProfile] = None):
        self._profile = profile or ShopProfile()

    @property
    def profile(self) -> ShopProfile:
        return self._profile

    @property
    def is_configured(self) -> bool:
        return self._profile.is_configured

    def load(self, profile: ShopProfile) -> None:
        self._profile = profile

    def _rebuild(self, **changes: Any) -> ShopProfile:
        try:
            return ShopProfile.model_validate({**self._profile.model_dump(), **changes})
        except PydanticValidationError as e:
            raise ValidationError.from_pydantic(e)

    def complete_onboarding(
        self,
        business_name: Optional[str],
        business_address: Optional[str],
        location: Optional[Union[GeoLocation, dict]] = None,
        shop_image: Optional[str] = None,
    ) -> ShopProfile:
        """
        Finish the setup wizard.

        Raises:
            ValidationError: shop name or address missing
        """
        if not business_name or not business_name.strip():
            raise ValidationError("Shop name is required", field="business_name")
        if not business_address or not business_address.strip():
            raise ValidationError("Shop address is required", field="business_address")

        self._profile = self._rebuild(
            business_name=business_name,
            business_address=business_address,
            location=location,
            shop_image=shop_image or None,
            is_configured=True,
            is_authenticated=True,
        )
        return self._profile

    def update_profile(self, **changes: Any) -> ShopProfile:
        """Settings-screen edits. The onboarding flags are not editable."""
        unknown = set(changes) - EDITABLE_PROFILE_FIELDS
        if unknown:
            field = sorted(unknown)[0]
            raise ValidationError(f"Field cannot be edited: {field}", field=field)

        if self.is_configured:
            for field in ("business_name", "business_address"):
                if field in changes and not (changes[field] or "").strip():
                    raise ValidationError(
                        f"{field.replace('_', ' ').capitalize()} cannot be blank",
                        field=field,
                    )

        self._profile = self._rebuild(**changes)
        return self._profile

    def reset(self) -> ShopProfile:
        """Forget the shop; the next view is setup again."""
        self._profile = ShopProfile()
        return self._profile

    def resolve_view(self, requested: Union[View, str, None] = None) -> View:
        """Which view to actually show for a requested one."""
        if not self.is_configured:
            return View.SETUP
        if requested is None:
            return View.DASHBOARD
        try:
            view = View(requested)
        except ValueError:
            return View.DASHBOARD
        if view == View.SETUP:
            return View.DASHBOARD
        return view
