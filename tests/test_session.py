"""
Tests for onboarding, profile edits and view routing.
"""

import pytest

from src.ledger import SessionManager, ValidationError, View


@pytest.fixture
def session():
    return SessionManager()


@pytest.fixture
def configured(session):
    session.complete_onboarding(
        business_name="Raju Tea Stall",
        business_address="MG Road, Pune",
        location={"latitude": 18.52, "longitude": 73.85},
    )
    return session


class TestOnboarding:
    """Tests for complete_onboarding."""

    def test_new_session_shows_setup(self, session):
        assert session.is_configured is False
        assert session.resolve_view() == View.SETUP

    @pytest.mark.parametrize("requested", list(View))
    def test_every_view_is_setup_until_configured(self, session, requested):
        assert session.resolve_view(requested) == View.SETUP

    def test_complete_onboarding(self, configured):
        profile = configured.profile
        assert profile.is_configured is True
        assert profile.is_authenticated is True
        assert profile.business_name == "Raju Tea Stall"
        assert profile.location.latitude == pytest.approx(18.52)

    @pytest.mark.parametrize("name, address, field", [
        ("", "MG Road", "business_name"),
        ("Raju Tea Stall", "   ", "business_address"),
        (None, "MG Road", "business_name"),
    ])
    def test_name_and_address_required(self, session, name, address, field):
        with pytest.raises(ValidationError) as exc_info:
            session.complete_onboarding(business_name=name, business_address=address)
        assert exc_info.value.field == field
        assert session.is_configured is False

    def test_invalid_location(self, session):
        with pytest.raises(ValidationError):
            session.complete_onboarding(
                business_name="Stall",
                business_address="Road",
                location={"latitude": 200, "longitude": 0},
            )


class TestViews:
    """Tests for resolve_view once configured."""

    def test_default_is_dashboard(self, configured):
        assert configured.resolve_view() == View.DASHBOARD

    def test_setup_redirects_to_dashboard(self, configured):
        assert configured.resolve_view(View.SETUP) == View.DASHBOARD

    def test_unknown_view_redirects_to_dashboard(self, configured):
        assert configured.resolve_view("payments") == View.DASHBOARD

    def test_requested_view_is_shown(self, configured):
        assert configured.resolve_view("staff") == View.STAFF
        assert configured.resolve_view(View.REPORTS) == View.REPORTS


class TestProfileEdits:
    """Tests for update_profile and reset."""

    def test_update_profile(self, configured):
        profile = configured.update_profile(name="Raju", email="raju@example.com")
        assert profile.name == "Raju"
        assert profile.business_name == "Raju Tea Stall"
        assert profile.is_configured is True

    def test_cannot_blank_shop_name(self, configured):
        with pytest.raises(ValidationError):
            configured.update_profile(business_name="")

    def test_flags_are_not_editable(self, configured):
        with pytest.raises(ValidationError, match="is_configured"):
            configured.update_profile(is_configured=False)

    def test_reset_returns_to_setup(self, configured):
        configured.reset()
        assert configured.is_configured is False
        assert configured.profile.business_name == ""
        assert configured.resolve_view(View.DASHBOARD) == View.SETUP
