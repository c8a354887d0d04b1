"""Tests for the session providers."""

from finance_tracker.models.transaction import User
from finance_tracker.services.session import LocalSessionProvider
from finance_tracker.services.session import streamlit_session
from finance_tracker.services.session.streamlit_session import StreamlitSessionProvider


class FakeStreamlit:
    """Stands in for the `st` module: a user dict plus login/logout calls."""

    def __init__(self, user: dict):
        self.user = user
        self.calls = []

    def login(self, *args):
        self.calls.append(("login", args))

    def logout(self):
        self.calls.append(("logout", ()))


class TestLocalSessionProvider:
    """Tests for LocalSessionProvider."""

    def test_login_logout(self):
        """Test the default user signing in and out."""
        me = User(id="me")
        session = LocalSessionProvider(me, signed_in=False)
        assert session.current_user is None

        session.login()
        assert session.current_user == me

        session.logout()
        assert session.current_user is None

    def test_sign_in_other_user(self):
        """Test switching identity."""
        session = LocalSessionProvider(User(id="me"))
        session.sign_in(User(id="partner"))
        assert session.current_user.id == "partner"


class TestStreamlitSessionProvider:
    """Tests for StreamlitSessionProvider."""

    def test_signed_out(self, monkeypatch):
        """Test that no login means no user."""
        monkeypatch.setattr(streamlit_session, "st", FakeStreamlit({"is_logged_in": False}))
        assert StreamlitSessionProvider().current_user is None

    def test_user_from_oidc_claims(self, monkeypatch):
        """Test that the subject claim becomes the owner id."""
        monkeypatch.setattr(streamlit_session, "st", FakeStreamlit({
            "is_logged_in": True,
            "sub": "google-oauth2|123",
            "email": "alice@example.com",
            "name": "Alice",
        }))

        user = StreamlitSessionProvider().current_user

        assert user == User(id="google-oauth2|123", display_name="Alice", email="alice@example.com")

    def test_email_fallback(self, monkeypatch):
        """Test providers that only send an email."""
        monkeypatch.setattr(streamlit_session, "st", FakeStreamlit({
            "is_logged_in": True,
            "email": "bob@example.com",
        }))

        user = StreamlitSessionProvider().current_user

        assert user.id == "bob@example.com"
        assert user.display_name == "bob@example.com"

    def test_login_uses_named_provider(self, monkeypatch):
        """Test that the configured provider is passed to st.login."""
        fake = FakeStreamlit({})
        monkeypatch.setattr(streamlit_session, "st", fake)

        StreamlitSessionProvider("google").login()
        StreamlitSessionProvider().login()
        StreamlitSessionProvider().logout()

        assert fake.calls == [("login", ("google",)), ("login", ()), ("logout", ())]
