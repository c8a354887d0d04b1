"""
Streamlit OIDC Session Provider

Wraps Streamlit's built-in authentication (`st.login`, `st.logout`,
`st.user`). The identity provider is configured in `.streamlit/secrets.toml`
under `[auth]` or `[auth.<provider>]`.
"""

from typing import Optional

import streamlit as st

from finance_tracker.models.transaction import User
from finance_tracker.services.session.interface import SessionProvider


class StreamlitSessionProvider(SessionProvider):
    """Session backed by the OIDC user Streamlit keeps in its cookie."""

    def __init__(self, provider: Optional[str] = None):
        self._provider = provider

    @property
    def current_user(self) -> Optional[User]:
        if not st.user.get("is_logged_in", False):
            return None

        # `sub` is the stable subject id; some providers only give an email
        user_id = st.user.get("sub") or st.user.get("email")
        if not user_id:
            return None
        email = st.user.get("email")
        return User(
            id=str(user_id),
            display_name=st.user.get("name") or email or str(user_id),
            email=email,
        )

    def login(self) -> None:
        if self._provider:
            st.login(self._provider)
        else:
            st.login()

    def logout(self) -> None:
        st.logout()
