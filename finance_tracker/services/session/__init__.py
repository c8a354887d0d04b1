"""Session provider package.

The Streamlit provider is imported from its own module so the core package
can be used without a Streamlit runtime.
"""

from finance_tracker.services.session.interface import (
    LocalSessionProvider,
    SessionProvider,
)

__all__ = ["LocalSessionProvider", "SessionProvider"]
