"""Session/identity store and its state snapshot."""
from finance_hub.session.state import AuthState
from finance_hub.session.store import SessionStore

__all__ = ["AuthState", "SessionStore"]
