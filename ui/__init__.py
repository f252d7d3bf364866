"""UI components package for the gacha dashboard."""

from ui.state import initialize_session_state, update_url

__all__ = [
    "initialize_session_state",
    "update_url",
]
