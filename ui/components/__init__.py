"""UI component modules."""

from ui.components.header import render_header
from ui.components.history_section import render_history_section
from ui.components.pool_section import render_pool_section

__all__ = [
    "render_header",
    "render_pool_section",
    "render_history_section",
]
