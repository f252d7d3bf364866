"""Header component with title, balances and share/import/reset buttons."""

import streamlit as st

from ui.constants import CURRENCY_NAMES
from ui.state import serialize_state


def render_header():
    """Render the header with title, wallet and action buttons."""
    st.title("Scripture Pavilion")

    engine = st.session_state.engine
    primary, secondary = engine.balances()
    col1, col2, col_buttons = st.columns([1, 1, 2])
    with col1:
        st.metric(CURRENCY_NAMES["primary"], primary)
    with col2:
        st.metric(CURRENCY_NAMES["secondary"], secondary)

    with col_buttons:
        c1, c2, c3 = st.columns(3)
        with c1:
            with st.popover("Share"):
                st.code(serialize_state(), language=None)
                st.caption("Copy the string above to share this save")
        with c2:
            with st.popover("Import"):
                load_input = st.text_area("Paste a save string", height=100)
                if st.button("Load"):
                    if load_input.strip():
                        st.session_state.clear()
                        st.query_params["state"] = load_input.strip()
                        st.rerun()
                    else:
                        st.warning("Paste a save string first")
        with c3:
            with st.popover("Reset"):
                st.warning("Reset all progress? This cannot be undone.")
                if st.button("Confirm reset", type="primary"):
                    st.session_state.clear()
                    st.query_params.clear()
                    st.rerun()
