import streamlit as st

from logging_setup import setup_logging
from ui import initialize_session_state
from ui.components import render_header, render_history_section, render_pool_section

st.set_page_config(page_title="Scripture Pavilion", layout="wide")

setup_logging()
initialize_session_state()

render_header()
st.divider()
render_pool_section()
st.divider()
render_history_section()
