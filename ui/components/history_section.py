"""Statistics and pull history component."""

import pandas as pd
import streamlit as st

from rarity import Rarity


def render_history_section():
    """Render lifetime statistics, the recent rarity breakdown and pull history."""
    stats = st.session_state.engine.get_statistics()

    st.header("Statistics")
    col1, col2, col3 = st.columns(3)
    with col1:
        st.metric("Total pulls", stats.total_pulls)
    with col2:
        st.metric("Average rarity", f"{stats.average_rarity_level:.2f}")
    with col3:
        st.metric("Luck score", stats.luck_score)

    breakdown_df = pd.DataFrame(
        {
            "Rarity": [r.value for r in Rarity],
            "Pulls": [stats.rarity_breakdown.get(r, 0) for r in Rarity],
        }
    )
    st.caption(f"Last {len(stats.recent_pulls)} pulls")
    st.bar_chart(breakdown_df, x="Rarity", y="Pulls", height=200)

    if not stats.pull_history:
        st.info("No pulls yet.")
        return

    history_df = pd.DataFrame(
        [
            {
                "Time": r.timestamp,
                "Pool": r.pool_id,
                "Rarity": r.rarity.value,
                "Scripture": r.item_name,
                "Category": r.category,
            }
            for r in reversed(stats.pull_history)
        ]
    )
    st.dataframe(history_df, hide_index=True, use_container_width=True)
