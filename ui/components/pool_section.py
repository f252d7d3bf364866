"""Pool selection, rates and pull buttons."""

import pandas as pd
import streamlit as st

from engine import BULK_DISCOUNTS, batch_cost
from errors import ErrorKind
from ui.constants import CURRENCY_NAMES
from ui.state import ensure_available_pool, update_url


def _format_cost(cost) -> str:
    parts = []
    if cost.primary:
        parts.append(f"{cost.primary} {CURRENCY_NAMES['primary']}")
    if cost.secondary:
        parts.append(f"{cost.secondary} {CURRENCY_NAMES['secondary']}")
    return " + ".join(parts) or "Free"


def _on_pool_change():
    """Callback when the pool selection changes."""
    engine = st.session_state.engine
    outcome = engine.switch_pool(st.session_state.pool_select)
    if outcome.ok:
        update_url()
    else:
        st.session_state.last_outcome = outcome


def _pull(count: int):
    outcome = st.session_state.engine.pull_batch(count)
    st.session_state.last_outcome = outcome
    if outcome.ok:
        update_url()


def render_pool_section():
    """Render the current pool with its rates, pity and pull buttons."""
    engine = st.session_state.engine
    switched_to = ensure_available_pool(engine)
    pools = engine.get_available_pools()
    pool_ids = [p.id for p in pools]
    names = {p.id: p.name for p in pools}

    st.header("Pools")
    if switched_to:
        st.info(f"Your previous pool has ended. Switched to {names[switched_to]}.")
        update_url()
    st.selectbox(
        "Pool",
        pool_ids,
        index=pool_ids.index(engine.current_pool) if engine.current_pool in pool_ids else 0,
        format_func=lambda x: names[x],
        key="pool_select",
        on_change=_on_pool_change,
    )

    info = engine.get_pool_info()
    st.caption(info.description)
    if info.is_limited and info.end_time:
        st.caption(f"Ends {info.end_time:%Y-%m-%d %H:%M} UTC")

    col_rates, col_pity = st.columns([2, 1])
    with col_rates:
        rates_df = pd.DataFrame(
            {
                "Rarity": [r.value for r in info.rates.rates],
                "Rate %": [round(p * 100, 3) for p in info.rates.rates.values()],
            }
        )
        st.bar_chart(rates_df, x="Rarity", y="Rate %", height=200)
    with col_pity:
        st.metric("Epic pity", f"{info.current_pity.epic_misses} / {info.pity_system['hard_pity']}")
        st.metric(
            "Legendary pity",
            f"{info.current_pity.legendary_misses} / {info.pity_system['legendary_pity']}",
        )
        if info.guaranteed_rarity:
            st.caption(f"Every pull is {info.guaranteed_rarity.value} or better")

    cols = st.columns(len(BULK_DISCOUNTS))
    for col, count in zip(cols, BULK_DISCOUNTS):
        with col:
            cost = batch_cost(info.cost, count)
            st.button(
                f"Pull x{count}",
                key=f"pull_{count}",
                help=_format_cost(cost),
                on_click=_pull,
                args=(count,),
                use_container_width=True,
            )

    _render_last_outcome()


def _render_last_outcome():
    outcome = st.session_state.get("last_outcome")
    if outcome is None:
        return
    if not outcome.ok:
        error = outcome.error
        if error.kind == ErrorKind.INSUFFICIENT_RESOURCES and error.shortfall:
            st.error(
                f"Not enough currency: missing {error.shortfall.primary} "
                f"{CURRENCY_NAMES['primary']} and {error.shortfall.secondary} "
                f"{CURRENCY_NAMES['secondary']}"
            )
        else:
            st.error(error.message)
        return

    results = getattr(outcome, "results", [])
    if not results:
        return
    catalog = st.session_state.engine.catalog
    for result in results:
        color = catalog.color(result.rarity)
        st.markdown(
            f"<span style='color:{color}'><b>{result.rarity.value}</b> {result.item_name}</span>",
            unsafe_allow_html=True,
        )
    if getattr(outcome, "guaranteed_rare_used", False):
        st.caption("The last pull used the ten-pull Rare guarantee")
