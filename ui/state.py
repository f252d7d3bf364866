"""State management, serialization, and initialization."""

import base64
import json
import zlib
from datetime import timedelta
from typing import Optional

import streamlit as st
from loguru import logger

from catalog import Catalog, load_catalog
from config import settings
from defaults import create_default_catalog
from engine import GachaEngine, utc_now
from store import EventBus, MemoryStore

STARTING_BALANCE = {"player": {"jade": 10000, "spiritCrystals": 1000}}
EVENT_POOL_ID = "event_limited"
EVENT_DURATION = timedelta(days=14)


def serialize_store(data: dict) -> str:
    """Serialize a store snapshot to a compressed base64 string."""
    json_str = json.dumps(data, ensure_ascii=False)
    compressed = zlib.compress(json_str.encode(), level=9)
    return base64.urlsafe_b64encode(compressed).decode()


def deserialize_store(encoded: str) -> dict:
    """Deserialize a store snapshot from a compressed base64 string."""
    compressed = base64.urlsafe_b64decode(encoded.encode())
    return json.loads(zlib.decompress(compressed).decode())


def serialize_state() -> str:
    return serialize_store(st.session_state.store.snapshot())


def update_url():
    """Update URL parameters with current state."""
    st.query_params["state"] = serialize_state()


def load_session_catalog() -> Catalog:
    if settings.catalog_path:
        logger.info(f"Loading catalog from {settings.catalog_path}")
        return load_catalog(settings.catalog_path)
    return create_default_catalog()


def build_engine(data: dict) -> GachaEngine:
    """Create an initialized engine over a store holding ``data``."""
    store = MemoryStore(data)
    engine = GachaEngine(
        catalog=load_session_catalog(),
        store=store,
        events=EventBus(),
        config=settings,
    )
    engine.initialize()
    # Fresh sessions get the event pool opened for two weeks
    event_pool = engine.catalog.pool(EVENT_POOL_ID)
    if event_pool is not None and engine.pool_end_time(event_pool) is None:
        engine.set_event_end_time(EVENT_POOL_ID, utc_now() + EVENT_DURATION)
    return engine


def ensure_available_pool(engine: GachaEngine) -> Optional[str]:
    """Move off a current pool that is no longer available.

    Returns the id of the pool switched to, or None when nothing changed.
    """
    available = [pool.id for pool in engine.get_available_pools()]
    if not available or engine.current_pool in available:
        return None
    previous = engine.current_pool
    engine.switch_pool(available[0])
    logger.info(f"Pool {previous} is no longer available, switched to {available[0]}")
    return available[0]


def initialize_session_state():
    """Initialize session state from URL or defaults."""
    if "initialized" not in st.session_state:
        st.session_state.initialized = True
        data = STARTING_BALANCE
        params = st.query_params
        if "state" in params:
            try:
                data = deserialize_store(params["state"])
            except (ValueError, zlib.error) as e:
                logger.warning(f"Ignoring malformed state parameter: {e}")
        engine = build_engine(data)
        st.session_state.engine = engine
        st.session_state.store = engine.store
        st.session_state.last_outcome = None
