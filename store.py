"""Interfaces to the game-state store and event bus, with in-memory implementations.

The engine only depends on the protocols; ``MemoryStore`` and ``EventBus`` back
the dashboard and the tests.
"""

import copy
from collections import defaultdict
from collections.abc import Callable
from typing import Any, Optional, Protocol

from loguru import logger

EventHandler = Callable[[dict], None]


class GameStateStore(Protocol):
    def get(self, path: str) -> Any: ...

    def set(self, path: str, value: Any) -> None: ...

    def increment(self, path: str, delta: float) -> None: ...

    def update(self, patch: dict, meta: dict) -> None: ...


class EventPublisher(Protocol):
    def emit(self, event: str, payload: dict) -> None: ...


class MemoryStore:
    """Nested-dict store addressed by dotted paths (``"player.jade"``)."""

    def __init__(self, data: Optional[dict] = None) -> None:
        self.data: dict = copy.deepcopy(data) if data else {}
        self.update_log: list[tuple[dict, dict]] = []

    def get(self, path: str) -> Any:
        node: Any = self.data
        for key in path.split("."):
            if not isinstance(node, dict) or key not in node:
                return None
            node = node[key]
        return node

    def set(self, path: str, value: Any) -> None:
        *parents, leaf = path.split(".")
        node = self.data
        for key in parents:
            node = node.setdefault(key, {})
        node[leaf] = value

    def increment(self, path: str, delta: float) -> None:
        self.set(path, (self.get(path) or 0) + delta)

    def update(self, patch: dict, meta: dict) -> None:
        """Deep-merge ``patch`` into the store in one step."""
        _merge(self.data, copy.deepcopy(patch))
        self.update_log.append((patch, meta))

    def snapshot(self) -> dict:
        return copy.deepcopy(self.data)


def _merge(target: dict, patch: dict) -> None:
    for key, value in patch.items():
        if isinstance(value, dict) and isinstance(target.get(key), dict):
            _merge(target[key], value)
        else:
            target[key] = value


class EventBus:
    """Synchronous publish/subscribe bus."""

    def __init__(self) -> None:
        self._handlers: defaultdict[str, list[EventHandler]] = defaultdict(list)

    def on(self, event: str, handler: EventHandler) -> None:
        self._handlers[event].append(handler)

    def emit(self, event: str, payload: dict) -> None:
        logger.debug(f"Event {event}")
        for handler in list(self._handlers[event]):
            handler(payload)
