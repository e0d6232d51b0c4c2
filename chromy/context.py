"""Execution contexts: the top-level document or a nested (frame) document.

The top-level context caches the root node id and drops it when the browser reports
``DOM.documentUpdated``. A nested context never caches its remote object: the embedded
document can be replaced between calls, so every evaluation resolves it again.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Protocol

logger = logging.getLogger("chromy.context")


class NodeResolver(Protocol):
    async def get_document_root(self) -> int | None: ...

    async def resolve_node(self, node_id: int) -> str | None: ...

    def on_document_updated(self, callback: Callable[[], None]) -> Callable[[], None]: ...


class EvaluationContext:
    def __init__(self, transport: NodeResolver | None, node_id: int | None = None) -> None:
        self.transport = transport
        # Set only for nested contexts; never cleared.
        self.original_node_id = node_id
        self.node_id = node_id
        self._unsubscribe: Callable[[], None] | None = None

    @property
    def nested(self) -> bool:
        return self.original_node_id is not None

    def watch_document_updates(self) -> None:
        """Subscribe (once) to document replacement to drop the cached node id."""
        if self._unsubscribe is not None or self.transport is None:
            return
        self._unsubscribe = self.transport.on_document_updated(self.invalidate)

    def invalidate(self) -> None:
        # Nested contexts fall back to their frame owner id; resolve_node reports staleness.
        self.node_id = self.original_node_id
        logger.debug("execution context invalidated (nested=%s)", self.nested)

    async def get_node_id(self) -> int | None:
        if self.node_id is None:
            self.watch_document_updates()
            self.node_id = await self.transport.get_document_root()
        return self.node_id

    async def resolve(self) -> str | None:
        """Return a fresh remote object id for this context, or None if not resolvable."""
        node_id = await self.get_node_id()
        if node_id is None:
            return None
        return await self.transport.resolve_node(node_id)


__all__ = ["EvaluationContext", "NodeResolver"]
