"""
Index Registry - Publishes catalog index snapshots

Holds exactly one reference to the current IndexSnapshot. A rebuild
constructs a complete new snapshot first and then replaces the
reference in a single assignment: queries already running keep the
snapshot they started with, new queries see the new one, and readers
never take a lock.

Usage:
    from statcore.services.index_registry import get_index_registry

    registry = get_index_registry()
    registry.rebuild(graph)
    variables, groups = registry.search(["median", "age"])
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Tuple

from ..config import get_settings
from ..models import CatalogGraph, EntityInfo, ParentMap, SearchIndex
from .catalog_indexer import CatalogIndexer, IndexBuildStats
from .search_engine import SearchQueryEngine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IndexSnapshot:
    """One published catalog version."""

    version: int
    search_index: SearchIndex
    parent_map: ParentMap
    stats: IndexBuildStats
    built_at: datetime


class IndexRegistry:
    """Single swappable handle to the current catalog index."""

    def __init__(
        self,
        indexer: Optional[CatalogIndexer] = None,
        engine: Optional[SearchQueryEngine] = None,
    ):
        self.indexer = indexer or CatalogIndexer()
        self.engine = engine or SearchQueryEngine()
        self._snapshot: Optional[IndexSnapshot] = None
        self._version = 0
        # Serializes publishers only
        self._publish_lock = threading.Lock()

    def current(self) -> Optional[IndexSnapshot]:
        """Snapshot visible to new readers, or None before the first publish."""
        return self._snapshot

    def publish(
        self,
        search_index: SearchIndex,
        parent_map: ParentMap,
        stats: Optional[IndexBuildStats] = None,
    ) -> IndexSnapshot:
        """Publish an already built index as the new current snapshot."""
        with self._publish_lock:
            self._version += 1
            snapshot = IndexSnapshot(
                version=self._version,
                search_index=search_index,
                parent_map=parent_map,
                stats=stats or IndexBuildStats(trie_nodes=len(search_index)),
                built_at=datetime.now(timezone.utc),
            )
            self._snapshot = snapshot
        logger.info(f"Published catalog index version {snapshot.version}")
        return snapshot

    def rebuild(self, graph: CatalogGraph, include_groups: Optional[bool] = None) -> IndexSnapshot:
        """
        Build a fresh index for ``graph`` and publish it.

        The previous snapshot stays current if the build fails.

        Raises:
            CyclicCatalogGraphError: If the group hierarchy contains a cycle
        """
        if include_groups is None:
            include_groups = get_settings().index_include_groups
        search_index, parent_map, stats = self.indexer.build_with_stats(graph, include_groups)
        return self.publish(search_index, parent_map, stats)

    def search(
        self,
        tokens: Iterable[str],
        limit: Optional[int] = None,
    ) -> Tuple[List[EntityInfo], List[EntityInfo]]:
        """Search the current snapshot; empty results before the first publish."""
        snapshot = self._snapshot
        if snapshot is None:
            logger.warning("Search requested before any catalog index was published")
            return [], []
        return self.engine.search(tokens, snapshot.search_index, limit)

    def ancestors(self, node_id: str) -> List[str]:
        """Transitive ancestor groups of ``node_id`` in the current snapshot."""
        snapshot = self._snapshot
        if snapshot is None:
            return []
        return snapshot.parent_map.ancestors(node_id)


# Global instance
_index_registry: Optional[IndexRegistry] = None


def get_index_registry() -> IndexRegistry:
    """Get or create the global index registry."""
    global _index_registry
    if _index_registry is None:
        _index_registry = IndexRegistry()
    return _index_registry
