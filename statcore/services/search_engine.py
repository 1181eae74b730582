"""
Search Query Engine - Multi-token prefix search over the catalog index

Each token is looked up by walking the trie; the node it reaches already
holds every id whose token starts with it. Candidates are intersected
across tokens (AND semantics), then ordered most-general first:
ascending specificity, then display name, then id.
"""
from __future__ import annotations

import logging
from typing import AbstractSet, Iterable, List, Optional, Tuple

from ..config import get_settings
from ..models import EntityInfo, SearchIndex
from .catalog_indexer import tokenize

logger = logging.getLogger(__name__)


class SearchQueryEngine:
    """Stateless query evaluation against a frozen SearchIndex"""

    def __init__(self, default_limit: Optional[int] = None):
        """
        Args:
            default_limit: Results per kind when search() gets no limit;
                defaults to STATCORE_SEARCH_LIMIT (0 = unlimited)
        """
        if default_limit is None:
            default_limit = get_settings().search_limit
        self.default_limit = default_limit

    @staticmethod
    def normalize_tokens(tokens: Iterable[str]) -> List[str]:
        """
        Lowercase tokens and split them the way the indexer splits search names.

        ``"count_person"`` becomes ``["count", "person"]``; blank tokens are
        dropped and repeats collapse to their first occurrence.
        """
        normalized: List[str] = []
        for token in tokens:
            normalized.extend(tokenize(token or ""))
        return list(dict.fromkeys(normalized))

    def search(
        self,
        tokens: Iterable[str],
        index: SearchIndex,
        limit: Optional[int] = None,
    ) -> Tuple[List[EntityInfo], List[EntityInfo]]:
        """
        Search variables and groups matching every token.

        Args:
            tokens: Query tokens; each matches any indexed token it prefixes
            index: Frozen search index
            limit: Maximum results per kind (None = default, 0 = unlimited)

        Returns:
            (variables, groups), each ranked best-first; either may be empty
        """
        normalized = self.normalize_tokens(tokens)
        if not normalized:
            return [], []

        variable_ids: Optional[AbstractSet[str]] = None
        group_ids: Optional[AbstractSet[str]] = None
        for token in normalized:
            node = index.walk(token)
            if node is None:
                logger.debug(f"Search token '{token}' has no match")
                return [], []
            variable_ids = node.variable_ids if variable_ids is None else variable_ids & node.variable_ids
            group_ids = node.group_ids if group_ids is None else group_ids & node.group_ids
            if not variable_ids and not group_ids:
                return [], []

        if limit is None:
            limit = self.default_limit
        variables = self._rank(variable_ids, index, limit)
        groups = self._rank(group_ids, index, limit)
        logger.debug(f"Search {normalized} matched {len(variables)} variables, {len(groups)} groups")
        return variables, groups

    def search_text(
        self,
        query: str,
        index: SearchIndex,
        limit: Optional[int] = None,
    ) -> Tuple[List[EntityInfo], List[EntityInfo]]:
        """Split free text the same way search names are split, then search."""
        return self.search(tokenize(query), index, limit)

    @staticmethod
    def _rank(ids: AbstractSet[str], index: SearchIndex, limit: int) -> List[EntityInfo]:
        def sort_key(node_id: str):
            info = index.ranking.get(node_id)
            if info is None:
                return (float("inf"), node_id, node_id)
            return (info.specificity, info.display_name, node_id)

        ordered = sorted(ids, key=sort_key)
        if limit:
            ordered = ordered[:limit]
        results = []
        for node_id in ordered:
            info = index.ranking.get(node_id)
            results.append(EntityInfo(id=node_id, display_name=info.display_name if info else node_id))
        return results


# Global instance
_search_engine: Optional[SearchQueryEngine] = None


def get_search_engine() -> SearchQueryEngine:
    """Get or create the global search engine."""
    global _search_engine
    if _search_engine is None:
        _search_engine = SearchQueryEngine()
    return _search_engine
