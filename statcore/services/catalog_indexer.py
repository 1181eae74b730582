#!/usr/bin/env python3
"""
Catalog Indexer Service - Builds the variable search index and parent map

This service walks a catalog graph snapshot once and produces:

- a ParentMap (catalog id -> direct parent groups, for hierarchy navigation)
- a SearchIndex (character trie over search-name tokens + ranking data)

Every trie node stores all ids found anywhere below it, so a query for a
prefix costs one walk of the prefix and no subtree traversal.

The output depends only on the graph's content: nodes and groups are
processed in sorted id order and the result is frozen.
"""

import logging
import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, List, Optional, Set, Tuple, Union

from ..exceptions import CyclicCatalogGraphError, MalformedCatalogNodeError
from ..models import (
    CatalogGraph,
    GroupNode,
    ParentMap,
    RankingInfo,
    SearchIndex,
    TrieNode,
    VariableNode,
)
from .specificity import SpecificityScorer, precomputed_or_approximate

logger = logging.getLogger(__name__)

# Alphanumeric runs; everything else (spaces, commas, "_", punctuation) separates tokens
_TOKEN_PATTERN = re.compile(r"[^\W_]+")


def tokenize(text: str) -> List[str]:
    """
    Split text into lowercase search tokens

    Args:
        text: Search name or free-text query

    Returns:
        Distinct tokens in order of first appearance
    """
    if not text:
        return []
    return list(dict.fromkeys(_TOKEN_PATTERN.findall(text.lower())))


@dataclass
class IndexBuildStats:
    """Counters describing one index build"""

    variables_indexed: int = 0
    groups_indexed: int = 0
    nodes_skipped: int = 0
    trie_nodes: int = 0
    parent_entries: int = 0
    skipped_ids: List[str] = field(default_factory=list)


@dataclass
class _BuildSlot:
    children: Dict[str, int] = field(default_factory=dict)
    variable_ids: Set[str] = field(default_factory=set)
    group_ids: Set[str] = field(default_factory=set)


class _TrieBuilder:
    """Mutable trie arena used during a build, frozen at the end"""

    def __init__(self):
        self.slots: List[_BuildSlot] = [_BuildSlot()]

    def insert(self, token: str, node_id: str, is_group: bool) -> None:
        slot = 0
        for char in token:
            child = self.slots[slot].children.get(char)
            if child is None:
                child = len(self.slots)
                self.slots.append(_BuildSlot())
                self.slots[slot].children[char] = child
            slot = child
            # Every prefix node carries the id, not only the token's last node
            if is_group:
                self.slots[slot].group_ids.add(node_id)
            else:
                self.slots[slot].variable_ids.add(node_id)

    def freeze(self) -> Tuple[TrieNode, ...]:
        return tuple(
            TrieNode(
                children=MappingProxyType(dict(sorted(slot.children.items()))),
                variable_ids=frozenset(slot.variable_ids),
                group_ids=frozenset(slot.group_ids),
            )
            for slot in self.slots
        )


def _child_groups(graph: CatalogGraph, group_id: str) -> List[str]:
    node = graph.get(group_id)
    if not isinstance(node, GroupNode):
        return []
    return [child for child in node.child_group_ids if isinstance(graph.get(child), GroupNode)]


def find_cycle(graph: CatalogGraph) -> Optional[List[str]]:
    """
    Find a cycle among group -> child group edges

    Returns:
        Group ids along the cycle with the first id repeated at the end,
        or None when the group hierarchy is acyclic
    """
    visiting, done = 1, 2
    state: Dict[str, int] = {}

    for start in sorted(group.id for group in graph.groups()):
        if start in state:
            continue
        path = [start]
        state[start] = visiting
        stack = [iter(_child_groups(graph, start))]
        while stack:
            child = next(stack[-1], None)
            if child is None:
                state[path.pop()] = done
                stack.pop()
                continue
            child_state = state.get(child)
            if child_state == visiting:
                return path[path.index(child):] + [child]
            if child_state is None:
                state[child] = visiting
                path.append(child)
                stack.append(iter(_child_groups(graph, child)))
    return None


def build_parent_map(graph: CatalogGraph) -> ParentMap:
    """
    Map every child id to the groups that list it directly

    Groups are visited in sorted id order and a parent is appended only
    once, so each list is duplicate-free and independent of input order.
    Transitive ancestors are available through ParentMap.ancestors().
    """
    parents: Dict[str, List[str]] = {}
    for group in sorted(graph.groups(), key=lambda g: g.id):
        for child_id in group.child_ids:
            bucket = parents.setdefault(child_id, [])
            if group.id not in bucket:
                bucket.append(group.id)
    return ParentMap({child_id: tuple(bucket) for child_id, bucket in parents.items()})


class CatalogIndexer:
    """One-shot builder of the catalog search index and parent map"""

    def __init__(self, scorer: Optional[SpecificityScorer] = None):
        """
        Initialize the catalog indexer

        Args:
            scorer: Specificity scorer used for RankingInfo; defaults to the
                node's precomputed score with an id-based fallback
        """
        self.scorer = scorer or precomputed_or_approximate()

    def build(self, graph: CatalogGraph, include_groups: bool = True) -> Tuple[SearchIndex, ParentMap]:
        """
        Build the search index and parent map for a catalog snapshot

        Args:
            graph: Catalog graph (must be acyclic)
            include_groups: Index group ids as well as variable ids

        Returns:
            (SearchIndex, ParentMap)

        Raises:
            CyclicCatalogGraphError: If the group hierarchy contains a cycle
        """
        search_index, parent_map, _ = self.build_with_stats(graph, include_groups)
        return search_index, parent_map

    def build_with_stats(
        self,
        graph: CatalogGraph,
        include_groups: bool = True,
    ) -> Tuple[SearchIndex, ParentMap, IndexBuildStats]:
        """Same as build(), also returning the build counters"""
        cycle = find_cycle(graph)
        if cycle:
            raise CyclicCatalogGraphError(
                f"Catalog group hierarchy contains a cycle: {' -> '.join(cycle)}",
                cycle=cycle,
            )

        parent_map = build_parent_map(graph)
        search_index, stats = self._build_search_index(graph, include_groups)
        stats.parent_entries = len(parent_map)

        logger.info(
            f"Built catalog index: {stats.variables_indexed} variables, "
            f"{stats.groups_indexed} groups, {stats.trie_nodes} trie nodes, "
            f"{stats.nodes_skipped} skipped"
        )
        return search_index, parent_map, stats

    def _tokens_for(self, node: Union[VariableNode, GroupNode]) -> List[str]:
        if not node.search_name or not node.search_name.strip():
            raise MalformedCatalogNodeError("missing search name", node_id=node.id)
        tokens = tokenize(node.search_name)
        if not tokens:
            raise MalformedCatalogNodeError(
                f"search name '{node.search_name}' has no searchable tokens",
                node_id=node.id,
            )
        return tokens

    def _build_search_index(
        self,
        graph: CatalogGraph,
        include_groups: bool,
    ) -> Tuple[SearchIndex, IndexBuildStats]:
        builder = _TrieBuilder()
        ranking: Dict[str, RankingInfo] = {}
        stats = IndexBuildStats()

        for node_id in sorted(graph.nodes):
            node = graph.nodes[node_id]
            is_group = isinstance(node, GroupNode)
            if is_group and not include_groups:
                continue

            try:
                tokens = self._tokens_for(node)
            except MalformedCatalogNodeError as e:
                logger.warning(f"Skipping catalog node {node_id} for search: {e.message}")
                stats.nodes_skipped += 1
                stats.skipped_ids.append(node_id)
                continue

            for token in tokens:
                builder.insert(token, node_id, is_group)
            ranking[node_id] = RankingInfo(
                specificity=self.scorer(node),
                display_name=node.ranking_name,
            )
            if is_group:
                stats.groups_indexed += 1
            else:
                stats.variables_indexed += 1

        nodes = builder.freeze()
        stats.trie_nodes = len(nodes)
        return SearchIndex(nodes=nodes, ranking=MappingProxyType(ranking)), stats


# Global instance
_catalog_indexer: Optional[CatalogIndexer] = None


def get_catalog_indexer() -> CatalogIndexer:
    """Get or create the global catalog indexer"""
    global _catalog_indexer
    if _catalog_indexer is None:
        _catalog_indexer = CatalogIndexer()
    return _catalog_indexer
