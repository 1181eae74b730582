#!/usr/bin/env python3
"""
Build the catalog search index from a catalog JSON export.

The export uses the nested group layout: a JSON object mapping group id
to {absolute_name, child_groups, child_variables}. The script builds the
index, reports build counters and can run a query against it.

Usage:
    python3 scripts/build_search_index.py catalog.json
    python3 scripts/build_search_index.py catalog.json --query "median age" --limit 5
    python3 scripts/build_search_index.py catalog.json --ancestors Count_Person
"""

import argparse
import json
import logging
import sys
from pathlib import Path

# Add project root to Python path
project_dir = Path(__file__).parent.parent
sys.path.insert(0, str(project_dir))

from statcore.exceptions import StatCoreError
from statcore.models import CatalogGraph
from statcore.services.index_registry import IndexRegistry

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def load_catalog(path: Path) -> CatalogGraph:
    """Load a catalog export into a CatalogGraph."""
    with open(path, 'r', encoding='utf-8') as f:
        raw = json.load(f)
    return CatalogGraph.from_group_nodes(raw)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Build the catalog search index")
    parser.add_argument("catalog", type=Path, help="Catalog JSON export")
    parser.add_argument("--query", help="Free-text query to run after the build")
    parser.add_argument("--limit", type=int, default=10, help="Results per kind (0 = unlimited)")
    parser.add_argument("--variables-only", action="store_true", help="Do not index groups")
    parser.add_argument("--ancestors", help="Print the ancestor groups of this id")
    args = parser.parse_args(argv)

    try:
        graph = load_catalog(args.catalog)
        logger.info(f"Loaded {len(graph.groups())} groups and {len(graph.variables())} variables")

        registry = IndexRegistry()
        snapshot = registry.rebuild(graph, include_groups=not args.variables_only)
        stats = snapshot.stats
        logger.info(f"   - Variables indexed: {stats.variables_indexed}")
        logger.info(f"   - Groups indexed: {stats.groups_indexed}")
        logger.info(f"   - Trie nodes: {stats.trie_nodes}")
        logger.info(f"   - Nodes skipped: {stats.nodes_skipped}")

        if args.query:
            variables, groups = registry.engine.search_text(
                args.query, snapshot.search_index, limit=args.limit
            )
            logger.info(f"Query: '{args.query}'")
            for i, entity in enumerate(variables, 1):
                logger.info(f"    {i}. [variable] {entity.id:40} {entity.display_name}")
            for i, entity in enumerate(groups, 1):
                logger.info(f"    {i}. [group]    {entity.id:40} {entity.display_name}")

        if args.ancestors:
            logger.info(f"Ancestors of {args.ancestors}: {registry.ancestors(args.ancestors)}")

        return 0

    except (OSError, ValueError, StatCoreError) as e:
        logger.error(f"Error: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
