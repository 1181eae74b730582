"""
Shared pytest fixtures for statcore tests.

This module provides common fixtures used across all test modules.
Import fixtures from here instead of defining them in individual test files.
"""
from __future__ import annotations

import os
from typing import Dict, List

import pytest

# Set test environment before importing application modules
os.environ.setdefault("STATCORE_ENV", "test")

from statcore.config import get_settings
from statcore.models import CatalogGraph, GroupNode, SourceSeries, VariableNode
from statcore.services import (
    catalog_indexer,
    index_registry,
    ranking_table,
    search_engine,
    series_resolver,
    source_ranker,
)


# ============================================================================
# Environment Fixtures
# ============================================================================

@pytest.fixture(autouse=True)
def test_environment():
    """Isolate environment variables and cached globals for every test."""
    old_env = os.environ.copy()
    os.environ["STATCORE_ENV"] = "test"
    for key in list(os.environ):
        if key.startswith("STATCORE_") and key != "STATCORE_ENV":
            del os.environ[key]
    _reset_globals()
    yield
    os.environ.clear()
    os.environ.update(old_env)
    _reset_globals()


def _reset_globals() -> None:
    get_settings.cache_clear()
    ranking_table._ranking_table = None
    source_ranker._source_ranker = None
    series_resolver._series_resolver = None
    catalog_indexer._catalog_indexer = None
    search_engine._search_engine = None
    index_registry._index_registry = None


# ============================================================================
# Observation Fixtures
# ============================================================================

@pytest.fixture
def census_pep() -> SourceSeries:
    return SourceSeries(
        values={"2011": 100, "2012": 101},
        provider="CensusPEP",
        measurement_method="CensusPEPSurvey",
        provenance_url="census.gov",
    )


@pytest.fixture
def census_acs() -> SourceSeries:
    return SourceSeries(
        values={"2011": 101, "2012": 102, "2013": 103},
        provider="CensusACS5YearSurvey",
        measurement_method="CensusACS5yrSurvey",
        provenance_url="census.gov",
    )


@pytest.fixture
def unranked_source() -> SourceSeries:
    return SourceSeries(
        values={"2011": 101, "2012": 102, "2013": 105, "2014": 200},
        provider="randomImportName",
        measurement_method="randomMMethod",
        provenance_url="example.org",
    )


@pytest.fixture
def three_sources(unranked_source, census_acs, census_pep) -> List[SourceSeries]:
    """Unranked source first, so any ranking has to reorder them."""
    return [unranked_source, census_acs, census_pep]


# ============================================================================
# Catalog Fixtures
# ============================================================================

@pytest.fixture
def hierarchy_graph() -> CatalogGraph:
    """svgX -> {svgY, svgZ}; svgY -> {svgZ, sv1}; svgZ -> {sv1, sv2}."""
    return CatalogGraph.from_group_nodes({
        "svgX": {"child_groups": [{"id": "svgY"}, {"id": "svgZ"}]},
        "svgY": {
            "child_groups": [{"id": "svgZ"}],
            "child_variables": [{"id": "sv1", "search_name": "Name 1"}],
        },
        "svgZ": {
            "child_variables": [
                {"id": "sv1", "search_name": "Name 1"},
                {"id": "sv2", "search_name": "Name 2"},
            ],
        },
    })


@pytest.fixture
def search_graph() -> CatalogGraph:
    """Two groups with overlapping tokens; specificity comes from the ids."""
    return CatalogGraph.from_group_nodes({
        "group_1": {
            "absolute_name": "ab1 zdx",
            "child_groups": [{"id": "group_3_1"}],
            "child_variables": [
                {"id": "sv_1_1", "search_name": "ab1 ac3", "display_name": "sv1"},
                {"id": "sv_1_2", "search_name": "ac3, bd", "display_name": "sv2"},
            ],
        },
        "group_3_1": {
            "absolute_name": "zdx, bd",
            "child_variables": [
                {"id": "sv_3", "search_name": "zdx", "display_name": "sv3"},
                {"id": "sv3", "search_name": "bd,", "display_name": "sv4"},
            ],
        },
    })


@pytest.fixture
def population_graph() -> CatalogGraph:
    """Small realistic catalog with precomputed specificity scores."""
    nodes: Dict[str, object] = {
        "dc/g/Root": GroupNode(
            id="dc/g/Root",
            search_name="Statistical Variables",
            specificity=1,
            child_group_ids=("dc/g/Demographics",),
        ),
        "dc/g/Demographics": GroupNode(
            id="dc/g/Demographics",
            display_name="Demographics",
            search_name="Demographics, Population",
            specificity=1,
            child_variable_ids=("Count_Person", "Count_Person_Female", "Median_Age_Person"),
        ),
        "Count_Person": VariableNode(
            id="Count_Person",
            display_name="Total Population",
            search_name="Population, Count, Person",
            specificity=2,
        ),
        "Count_Person_Female": VariableNode(
            id="Count_Person_Female",
            display_name="Female Population",
            search_name="Population, Count, Person, Female",
            specificity=3,
        ),
        "Median_Age_Person": VariableNode(
            id="Median_Age_Person",
            display_name="Median Age",
            search_name="Median Age of Population",
            specificity=3,
        ),
    }
    return CatalogGraph(nodes=nodes)
