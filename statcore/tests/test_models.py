from __future__ import annotations

import pydantic
import pytest

from statcore.exceptions import ValidationError
from statcore.models import (
    CatalogGraph,
    FilterCriteria,
    GroupNode,
    ParentMap,
    SourceSeries,
    VariableNode,
)


def test_source_series_is_frozen(census_pep) -> None:
    with pytest.raises(pydantic.ValidationError):
        census_pep.provider = "Other"


def test_source_series_values_are_read_only(census_pep) -> None:
    raw = {"2020": 1.0}
    series = SourceSeries(values=raw)
    raw["2020"] = 5.0

    with pytest.raises(TypeError):
        census_pep.values["2011"] = 99
    with pytest.raises(TypeError):
        SourceSeries().values["2020"] = 1
    assert census_pep.values["2011"] == 100
    assert series.values == {"2020": 1.0}


def test_facet_drops_values(census_pep) -> None:
    facet = census_pep.facet()

    assert facet.provider == "CensusPEP"
    assert facet.measurement_method == "CensusPEPSurvey"
    assert "values" not in facet.model_dump()
    assert census_pep.has_date("2011")
    assert not census_pep.has_date("2013")


def test_filter_criteria_constraints() -> None:
    criteria = FilterCriteria(unit="USDollar", observation_period="")

    assert criteria.constraints() == {"unit": "USDollar"}
    assert criteria.matches(SourceSeries(unit="USDollar", observation_period="P1Y"))
    assert not criteria.matches(SourceSeries(unit="Euro"))


def test_catalog_nodes_are_tagged() -> None:
    graph = CatalogGraph.model_validate({
        "nodes": {
            "g": {"kind": "group", "id": "g", "search_name": "Health", "child_variable_ids": ["v"]},
            "v": {"kind": "variable", "id": "v", "search_name": "Obesity", "specificity": 4},
        }
    })

    assert isinstance(graph.get("g"), GroupNode)
    assert isinstance(graph.get("v"), VariableNode)
    assert [g.id for g in graph.groups()] == ["g"]
    assert graph.get("v").specificity == 4


def test_catalog_rejects_unknown_kind() -> None:
    with pytest.raises(pydantic.ValidationError):
        CatalogGraph.model_validate({"nodes": {"x": {"kind": "place", "id": "x"}}})


def test_catalog_rejects_mismatched_keys() -> None:
    with pytest.raises(pydantic.ValidationError):
        CatalogGraph(nodes={"a": VariableNode(id="b")})


def test_from_group_nodes_merges_shared_variables() -> None:
    graph = CatalogGraph.from_group_nodes({
        "dc/g/A": {
            "absolute_name": "Group A",
            "child_groups": ["dc/g/B"],
            "child_variables": [{"id": "v1"}],
        },
        "dc/g/B": {
            "absolute_name": "Group B",
            "display_name": "B",
            "child_variables": [{"id": "v1", "search_name": "Variable One", "display_name": "One"}],
        },
    })

    group_a = graph.get("dc/g/A")
    assert group_a.search_name == "Group A"
    assert group_a.display_name == "Group A"
    assert group_a.child_group_ids == ("dc/g/B",)
    assert graph.get("dc/g/B").ranking_name == "B"
    assert graph.get("v1").search_name == "Variable One"
    assert graph.get("v1").ranking_name == "One"
    assert len(graph.variables()) == 1


def test_parent_map_mapping_protocol() -> None:
    parent_map = ParentMap({"v": ["g1", "g2"]})

    assert parent_map["v"] == ("g1", "g2")
    assert parent_map.parents("missing") == ()
    assert dict(parent_map) == {"v": ("g1", "g2")}
    assert len(parent_map) == 1


@pytest.mark.parametrize(
    "raw",
    [
        ["dc/g/A"],
        {"dc/g/A": "Group A"},
        {"dc/g/A": {"child_groups": [{"name": "dc/g/B"}]}},
    ],
)
def test_from_group_nodes_rejects_bad_structure(raw) -> None:
    with pytest.raises(ValidationError):
        CatalogGraph.from_group_nodes(raw)
