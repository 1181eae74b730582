"""
Statcore Data Models

Observation series (per-provider source series and the merged series a
request resolves), the variable catalog graph, and the frozen search
index structures built from it.
"""
from collections import deque
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Annotated, Dict, FrozenSet, Iterator, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .exceptions import ValidationError


# ============================================================================
# Observations
# ============================================================================

class Facet(BaseModel):
    """Metadata identity of one source series (everything but its values)."""

    model_config = ConfigDict(frozen=True)

    provider: str = ""
    measurement_method: str = ""
    observation_period: str = ""
    unit: str = ""
    scaling_factor: str = ""
    provenance_url: str = ""


class SourceSeries(BaseModel):
    """
    One provider's observations for a single (variable, entity) pair.

    Dates are zero-padded ISO-like strings of uniform granularity
    ("2019", "2019-04", "2019-04-01"), so string order is date order.
    """

    model_config = ConfigDict(frozen=True)

    values: Mapping[str, float] = Field(default_factory=dict, validate_default=True)
    provider: str = ""
    measurement_method: str = ""
    observation_period: str = ""
    unit: str = ""
    scaling_factor: str = ""
    provenance_url: str = ""

    @field_validator("values")
    @classmethod
    def freeze_values(cls, v: Mapping[str, float]) -> Mapping[str, float]:
        return MappingProxyType(dict(v))

    def facet(self) -> Facet:
        return Facet(**self.model_dump(exclude={"values"}))

    def has_date(self, date: str) -> bool:
        return date in self.values


class ObservationTimeSeries(BaseModel):
    """
    All source series available for one (variable, entity) pair.

    Built by the caller from raw provider batches, then filtered and
    ranked in place exactly once; after that ``source_series`` is in
    best-first order and ``resolved_values`` / ``provenance_url`` hold
    the answer taken from the best source.
    """

    variable: str = ""
    entity: str = ""
    source_series: List[SourceSeries] = Field(default_factory=list)
    resolved_values: Dict[str, float] = Field(default_factory=dict)
    provenance_url: str = ""


class FilterCriteria(BaseModel):
    """Optional exact-match constraints applied before ranking."""

    model_config = ConfigDict(frozen=True)

    measurement_method: Optional[str] = None
    unit: Optional[str] = None
    observation_period: Optional[str] = None

    def constraints(self) -> Dict[str, str]:
        """Non-empty fields only."""
        return {name: value for name, value in self.model_dump().items() if value}

    def is_empty(self) -> bool:
        return not self.constraints()

    def matches(self, series: SourceSeries) -> bool:
        return all(getattr(series, name) == value for name, value in self.constraints().items())


class PointStat(BaseModel):
    """A single resolved observation together with the facet that produced it."""

    model_config = ConfigDict(frozen=True)

    date: str
    value: float
    facet: Facet


# ============================================================================
# Catalog graph
# ============================================================================

class VariableNode(BaseModel):
    """Leaf of the catalog: a statistical variable."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["variable"] = "variable"
    id: str
    display_name: str = ""
    search_name: str = ""
    specificity: Optional[float] = None

    @property
    def ranking_name(self) -> str:
        return self.display_name or self.search_name


class GroupNode(BaseModel):
    """Interior catalog node grouping variables and other groups."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["group"] = "group"
    id: str
    display_name: str = ""
    search_name: str = ""
    specificity: Optional[float] = None
    child_group_ids: Tuple[str, ...] = ()
    child_variable_ids: Tuple[str, ...] = ()

    @property
    def ranking_name(self) -> str:
        return self.display_name or self.search_name

    @property
    def child_ids(self) -> Tuple[str, ...]:
        return self.child_group_ids + self.child_variable_ids


CatalogNode = Annotated[Union[VariableNode, GroupNode], Field(discriminator="kind")]


class CatalogGraph(BaseModel):
    """
    Snapshot of the variable hierarchy supplied by the catalog loader.

    A node may have several parents (the hierarchy is a DAG). Child ids
    that are not present in ``nodes`` are allowed; they take part in the
    parent map but cannot be searched.
    """

    nodes: Dict[str, CatalogNode] = Field(default_factory=dict)

    @model_validator(mode="after")
    def check_node_keys(self):
        for key, node in self.nodes.items():
            if key != node.id:
                raise ValueError(f"catalog key '{key}' does not match node id '{node.id}'")
        return self

    def get(self, node_id: str) -> Optional[Union[VariableNode, GroupNode]]:
        return self.nodes.get(node_id)

    def groups(self) -> List[GroupNode]:
        return [node for node in self.nodes.values() if isinstance(node, GroupNode)]

    def variables(self) -> List[VariableNode]:
        return [node for node in self.nodes.values() if isinstance(node, VariableNode)]

    @classmethod
    def from_group_nodes(cls, raw_groups: Mapping) -> "CatalogGraph":
        """
        Build a graph from the nested group layout emitted by the catalog loader.

        Args:
            raw_groups: Mapping of group id to a dict with ``absolute_name``
                (or ``search_name``), optional ``display_name`` and
                ``specificity``, ``child_groups`` (ids, or dicts with ``id``)
                and ``child_variables`` (dicts with ``id``, ``search_name``,
                ``display_name`` and optional ``specificity``).

        Returns:
            CatalogGraph with one node per group and per distinct variable.
            A variable listed under several groups keeps the first
            definition that carries a search name.

        Raises:
            ValidationError: If the payload or a group entry is not a mapping,
                or a child entry has no id
        """
        nodes: Dict[str, Union[VariableNode, GroupNode]] = {}
        variables: Dict[str, VariableNode] = {}

        if not isinstance(raw_groups, Mapping):
            raise ValidationError("Catalog must map group ids to groups", field="groups")

        for group_id, raw in raw_groups.items():
            raw = raw or {}
            if not isinstance(raw, Mapping):
                raise ValidationError(f"Catalog group {group_id} is not a mapping", field=str(group_id))
            child_groups = tuple(_child_id(child) for child in raw.get("child_groups", []))
            child_variable_ids = []
            for raw_var in raw.get("child_variables", []):
                var_id = _child_id(raw_var)
                child_variable_ids.append(var_id)
                if not isinstance(raw_var, Mapping):
                    variables.setdefault(var_id, VariableNode(id=var_id))
                    continue
                candidate = VariableNode(
                    id=var_id,
                    display_name=raw_var.get("display_name") or "",
                    search_name=raw_var.get("search_name") or "",
                    specificity=raw_var.get("specificity"),
                )
                existing = variables.get(var_id)
                if existing is None or (not existing.search_name and candidate.search_name):
                    variables[var_id] = candidate

            search_name = raw.get("search_name") or raw.get("absolute_name") or ""
            nodes[group_id] = GroupNode(
                id=group_id,
                display_name=raw.get("display_name") or search_name,
                search_name=search_name,
                specificity=raw.get("specificity"),
                child_group_ids=child_groups,
                child_variable_ids=tuple(child_variable_ids),
            )

        for var_id, variable in variables.items():
            # A group definition wins over a variable with the same id
            nodes.setdefault(var_id, variable)
        return cls(nodes=nodes)


def _child_id(child) -> str:
    if isinstance(child, Mapping):
        if not child.get("id"):
            raise ValidationError("Catalog child entry has no id", field="id")
        return str(child["id"])
    return str(child)


# ============================================================================
# Search index
# ============================================================================

@dataclass(frozen=True)
class TrieNode:
    """
    One arena slot of the search trie.

    ``children`` maps a character to the arena index of the child node.
    The id sets hold every id whose token passes through this node, so a
    prefix lookup never has to descend into the subtree.
    """

    children: Mapping[str, int]
    variable_ids: FrozenSet[str] = frozenset()
    group_ids: FrozenSet[str] = frozenset()


@dataclass(frozen=True)
class RankingInfo:
    specificity: float
    display_name: str


@dataclass(frozen=True)
class SearchIndex:
    """Frozen prefix index: trie arena (root at slot 0) plus per-id ranking data."""

    nodes: Tuple[TrieNode, ...]
    ranking: Mapping[str, RankingInfo]

    @property
    def root(self) -> TrieNode:
        return self.nodes[0]

    def walk(self, prefix: str) -> Optional[TrieNode]:
        """Follow ``prefix`` from the root; None when the path does not exist."""
        slot = 0
        for char in prefix:
            child = self.nodes[slot].children.get(char)
            if child is None:
                return None
            slot = child
        return self.nodes[slot]

    def __len__(self) -> int:
        return len(self.nodes)


class ParentMap(Mapping):
    """
    Read-only map of catalog id -> direct parent group ids.

    Parents are listed in discovery order without duplicates.
    """

    def __init__(self, parents: Optional[Mapping[str, Tuple[str, ...]]] = None):
        self._parents = MappingProxyType({key: tuple(value) for key, value in (parents or {}).items()})

    def __getitem__(self, node_id: str) -> Tuple[str, ...]:
        return self._parents[node_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._parents)

    def __len__(self) -> int:
        return len(self._parents)

    def __repr__(self) -> str:
        return f"ParentMap({dict(self._parents)!r})"

    def parents(self, node_id: str) -> Tuple[str, ...]:
        return self._parents.get(node_id, ())

    def ancestors(self, node_id: str) -> List[str]:
        """All transitive ancestors, nearest first (breadth-first, deduplicated)."""
        seen = set()
        ordered: List[str] = []
        queue = deque(self.parents(node_id))
        while queue:
            parent = queue.popleft()
            if parent in seen or parent == node_id:
                continue
            seen.add(parent)
            ordered.append(parent)
            queue.extend(self.parents(parent))
        return ordered

    def to_dict(self) -> Dict[str, List[str]]:
        return {key: list(value) for key, value in self._parents.items()}


@dataclass(frozen=True)
class EntityInfo:
    """Search hit returned to the request layer."""

    id: str
    display_name: str
