"""
Specificity scorers for catalog search ranking.

A specificity score says how narrowly a variable (or group) is defined;
lower scores are more general and rank first in search results. The
catalog normally ships a precomputed score per node. The indexer only
copies it, through a pluggable scorer, so a deployment can swap in a
different scoring rule without touching the index builder.
"""
from __future__ import annotations

from typing import Callable, Optional, Union

from ..config import get_settings
from ..models import GroupNode, VariableNode

SpecificityScorer = Callable[[Union[VariableNode, GroupNode]], float]

# Score for ids that carry no "_"-separated constraints (e.g. "dc/abc123")
UNSTRUCTURED_SPECIFICITY = 30.0


def approximate_specificity(node_id: str, unstructured: float = UNSTRUCTURED_SPECIFICITY) -> float:
    """
    Approximate the number of defining constraints from an id.

    Structured ids join their constraints with "_": ``Count_Person`` -> 2,
    ``Count_Person_Female`` -> 3. Ids without that structure get
    ``unstructured``.
    """
    parts = [part for part in node_id.split("_") if part]
    if len(parts) < 2:
        return float(unstructured)
    return float(len(parts))


def precomputed_or_approximate(unstructured: Optional[float] = None) -> SpecificityScorer:
    """
    Scorer that uses the node's precomputed score and falls back to the id.

    Args:
        unstructured: Score for unstructured ids; defaults to
            STATCORE_UNSTRUCTURED_SPECIFICITY
    """
    if unstructured is None:
        unstructured = get_settings().unstructured_specificity

    def score(node: Union[VariableNode, GroupNode]) -> float:
        if node.specificity is not None:
            return float(node.specificity)
        return approximate_specificity(node.id, unstructured)

    return score


def id_structure_scorer(unstructured: float = UNSTRUCTURED_SPECIFICITY) -> SpecificityScorer:
    """Scorer that ignores precomputed scores and always derives one from the id."""

    def score(node: Union[VariableNode, GroupNode]) -> float:
        return approximate_specificity(node.id, unstructured)

    return score
