"""
Source Series Ranker

Filters the candidate source series of an observation time series and
orders them best-first:

1. Series whose (provider, measurement method) pair is in the ranking
   table, by ascending priority.
2. Everything else, by provider name.

Remaining ties are broken on the other facet fields and finally on the
values themselves, so the order never depends on the order the caller
assembled the series in.
"""
from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Tuple

from ..models import FilterCriteria, ObservationTimeSeries, SourceSeries
from .ranking_table import RankingTable, get_ranking_table

logger = logging.getLogger(__name__)

_LISTED = 0
_UNLISTED = 1


class SourceSeriesRanker:
    """Filter + rank source series against a RankingTable."""

    def __init__(self, ranking_table: Optional[RankingTable] = None):
        self.ranking_table = ranking_table or get_ranking_table()

    def filter(
        self,
        series: Iterable[SourceSeries],
        criteria: Optional[FilterCriteria] = None,
    ) -> List[SourceSeries]:
        """Keep the series matching every non-empty criteria field exactly."""
        if criteria is None or criteria.is_empty():
            return list(series)
        return [s for s in series if criteria.matches(s)]

    def rank_key(self, series: SourceSeries) -> Tuple:
        priority = self.ranking_table.priority(series.provider, series.measurement_method)
        if priority is None:
            head: Tuple = (_UNLISTED, 0)
        else:
            head = (_LISTED, priority)
        return head + (
            series.provider,
            series.measurement_method,
            series.observation_period,
            series.unit,
            series.scaling_factor,
            series.provenance_url,
            tuple(sorted(series.values.items())),
        )

    def rank(self, series: Iterable[SourceSeries]) -> List[SourceSeries]:
        """Return the series best-first."""
        return sorted(series, key=self.rank_key)

    def filter_and_rank(
        self,
        time_series: ObservationTimeSeries,
        criteria: Optional[FilterCriteria] = None,
    ) -> ObservationTimeSeries:
        """
        Filter and rank ``time_series`` in place.

        Replaces ``source_series`` with the ranked survivors and sets
        ``resolved_values`` / ``provenance_url`` from the best one. When
        nothing survives both are emptied; that is a "no data" answer,
        not an error.

        Args:
            time_series: Series owned by the calling request
            criteria: Optional constraints; None or all-empty keeps everything

        Returns:
            The same ObservationTimeSeries, for chaining
        """
        candidates = self.filter(time_series.source_series, criteria)
        ranked = self.rank(candidates)
        time_series.source_series = ranked

        if ranked:
            best = ranked[0]
            time_series.resolved_values = dict(best.values)
            time_series.provenance_url = best.provenance_url
        else:
            time_series.resolved_values = {}
            time_series.provenance_url = ""
            if criteria is not None and not criteria.is_empty():
                logger.debug(
                    f"No source series for {time_series.variable or '?'}/{time_series.entity or '?'} "
                    f"match {criteria.constraints()}"
                )
        return time_series


# Global instance
_source_ranker: Optional[SourceSeriesRanker] = None


def get_source_ranker() -> SourceSeriesRanker:
    """Get or create the global ranker bound to the global ranking table."""
    global _source_ranker
    if _source_ranker is None:
        _source_ranker = SourceSeriesRanker()
    return _source_ranker
