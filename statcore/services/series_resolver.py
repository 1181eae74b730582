"""
Time Series Resolver

Picks single values out of ranked observation time series.

For an explicit date the first ranked series holding that date wins.
For "latest" (empty date) the newest date across all ranked series is
found first, and only then is rank used to choose among the series that
hold it. A lower-priority source can therefore supply the latest value
when it is the only one reporting the most recent date.

Usage:
    from statcore.services.series_resolver import get_series_resolver

    resolver = get_series_resolver()
    resolver.resolve(time_series, FilterCriteria(unit="USDollar"))
    value, found = resolver.value_at(time_series, "2019")
"""
from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Optional, Tuple

from ..models import Facet, FilterCriteria, ObservationTimeSeries, PointStat
from .source_ranker import SourceSeriesRanker, get_source_ranker

logger = logging.getLogger(__name__)


class TimeSeriesResolver:
    """Value selection over ranked source series."""

    def __init__(self, ranker: Optional[SourceSeriesRanker] = None):
        self.ranker = ranker or get_source_ranker()

    def resolve(
        self,
        time_series: ObservationTimeSeries,
        criteria: Optional[FilterCriteria] = None,
    ) -> ObservationTimeSeries:
        """Filter and rank ``time_series`` in place and return it."""
        return self.ranker.filter_and_rank(time_series, criteria)

    @staticmethod
    def latest_date(time_series: ObservationTimeSeries) -> Optional[str]:
        """Newest date reported by any source series, or None when there is no data."""
        latest: Optional[str] = None
        for series in time_series.source_series:
            if not series.values:
                continue
            candidate = max(series.values)
            if latest is None or candidate > latest:
                latest = candidate
        return latest

    def point_at(self, time_series: ObservationTimeSeries, date: str = "") -> Optional[PointStat]:
        """
        Resolve one observation.

        Args:
            time_series: Series to read; its source_series are ranked here,
                so unranked input resolves the same as ranked input
            date: Observation date, or "" for the latest available date

        Returns:
            PointStat with the date, value and facet of the winning source,
            or None when no ranked series has a value for the date
        """
        target = date or self.latest_date(time_series)
        if not target:
            return None
        for series in self.ranker.rank(time_series.source_series):
            if target in series.values:
                return PointStat(date=target, value=series.values[target], facet=series.facet())
        return None

    def value_at(self, time_series: ObservationTimeSeries, date: str = "") -> Tuple[Optional[float], bool]:
        """Return ``(value, found)``; ``(None, False)`` when there is no value."""
        point = self.point_at(time_series, date)
        if point is None:
            return None, False
        return point.value, True

    def facets(self, time_series: ObservationTimeSeries) -> List[Facet]:
        """Distinct facets of the source series, best-first."""
        return list(dict.fromkeys(series.facet() for series in self.ranker.rank(time_series.source_series)))

    def resolve_stat_set(
        self,
        series_by_entity: Mapping[str, ObservationTimeSeries],
        date: str = "",
        criteria: Optional[FilterCriteria] = None,
    ) -> Dict[str, PointStat]:
        """
        Resolve one point per entity for a single variable.

        Each time series is filtered and ranked in place before its value
        is read. With an empty date every entity gets its own latest
        value, so dates can differ between entities. Entities without a
        value are left out of the result.
        """
        points: Dict[str, PointStat] = {}
        for entity in sorted(series_by_entity):
            time_series = self.resolve(series_by_entity[entity], criteria)
            point = self.point_at(time_series, date)
            if point is not None:
                points[entity] = point
        missing = len(series_by_entity) - len(points)
        if missing:
            logger.debug(f"No value for {missing} of {len(series_by_entity)} entities at '{date or 'latest'}'")
        return points


# Global instance
_series_resolver: Optional[TimeSeriesResolver] = None


def get_series_resolver() -> TimeSeriesResolver:
    """Get or create the global time series resolver."""
    global _series_resolver
    if _series_resolver is None:
        _series_resolver = TimeSeriesResolver()
    return _series_resolver
