"""
Source Ranking Table

Priority data used to decide which provider's series is authoritative
when several sources report the same variable for the same entity.

Entries are keyed by (provider, measurement method). Lower priority
numbers win. Series whose pair is not listed rank after every listed
pair (see SourceSeriesRanker).

The built-in table can be extended or overridden with a YAML file
(STATCORE_RANKING_TABLE):

    rankings:
      - provider: CensusPEP
        measurement_method: CensusPEPSurvey
        priority: 0
"""
from __future__ import annotations

import logging
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

import yaml

from ..config import get_settings
from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)

RankKey = Tuple[str, str]

DEFAULT_RANKINGS: Dict[RankKey, int] = {
    # Population
    ("CensusPEP", "CensusPEPSurvey"): 0,
    ("CensusACS5YearSurvey", "CensusACS5yrSurvey"): 1,
    ("CensusACS5YearSurvey_AggCountry", "CensusACS5yrSurvey"): 1,
    ("CensusUSAMedianAgeIncome", "CensusACS5yrSurvey"): 1,
    ("USDecennialCensus_RedistrictingRelease", "USDecennialCensusRedistrictingRelease"): 2,
    ("EurostatData", "EurostatRegionalPopulationData"): 3,
    ("WorldDevelopmentIndicators", ""): 4,
    # Unemployment rate
    ("BLS_LAUS", "BLSSeasonallyUnadjusted"): 0,
    ("EurostatData", ""): 1,
    # Covid
    ("NYT_COVID19", "NYT_COVID19_GitHub"): 0,
    # Health
    ("CDC500", "AgeAdjustedPrevalence"): 0,
}


class RankingTable:
    """Immutable (provider, measurement method) -> priority lookup."""

    def __init__(self, rankings: Optional[Mapping[RankKey, int]] = None):
        self._rankings: Mapping[RankKey, int] = MappingProxyType(
            dict(DEFAULT_RANKINGS if rankings is None else rankings)
        )

    def priority(self, provider: str, measurement_method: str) -> Optional[int]:
        """Priority for the pair, or None when the pair has no explicit entry."""
        return self._rankings.get((provider, measurement_method))

    def entries(self) -> Mapping[RankKey, int]:
        return self._rankings

    def with_overrides(self, overrides: Mapping[RankKey, int]) -> "RankingTable":
        """Return a new table where ``overrides`` replace or extend existing entries."""
        merged = dict(self._rankings)
        merged.update(overrides)
        return RankingTable(merged)

    def __contains__(self, key: object) -> bool:
        return key in self._rankings

    def __len__(self) -> int:
        return len(self._rankings)

    def __repr__(self) -> str:
        return f"RankingTable({len(self._rankings)} entries)"


def parse_ranking_entries(raw: Any) -> Dict[RankKey, int]:
    """
    Parse ranking entries from a decoded YAML document.

    Args:
        raw: Either a list of entries or a mapping with a ``rankings`` list.
            Each entry needs ``provider`` and ``priority``;
            ``measurement_method`` defaults to "".

    Returns:
        Mapping of (provider, measurement_method) to priority

    Raises:
        ConfigurationError: If the document does not have the expected shape
    """
    if isinstance(raw, dict):
        raw = raw.get("rankings", [])
    if raw is None:
        return {}
    if not isinstance(raw, list):
        raise ConfigurationError("Ranking table must be a list of entries")

    entries: Dict[RankKey, int] = {}
    for position, entry in enumerate(raw):
        if not isinstance(entry, dict) or not entry.get("provider"):
            raise ConfigurationError(
                f"Ranking entry {position} needs a provider",
                details={"entry": entry},
            )
        try:
            priority = int(entry["priority"])
        except (KeyError, TypeError, ValueError):
            raise ConfigurationError(
                f"Ranking entry {position} has no integer priority",
                details={"entry": entry},
            )
        key = (str(entry["provider"]), str(entry.get("measurement_method") or ""))
        entries[key] = priority
    return entries


def load_ranking_file(path: str | Path) -> Dict[RankKey, int]:
    """Load ranking entries from a YAML file."""
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except OSError as e:
        raise ConfigurationError(
            f"Cannot read ranking table {path}: {e}",
            details={"path": str(path)},
        ) from e
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Error parsing ranking table {path}: {e}",
            details={"path": str(path)},
        ) from e
    entries = parse_ranking_entries(raw)
    logger.info(f"Loaded {len(entries)} ranking entries from {path}")
    return entries


def build_ranking_table(override_paths: Iterable[str | Path] = ()) -> RankingTable:
    """Built-in table extended by every override file, applied in order."""
    table = RankingTable()
    for path in override_paths:
        table = table.with_overrides(load_ranking_file(path))
    return table


# Global instance
_ranking_table: Optional[RankingTable] = None


def get_ranking_table() -> RankingTable:
    """Get or create the global ranking table (built-in entries plus configured overrides)."""
    global _ranking_table
    if _ranking_table is None:
        settings = get_settings()
        paths = [settings.ranking_table_path] if settings.ranking_table_path else []
        _ranking_table = build_ranking_table(paths)
    return _ranking_table


def reload_ranking_table() -> RankingTable:
    """Force the global ranking table to be rebuilt from settings."""
    global _ranking_table
    _ranking_table = None
    table = get_ranking_table()
    logger.info(f"Ranking table reloaded ({len(table)} entries)")
    return table
