from __future__ import annotations

import itertools

import pytest

from statcore.models import FilterCriteria, ObservationTimeSeries, SourceSeries
from statcore.services.ranking_table import RankingTable
from statcore.services.source_ranker import SourceSeriesRanker, get_source_ranker


def _pep(values, period="") -> SourceSeries:
    return SourceSeries(
        values=values,
        provider="CensusPEP",
        measurement_method="CensusPEPSurvey",
        observation_period=period,
        provenance_url="census.gov",
    )


def test_default_ranking_prefers_population_estimates(census_pep, census_acs) -> None:
    series = ObservationTimeSeries(source_series=[census_pep, census_acs])

    SourceSeriesRanker().filter_and_rank(series)

    assert series.resolved_values == {"2011": 100, "2012": 101}
    assert series.provenance_url == "census.gov"
    assert series.source_series == [census_pep, census_acs]


def test_filter_by_measurement_method(census_pep, census_acs) -> None:
    series = ObservationTimeSeries(source_series=[census_pep, census_acs])

    SourceSeriesRanker().filter_and_rank(series, FilterCriteria(measurement_method="CensusACS5yrSurvey"))

    assert series.source_series == [census_acs]
    assert series.resolved_values == {"2011": 101, "2012": 102, "2013": 103}


def test_filter_by_observation_period() -> None:
    yearly = _pep({"2011": 100, "2012": 101}, period="P1Y")
    biennial = _pep({"2017": 101}, period="P2Y")
    series = ObservationTimeSeries(source_series=[yearly, biennial])

    SourceSeriesRanker().filter_and_rank(series, FilterCriteria(observation_period="P2Y"))

    assert series.resolved_values == {"2017": 101}
    assert series.provenance_url == "census.gov"


def test_no_match_empties_series_without_error() -> None:
    series = ObservationTimeSeries(
        source_series=[_pep({"2011": 100}, period="P1Y"), _pep({"2017": 101}, period="P2Y")]
    )

    SourceSeriesRanker().filter_and_rank(series, FilterCriteria(observation_period="P3Y"))

    assert series.source_series == []
    assert series.resolved_values == {}
    assert series.provenance_url == ""


def test_filter_requires_every_constraint(census_pep) -> None:
    dollars = census_pep.model_copy(update={"unit": "USDollar"})
    euros = census_pep.model_copy(update={"unit": "Euro"})
    criteria = FilterCriteria(measurement_method="CensusPEPSurvey", unit="USDollar")

    survivors = SourceSeriesRanker().filter([census_pep, dollars, euros], criteria)

    assert survivors == [dollars]
    assert all(criteria.matches(s) for s in survivors)


def test_empty_criteria_fields_do_not_constrain(three_sources) -> None:
    criteria = FilterCriteria(measurement_method="", unit=None)

    assert criteria.is_empty()
    assert SourceSeriesRanker().filter(three_sources, criteria) == three_sources


def test_rank_orders_table_entries_before_unlisted(three_sources) -> None:
    ranked = SourceSeriesRanker().rank(three_sources)

    assert [s.provider for s in ranked] == ["CensusPEP", "CensusACS5YearSurvey", "randomImportName"]


def test_unlisted_providers_rank_alphabetically() -> None:
    zeta = SourceSeries(values={"2020": 1}, provider="Zeta", measurement_method="m")
    alpha = SourceSeries(values={"2020": 2}, provider="Alpha", measurement_method="m")
    listed = SourceSeries(values={"2020": 3}, provider="Listed", measurement_method="m")
    ranker = SourceSeriesRanker(RankingTable({("Listed", "m"): 7}))

    ranked = ranker.rank([zeta, alpha, listed])

    assert [s.provider for s in ranked] == ["Listed", "Alpha", "Zeta"]


def test_ranking_is_independent_of_input_order(three_sources) -> None:
    twin = three_sources[0].model_copy(update={"values": {"2015": 1}})
    candidates = three_sources + [twin]
    ranker = SourceSeriesRanker()

    orders = {tuple(id(s) for s in ranker.rank(p)) for p in itertools.permutations(candidates)}

    assert len(orders) == 1


def test_measurement_method_is_part_of_the_rank_key() -> None:
    acs_other_method = SourceSeries(
        values={"2011": 1},
        provider="CensusACS5YearSurvey",
        measurement_method="SomethingElse",
    )
    ranker = SourceSeriesRanker()

    assert ranker.rank_key(acs_other_method)[0] == 1


@pytest.mark.parametrize("criteria", [None, FilterCriteria()])
def test_filter_and_rank_returns_same_object(three_sources, criteria) -> None:
    series = ObservationTimeSeries(variable="Count_Person", entity="geoId/06", source_series=three_sources)

    result = SourceSeriesRanker().filter_and_rank(series, criteria)

    assert result is series
    assert result.resolved_values == {"2011": 100, "2012": 101}


def test_global_ranker_uses_global_table() -> None:
    ranker = get_source_ranker()

    assert ranker is get_source_ranker()
    assert ranker.ranking_table.priority("CensusPEP", "CensusPEPSurvey") == 0
