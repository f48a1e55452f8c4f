"""Tests for breeding season rules, metrics and coverage transitions."""

from dataclasses import replace
from datetime import date

import pytest

from herdbook.breeding.season import (
    add_bull,
    add_exposed_cows,
    calculate_breeding_metrics,
    calculate_expected_calving_date,
    get_available_bulls,
    get_coverage_bull_label,
    get_coverage_sire_name,
    get_eligible_cows,
    get_expected_calvings,
    get_pending_paternity_records,
    get_repasse_eligible_cows,
    remove_exposed_cows,
)
from herdbook.breeding.workflow import (
    BreedingRuleError,
    add_coverage,
    confirm_paternity,
    delete_coverage,
    new_coverage,
    pregnancy_record_for,
    record_diagnosis,
    record_repasse_diagnosis,
    start_repasse,
    update_coverage,
)
from herdbook.models import (
    Animal,
    AnimalStatus,
    Breed,
    BullRef,
    CoverageRecord,
    CoverageType,
    PregnancyResult,
    PregnancyType,
    SeasonBull,
    Sex,
)

TODAY = date(2025, 2, 1)
BULL_A = BullRef(bull_id="bull-1", bull_tag="T100")
BULL_B = BullRef(bull_id="bull-2", bull_tag="T200")


def _cow(cow_id: str, tag: str, birth: date | None = date(2020, 1, 1), **kwargs) -> Animal:
    return Animal(id=cow_id, tag=tag, breed=Breed.HEREFORD, sex=Sex.FEMALE, weight_kg=420, birth_date=birth, **kwargs)


def _two_bull_pregnancy(season):
    coverage = CoverageRecord(
        id="cov-3",
        cow_id="cow-3",
        cow_tag="V003",
        type=CoverageType.NATURAL,
        date=season.start_date,
        bull_id="bull-1",
        bull_tag="T100",
        bulls=[BULL_A, BULL_B],
        pregnancy_result=PregnancyResult.POSITIVE,
    )
    return add_coverage(season, coverage)


class TestHelpers:
    """Tests for dates and labels."""

    def test_expected_calving_is_283_days_after_coverage(self):
        assert calculate_expected_calving_date(date(2024, 11, 10)) == date(2025, 8, 20)

    def test_two_bull_label(self):
        coverage = CoverageRecord(
            id="c", cow_id="x", cow_tag="X", type=CoverageType.NATURAL, date=TODAY, bulls=[BULL_A, BULL_B]
        )
        assert get_coverage_bull_label(coverage) == "T100 / T200"
        assert get_coverage_sire_name(replace(coverage, pregnancy_result=PregnancyResult.POSITIVE)) == (
            "T100 / T200 (pendente)"
        )

    def test_ivf_sire_name_is_donor_cross_semen(self):
        coverage = CoverageRecord(
            id="c",
            cow_id="x",
            cow_tag="R1",
            type=CoverageType.IVF,
            date=TODAY,
            semen_code="Linaje",
            donor_cow_tag="5311",
        )
        assert get_coverage_sire_name(coverage) == "5311XLinaje"

    def test_legacy_single_bull_fields(self):
        coverage = CoverageRecord(
            id="c", cow_id="x", cow_tag="X", type=CoverageType.NATURAL, date=TODAY, bull_id="b9", bull_tag="T9"
        )
        assert get_coverage_bull_label(coverage) == "T9"


class TestHerdSelection:
    """Tests for eligible cows and available bulls."""

    def test_young_heifer_is_not_eligible(self):
        heifer = _cow("h1", "N1", birth=date(2024, 1, 1))
        assert get_eligible_cows([heifer], today=TODAY) == []

    def test_missing_birth_date_is_eligible(self):
        cow = _cow("c1", "V1", birth=None)
        assert get_eligible_cows([cow], today=TODAY) == [cow]

    def test_inactive_and_males_are_excluded(self, sample_bull):
        sold = _cow("c2", "V2", status=AnimalStatus.SOLD)
        assert get_eligible_cows([sold, sample_bull], today=TODAY) == []
        assert get_available_bulls([sold, sample_bull], today=TODAY) == [sample_bull]


class TestSeasonEdits:
    """Tests for exposing cows and adding bulls."""

    def test_add_exposed_cows_ignores_duplicates(self, sample_season):
        season = add_exposed_cows(sample_season, ["cow-1", "cow-4", "cow-4"])
        assert season.exposed_cow_ids == ["cow-1", "cow-2", "cow-3", "cow-4"]
        assert sample_season.exposed_cow_ids == ["cow-1", "cow-2", "cow-3"]

    def test_remove_exposed_cows(self, sample_season):
        assert remove_exposed_cows(sample_season, ["cow-2"]).exposed_cow_ids == ["cow-1", "cow-3"]

    def test_add_bull_is_idempotent(self, sample_season):
        assert add_bull(sample_season, SeasonBull(id="bull-1", tag="T100")) is sample_season
        assert len(add_bull(sample_season, SeasonBull(id="bull-2", tag="T200")).bulls) == 2


class TestMetrics:
    """Tests for calculate_breeding_metrics."""

    def test_rates(self, sample_season):
        m = calculate_breeding_metrics(sample_season, today=TODAY)

        assert m.total_exposed == 3
        assert m.total_covered == 2
        assert m.total_pregnant == 1
        assert m.total_empty == 1
        assert m.pregnancy_rate == 33.3
        assert m.service_rate == 66.7
        assert m.conception_rate == 50.0
        assert m.coverages_by_type[CoverageType.NATURAL] == 1
        assert m.coverages_by_type[CoverageType.FTAI] == 1

    def test_empty_season_has_zero_rates(self, sample_season):
        m = calculate_breeding_metrics(replace(sample_season, exposed_cow_ids=[], coverage_records=[]))
        assert m.pregnancy_rate == 0.0
        assert m.conception_rate == 0.0

    def test_repasse_pregnancy_counts_overall_not_first_service(self, sample_season):
        season = start_repasse(sample_season, "cov-2", [BULL_A], check_date=TODAY)
        season = record_repasse_diagnosis(season, "cov-2", PregnancyResult.POSITIVE, TODAY)

        m = calculate_breeding_metrics(season, today=TODAY)

        assert m.total_pregnant == 2
        assert m.repasse_count == 1
        assert m.repasse_pregnant == 1
        assert m.pregnancy_rate == 33.3
        assert m.overall_pregnancy_rate == 66.7

    def test_two_bull_pregnancy_credits_no_bull_until_confirmed(self, sample_season):
        season = _two_bull_pregnancy(sample_season)

        bulls = {b.bull_id: b for b in calculate_breeding_metrics(season, today=TODAY).coverages_by_bull}
        assert bulls["bull-1"].count == 2
        assert bulls["bull-1"].pregnancies == 1  # the single-bull cov-1 only
        assert bulls["bull-2"].pregnancies == 0

        season = confirm_paternity(season, "cov-3", "bull-2")
        bulls = {b.bull_id: b for b in calculate_breeding_metrics(season, today=TODAY).coverages_by_bull}
        assert bulls["bull-2"].pregnancies == 1
        assert bulls["bull-1"].pregnancies == 1

    def test_pregnancy_checks_due(self, sample_season):
        pending = CoverageRecord(
            id="cov-9", cow_id="cow-9", cow_tag="V009", type=CoverageType.AI, date=date(2024, 11, 20), semen_code="S"
        )
        season = add_coverage(sample_season, pending)

        due = calculate_breeding_metrics(season, today=TODAY).pregnancy_checks_due

        assert [(d.cow_tag, d.due_date) for d in due] == [("V009", date(2025, 1, 19))]


class TestCoverageWorkflow:
    """Tests for the coverage state transitions."""

    def test_natural_coverage_is_dated_at_season_start(self, sample_season):
        cow = _cow("cow-4", "V004")
        coverage = new_coverage(
            sample_season, cow, CoverageType.NATURAL, bulls=[BULL_A], coverage_date=date(2025, 1, 5), today=TODAY
        )
        assert coverage.date == sample_season.start_date
        assert coverage.bull_id == "bull-1"

    def test_natural_needs_one_or_two_bulls(self, sample_season):
        cow = _cow("cow-4", "V004")
        with pytest.raises(BreedingRuleError):
            new_coverage(sample_season, cow, CoverageType.NATURAL, bulls=[], today=TODAY)
        with pytest.raises(BreedingRuleError):
            new_coverage(
                sample_season,
                cow,
                CoverageType.NATURAL,
                bulls=[BULL_A, BULL_B, BullRef("bull-3", "T300")],
                today=TODAY,
            )

    def test_ai_needs_semen_and_ivf_needs_donor(self, sample_season):
        cow = _cow("cow-4", "V004")
        with pytest.raises(BreedingRuleError, match="semen"):
            new_coverage(sample_season, cow, CoverageType.AI, today=TODAY)
        with pytest.raises(BreedingRuleError, match="donor"):
            new_coverage(sample_season, cow, CoverageType.IVF, semen_code="S1", today=TODAY)

    def test_rejects_young_or_already_covered_cow(self, sample_season):
        with pytest.raises(BreedingRuleError, match="younger"):
            new_coverage(
                sample_season, _cow("h", "N1", birth=date(2024, 6, 1)), CoverageType.AI, semen_code="S", today=TODAY
            )
        with pytest.raises(BreedingRuleError, match="already"):
            new_coverage(sample_season, _cow("cow-1", "V001"), CoverageType.AI, semen_code="S", today=TODAY)

    def test_add_coverage_exposes_the_cow(self, sample_season):
        cow = _cow("cow-7", "V007")
        coverage = new_coverage(sample_season, cow, CoverageType.AI, semen_code="S", today=TODAY)

        season = add_coverage(sample_season, coverage)

        assert "cow-7" in season.exposed_cow_ids
        assert len(sample_season.coverage_records) == 2

    def test_positive_diagnosis_sets_expected_calving(self, sample_season):
        coverage = CoverageRecord(
            id="cov-5", cow_id="cow-3", cow_tag="V003", type=CoverageType.AI, date=date(2024, 11, 10), semen_code="S"
        )
        season = record_diagnosis(add_coverage(sample_season, coverage), "cov-5", PregnancyResult.POSITIVE, TODAY)

        updated = season.find_coverage("cov-5")
        assert updated.expected_calving_date == date(2025, 8, 20)
        assert updated.pregnancy_check_date == TODAY

        season = record_diagnosis(season, "cov-5", PregnancyResult.NEGATIVE, TODAY)
        assert season.find_coverage("cov-5").expected_calving_date is None

    def test_update_coverage_recomputes_expected_date(self, sample_season):
        edited = replace(sample_season.coverage_records[0], date=date(2024, 11, 20))
        season = update_coverage(sample_season, edited)
        assert season.find_coverage("cov-1").expected_calving_date == date(2025, 8, 30)

    def test_delete_unknown_coverage_raises(self, sample_season):
        with pytest.raises(BreedingRuleError):
            delete_coverage(sample_season, "nope")

    def test_repasse_rules(self, sample_season):
        with pytest.raises(BreedingRuleError, match="only follows"):
            start_repasse(sample_season, "cov-1", [BULL_A])

        season = start_repasse(sample_season, "cov-2", [BULL_A, BULL_B], check_date=TODAY)
        repasse = season.find_coverage("cov-2").repasse
        assert repasse.enabled
        assert repasse.diagnosis_result == PregnancyResult.PENDING
        assert repasse.start_date == sample_season.start_date

        with pytest.raises(BreedingRuleError, match="already"):
            start_repasse(season, "cov-2", [BULL_A])

    def test_repasse_eligible_cows(self, sample_season):
        assert [c.id for c in get_repasse_eligible_cows(sample_season)] == ["cov-2"]
        season = start_repasse(sample_season, "cov-2", [BULL_A], check_date=TODAY)
        assert get_repasse_eligible_cows(season) == []

    def test_repasse_paternity(self, sample_season):
        season = start_repasse(sample_season, "cov-2", [BULL_A, BULL_B], check_date=TODAY)
        season = record_repasse_diagnosis(season, "cov-2", PregnancyResult.POSITIVE, TODAY)
        assert [c.id for c in get_pending_paternity_records(season)] == ["cov-2"]

        with pytest.raises(BreedingRuleError):
            confirm_paternity(season, "cov-2", "bull-9")

        season = confirm_paternity(season, "cov-2", "bull-1")
        assert season.find_coverage("cov-2").repasse.confirmed_sire_tag == "T100"
        assert get_pending_paternity_records(season) == []

    def test_confirm_without_pending_paternity_raises(self, sample_season):
        with pytest.raises(BreedingRuleError, match="No pending"):
            confirm_paternity(sample_season, "cov-1", "bull-1")


class TestPregnancyRecords:
    """Tests for pregnancy_record_for and expected calvings."""

    def test_positive_main_coverage(self, sample_season):
        record = pregnancy_record_for(sample_season.coverage_records[0], sample_season)
        assert record.id == "bs-cov-1"
        assert record.type == PregnancyType.NATURAL
        assert record.sire_name == "T100"

    def test_negative_coverage_has_none(self, sample_season):
        assert pregnancy_record_for(sample_season.coverage_records[1], sample_season) is None

    def test_positive_repasse(self, sample_season):
        season = start_repasse(sample_season, "cov-2", [BULL_B], check_date=TODAY)
        season = record_repasse_diagnosis(season, "cov-2", PregnancyResult.POSITIVE, TODAY)

        record = pregnancy_record_for(season.find_coverage("cov-2"), season)

        assert record.id == "bs-cov-2-repasse"
        assert record.date == season.start_date
        assert record.sire_name == "T200"

    def test_expected_calvings_include_repasse(self, sample_season):
        season = start_repasse(sample_season, "cov-2", [BULL_A, BULL_B], check_date=TODAY)
        season = record_repasse_diagnosis(season, "cov-2", PregnancyResult.POSITIVE, TODAY)

        calvings = get_expected_calvings(season)

        assert [c.cow_tag for c in calvings] == ["V002", "V001"]
        assert calvings[0].is_repasse
        assert "paternidade pendente" in calvings[0].bull_info
