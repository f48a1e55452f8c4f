"""Tests for pregnancy status, progeny and calving verification."""

from dataclasses import replace
from datetime import date

from herdbook.breeding.calving import (
    CalvingStatus,
    PregnancySource,
    calving_intervals,
    check_pregnancy,
    first_calving_age_months,
    unified_progeny,
    verify_calvings,
)
from herdbook.models import (
    AbortionRecord,
    Animal,
    Breed,
    CoverageRecord,
    CoverageType,
    OffspringWeightRecord,
    PregnancyRecord,
    PregnancyResult,
    PregnancyType,
    SeasonStatus,
    Sex,
)


def _calf(calf_id: str, tag: str, born: date, **kwargs) -> Animal:
    return Animal(id=calf_id, tag=tag, breed=Breed.HEREFORD, sex=Sex.MALE, weight_kg=30, birth_date=born, **kwargs)


class TestCheckPregnancy:
    """Tests for check_pregnancy."""

    def test_season_coverage_wins(self, sample_cow, sample_season):
        result = check_pregnancy(sample_cow, [sample_season])

        assert result.is_pregnant
        assert result.source == PregnancySource.BREEDING_SEASON
        assert result.expected_calving_date == date(2025, 8, 20)

    def test_planning_season_is_ignored(self, sample_cow, sample_season):
        result = check_pregnancy(sample_cow, [replace(sample_season, status=SeasonStatus.PLANNING)])
        assert result.source == PregnancySource.NONE

    def test_manual_entry_unless_aborted(self, sample_cow):
        sample_cow.pregnancies = [
            PregnancyRecord(id="p1", date=date(2024, 12, 1), type=PregnancyType.NATURAL, sire_name="T1")
        ]
        assert check_pregnancy(sample_cow, []).source == PregnancySource.MANUAL

        sample_cow.abortions = [AbortionRecord(id="a1", date=date(2025, 2, 1))]
        assert not check_pregnancy(sample_cow, []).is_pregnant


class TestProgeny:
    """Tests for unified_progeny and calving statistics."""

    def test_merges_history_and_dam_references(self, sample_cow):
        by_history = _calf("c1", "B1", date(2022, 9, 1))
        by_name = _calf("c2", "b2", date(2023, 9, 10), dam_name="v001")
        by_id = _calf("c3", "B3", date(2024, 9, 5), dam_id="cow-1")
        ivf = _calf("c4", "B4", date(2024, 10, 1), is_ivf=True, biological_dam_name="Mimosa", dam_name="R9")
        sample_cow.progeny = [OffspringWeightRecord(id="prog_c1", offspring_tag="B1")]
        herd = [sample_cow, by_history, by_name, by_id, ivf]

        assert [c.id for c in unified_progeny(sample_cow, herd)] == ["c1", "c2", "c3", "c4"]

    def test_intervals_skip_implausible_gaps(self, sample_cow):
        herd = [
            sample_cow,
            _calf("c1", "B1", date(2022, 9, 1), dam_id="cow-1"),
            _calf("c2", "B2", date(2023, 9, 1), dam_id="cow-1"),
            _calf("c3", "B3", date(2023, 10, 1), dam_id="cow-1"),  # 30 days: twin or data error
        ]
        assert calving_intervals(sample_cow, herd) == [365]

    def test_first_calving_age(self, sample_cow):
        herd = [sample_cow, _calf("c1", "B1", date(2022, 9, 1), dam_id="cow-1")]
        assert first_calving_age_months(sample_cow, herd) == 30

    def test_first_calving_age_unknown_without_birth_date(self, sample_cow):
        sample_cow.birth_date = None
        assert first_calving_age_months(sample_cow, [sample_cow]) is None


class TestVerifyCalvings:
    """Tests for verify_calvings."""

    def test_calf_within_tolerance_confirms_calving(self, sample_cow, sample_season):
        calf = _calf("c1", "B900", date(2025, 8, 28), dam_name="V001")

        [result] = verify_calvings(sample_season, [sample_cow, calf], today=date(2025, 9, 15))

        assert result.status == CalvingStatus.CALVED
        assert result.calf_tag == "B900"
        assert result.event_date == date(2025, 8, 28)

    def test_calf_outside_tolerance_does_not_count(self, sample_cow, sample_season):
        calf = _calf("c1", "B900", date(2025, 9, 10), dam_name="V001")

        [result] = verify_calvings(sample_season, [sample_cow, calf], today=date(2025, 9, 15))

        assert result.status == CalvingStatus.OVERDUE

    def test_abortion(self, sample_cow, sample_season):
        sample_cow.abortions = [AbortionRecord(id="a1", date=date(2025, 3, 2))]

        [result] = verify_calvings(sample_season, [sample_cow], today=date(2025, 4, 1))

        assert result.status == CalvingStatus.ABORTED
        assert result.event_date == date(2025, 3, 2)

    def test_calf_outranks_recorded_abortion(self, sample_cow, sample_season):
        sample_cow.abortions = [AbortionRecord(id="a1", date=date(2025, 3, 2))]
        calf = _calf("c1", "B900", date(2025, 8, 28), dam_name="V001")

        [result] = verify_calvings(sample_season, [sample_cow, calf], today=date(2025, 9, 15))

        assert result.status == CalvingStatus.CALVED
        assert result.calf_tag == "B900"
        assert result.event_date == date(2025, 8, 28)

    def test_awaiting_before_expected_date(self, sample_cow, sample_season):
        [result] = verify_calvings(sample_season, [sample_cow], today=date(2025, 8, 30))
        assert result.status == CalvingStatus.AWAITING

    def test_custom_tolerance(self, sample_cow, sample_season):
        calf = _calf("c1", "B900", date(2025, 9, 10), dam_name="V001")
        [result] = verify_calvings(sample_season, [sample_cow, calf], today=date(2025, 9, 15), tolerance_days=30)
        assert result.status == CalvingStatus.CALVED

    def test_ivf_calf_found_through_donor(self, sample_season):
        recipient = Animal(id="rec-1", tag="R1", breed=Breed.OTHER, sex=Sex.FEMALE, weight_kg=400)
        coverage = CoverageRecord(
            id="cov-ivf",
            cow_id="rec-1",
            cow_tag="R1",
            type=CoverageType.IVF,
            date=date(2024, 11, 10),
            semen_code="Linaje",
            donor_cow_id="d1",
            donor_cow_tag="5311",
            pregnancy_result=PregnancyResult.POSITIVE,
        )
        season = replace(sample_season, coverage_records=[coverage])
        calf = _calf("c1", "E1", date(2025, 8, 18), is_ivf=True, biological_dam_name="5311", dam_name="X")

        [result] = verify_calvings(season, [recipient, calf], today=date(2025, 9, 1))

        assert result.status == CalvingStatus.CALVED
        assert result.calf_id == "c1"
