"""Tests for GMD (average daily gain), herd filters and statistics."""

from datetime import date

from herdbook.analysis.filters import (
    NO_AREA,
    AdvancedFilters,
    active_filter_count,
    calculate_stats,
    filter_animals,
    matches_search,
    sort_animals,
)
from herdbook.analysis.gmd import (
    animal_gmd,
    auto_classify_weight_types,
    classify_gmd,
    format_gmd,
    gmd_between,
    gmd_from_weighings,
    rank_by_gmd,
)
from herdbook.models import Animal, Breed, MedicationAdministration, Sex, WeighingType, WeightEntry

TODAY = date(2025, 6, 1)


def _w(day: date, kg: float, kind: WeighingType = WeighingType.NONE) -> WeightEntry:
    return WeightEntry(id=f"w-{day.isoformat()}", date=day, weight_kg=kg, type=kind)


class TestGmd:
    """Tests for GMD calculations."""

    def test_gmd_between(self):
        assert gmd_between(300, 360, date(2025, 1, 1), date(2025, 3, 2)) == 1.0

    def test_same_day_is_zero(self):
        assert gmd_between(300, 360, date(2025, 1, 1), date(2025, 1, 1)) == 0.0

    def test_single_weighing_has_no_metrics(self):
        metrics = gmd_from_weighings([_w(date(2025, 1, 1), 300)])
        assert metrics.total == 0.0
        assert metrics.days_tracked == 0

    def test_phases_and_projection(self, sample_calf):
        metrics = animal_gmd(sample_calf, today=date(2025, 3, 30))

        assert metrics.total == 0.801
        assert metrics.days_tracked == 181
        assert metrics.birth_to_weaning == 0.801
        assert metrics.weaning_to_yearling is None
        assert metrics.days_since_last_weighing == 10
        assert metrics.estimated_weight_today == 188.0

    def test_recent_window(self):
        weighings = [_w(date(2025, 1, 1), 300), _w(date(2025, 5, 10), 380), _w(date(2025, 5, 30), 400)]
        metrics = gmd_from_weighings(weighings, today=TODAY)
        assert metrics.last_30_days == 1.0
        assert metrics.last_period == 1.0

    def test_rank_skips_animals_not_gaining(self, sample_herd):
        ranking = rank_by_gmd(sample_herd, today=TODAY)
        assert [(rank, animal.tag) for rank, animal, _ in ranking] == [(1, "B201")]

    def test_classification_and_format(self):
        assert classify_gmd(1.2) == "Bom"
        assert classify_gmd(0.1) == "Crítico"
        assert format_gmd(None) == "N/A"
        assert format_gmd(0.8) == "0.800 kg/dia"

    def test_auto_classify_marks_weaning_and_yearling(self):
        birth = date(2023, 1, 1)
        weighings = [
            _w(birth, 32, WeighingType.BIRTH),
            _w(date(2023, 6, 1), 150),
            _w(date(2023, 8, 1), 190, WeighingType.YEARLING),  # wrong mark, recomputed
            _w(date(2024, 7, 1), 320),
        ]

        classified = auto_classify_weight_types(weighings, birth)

        assert [w.type for w in classified] == [
            WeighingType.BIRTH,
            WeighingType.NONE,
            WeighingType.WEANING,
            WeighingType.YEARLING,
        ]
        assert weighings[2].type == WeighingType.YEARLING


class TestSearch:
    """Tests for the free-text search operators."""

    def test_ou_matches_any_term(self, sample_cow, sample_bull):
        fields = ["brinco", "nome"]
        assert matches_search(sample_cow, "V001 ou T100", fields)
        assert matches_search(sample_bull, "V001 ou T100", fields)

    def test_e_requires_every_term(self, sample_cow):
        assert matches_search(sample_cow, "v00 e mimosa", ["brinco", "nome"])
        assert not matches_search(sample_cow, "v00 e trovão", ["brinco", "nome"])

    def test_medication_field(self, sample_cow):
        sample_cow.medications = [
            MedicationAdministration(
                id="m1", medication="Ivermectina", date=TODAY, dose=10, unit="ml", reason="Verminose"
            )
        ]
        assert matches_search(sample_cow, "iver", ["medicamento"])
        assert not matches_search(sample_cow, "iver", ["brinco"])


class TestFilters:
    """Tests for filter_animals and sorting."""

    def test_sex_and_status(self, sample_herd):
        result = filter_animals(sample_herd, AdvancedFilters(sex="Macho", status="Ativo"), today=TODAY)
        assert [a.tag for a in result] == ["B201", "T100"]

    def test_missing_birth_date_passes_age_filter(self, sample_herd):
        result = filter_animals(sample_herd, AdvancedFilters(age_min_months=24), today=TODAY)
        assert [a.tag for a in result] == ["S009", "T100", "V001"]

    def test_weight_range(self, sample_herd):
        result = filter_animals(sample_herd, AdvancedFilters(weight_min=250, weight_max=500), today=TODAY)
        assert [a.tag for a in result] == ["N050", "V001"]

    def test_animals_without_area(self, sample_herd):
        sample_herd[0].management_area_id = "area-1"
        result = filter_animals(sample_herd, AdvancedFilters(area_id=NO_AREA), today=TODAY)
        assert "V001" not in [a.tag for a in result]
        assert len(result) == 4

    def test_sort_by_weight_descending(self, sample_herd):
        assert [a.tag for a in sort_animals(sample_herd, "pesoKg", descending=True)][:2] == ["T100", "S009"]

    def test_active_filter_count_counts_ranges_once(self):
        filters = AdvancedFilters(search_term="x", weight_min=100, weight_max=200, sex="Fêmea")
        assert active_filter_count(filters) == 3


class TestStats:
    """Tests for calculate_stats."""

    def test_herd_summary(self, sample_herd):
        stats = calculate_stats(sample_herd, today=TODAY)

        assert stats.total_animals == 5
        assert stats.active_count == 4
        assert stats.total_weight == 1750
        assert stats.male_count == 2
        assert stats.female_count == 2
        assert stats.age_distribution == {"bezerros": 0, "jovens": 2, "novilhos": 0, "adultos": 2}
        assert stats.weight_range_distribution == {"leve": 1, "medio": 1, "pesado": 2}
        assert stats.status_distribution == {"Ativo": 4, "Vendido": 1}
        assert stats.area_distribution == {"Sem Área": 4}
        assert stats.monthly_average_weight == [("set/24", 35.0), ("mar/25", 180.0)]
        assert stats.average_gmd == 0.801
        assert stats.recent_change == 145.0
        assert stats.predicted_next_month == 204.0

    def test_treatments(self, sample_herd):
        med = MedicationAdministration(id="m", medication="Aftosa", date=TODAY, dose=5, unit="ml", reason="Vacina")
        sample_herd[0].medications = [med, med]
        sample_herd[4].medications = [med]

        stats = calculate_stats(sample_herd, today=TODAY)

        assert stats.total_treatments == 3
        assert stats.animals_with_treatments == 2
        assert stats.most_used_medication == "Aftosa"

    def test_empty_herd(self):
        stats = calculate_stats([], today=TODAY)
        assert stats.average_weight == 0.0
        assert stats.most_used_medication == "Nenhum"

    def test_unknown_birth_date_counts_as_adult(self):
        animal = Animal(id="x", tag="X1", breed=Breed.OTHER, sex=Sex.MALE, weight_kg=300)
        assert calculate_stats([animal], today=TODAY).age_distribution["adultos"] == 1
