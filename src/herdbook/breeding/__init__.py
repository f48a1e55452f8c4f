"""Breeding season rules: coverages, diagnoses, repasse, paternity and calvings."""

from herdbook.breeding.calving import (
    CalvingStatus,
    CalvingVerification,
    PregnancyCheck,
    PregnancySource,
    check_pregnancy,
    unified_progeny,
    verify_calvings,
)
from herdbook.breeding.season import (
    PREGNANCY_TYPE_MAP,
    BreedingMetrics,
    ExpectedCalving,
    add_bull,
    add_exposed_cows,
    calculate_breeding_metrics,
    calculate_expected_calving_date,
    calculate_gestation_days,
    get_available_bulls,
    get_coverage_bull_label,
    get_coverage_bulls,
    get_coverage_sire_name,
    get_eligible_cows,
    get_expected_calvings,
    get_pending_paternity_records,
    get_repasse_bull_label,
    get_repasse_bulls,
    get_repasse_eligible_cows,
    has_pending_coverage_paternity,
    has_pending_paternity,
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

__all__ = [
    "PREGNANCY_TYPE_MAP",
    "BreedingMetrics",
    "ExpectedCalving",
    "calculate_expected_calving_date",
    "calculate_gestation_days",
    "calculate_breeding_metrics",
    "get_coverage_bulls",
    "get_repasse_bulls",
    "get_coverage_bull_label",
    "get_repasse_bull_label",
    "has_pending_coverage_paternity",
    "has_pending_paternity",
    "get_coverage_sire_name",
    "add_exposed_cows",
    "remove_exposed_cows",
    "add_bull",
    "get_eligible_cows",
    "get_available_bulls",
    "get_pending_paternity_records",
    "get_repasse_eligible_cows",
    "get_expected_calvings",
    # Coverage workflow
    "BreedingRuleError",
    "new_coverage",
    "add_coverage",
    "update_coverage",
    "delete_coverage",
    "record_diagnosis",
    "start_repasse",
    "record_repasse_diagnosis",
    "confirm_paternity",
    "pregnancy_record_for",
    # Calvings
    "PregnancySource",
    "PregnancyCheck",
    "CalvingStatus",
    "CalvingVerification",
    "check_pregnancy",
    "unified_progeny",
    "verify_calvings",
]
