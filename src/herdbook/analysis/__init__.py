"""Herd analysis: average daily gain and filtered statistics."""

from herdbook.analysis.filters import (
    AdvancedFilters,
    HerdStats,
    active_filter_count,
    calculate_stats,
    filter_animals,
    sort_animals,
)
from herdbook.analysis.gmd import (
    GainMetrics,
    animal_gmd,
    auto_classify_weight_types,
    average_gmd,
    classify_gmd,
    format_gmd,
    gmd_between,
    gmd_from_weighings,
    rank_by_gmd,
)

__all__ = [
    "AdvancedFilters",
    "HerdStats",
    "filter_animals",
    "sort_animals",
    "calculate_stats",
    "active_filter_count",
    "GainMetrics",
    "gmd_between",
    "gmd_from_weighings",
    "animal_gmd",
    "average_gmd",
    "rank_by_gmd",
    "auto_classify_weight_types",
    "format_gmd",
    "classify_gmd",
]
