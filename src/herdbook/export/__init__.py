"""Exports: CSV spreadsheets and printable HTML reports."""

from herdbook.export.csv_export import (
    ANIMAL_CSV_HEADERS,
    BREEDING_SEASON_HEADERS,
    prepare_animal_rows,
    prepare_breeding_season_rows,
    to_csv,
    write_csv,
)
from herdbook.export.html_report import (
    render_animals_report,
    render_breeding_season_report,
    write_report,
)

__all__ = [
    "ANIMAL_CSV_HEADERS",
    "BREEDING_SEASON_HEADERS",
    "to_csv",
    "write_csv",
    "prepare_animal_rows",
    "prepare_breeding_season_rows",
    "render_animals_report",
    "render_breeding_season_report",
    "write_report",
]
