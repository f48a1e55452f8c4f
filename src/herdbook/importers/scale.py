"""
Digital scale file import.

Reads the CSV/TXT exports of cattle scales (Tru-Test, Gallagher or any
"tag, weight, date" layout), matches readings to animals by tag and turns
them into weighings.

Generic files have no fixed column order: each field is classified on its
own as a date, a weight (10-2000 kg, "," or "." decimals) or an ear tag.
Tru-Test files are positional: tag, weight, date, time.

Usage:
    herdbook import-scale pesagem_2025-01-15.csv           # Preview matches
    herdbook import-scale trutest.csv --apply --type Desmame
"""

import csv
import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from pathlib import Path

from herdbook.core.units import to_kg
from herdbook.models import Animal, WeighingType, WeightEntry

logger = logging.getLogger(__name__)

# Plausible cattle weights (kg)
WEIGHT_MIN = 10
WEIGHT_MAX = 2000
WEIGHT_SUSPECT_LOW = 30
WEIGHT_SUSPECT_HIGH = 1200

# Skipped lines keep this much of their text for the report
SKIPPED_PREVIEW_CHARS = 120

HEADER_KEYWORDS = [
    "peso", "weight", "brinco", "id", "animal", "identificação", "identificacao", "massa",
    "kg", "data", "date", "nome", "ear_tag", "tag", "numero", "número",
]

_NUMBER = re.compile(r"^\s*[+-]?(\d+\.?\d*|\.\d+)")
_TAG = re.compile(r"^[A-Z0-9][A-Z0-9._\-]{0,19}$", re.IGNORECASE)
_ISO_DATE = re.compile(r"(\d{4})[/\-](\d{2})[/\-](\d{2})")
_BR_DATE = re.compile(r"(\d{2})[/\-](\d{2})[/\-](\d{2,4})")


class ScaleFormat(Enum):
    CSV = "csv"
    TXT = "txt"
    TRU_TEST = "tru-test"
    GALLAGHER = "gallagher"
    GENERIC = "generic"


@dataclass
class ScaleReading:
    id: str
    timestamp: datetime
    weight: float
    unit: str = "kg"  # "kg", "arroba" or "lb"
    animal_tag: str | None = None
    matched: bool = False
    animal_id: str | None = None
    warnings: list[str] = field(default_factory=list)


@dataclass
class SkippedLine:
    line_number: int
    content: str
    reason: str


@dataclass
class ScaleImportResult:
    readings: list[ScaleReading]
    skipped_lines: list[SkippedLine]
    format: ScaleFormat = ScaleFormat.GENERIC

    @property
    def total(self) -> int:
        return len(self.readings)

    @property
    def matched(self) -> int:
        return sum(1 for r in self.readings if r.matched)

    @property
    def unmatched(self) -> int:
        return self.total - self.matched


# =============================================================================
# Field Parsing
# =============================================================================


def sanitize_content(content: str) -> str:
    """Strip a leading BOM and normalize line endings to "\\n"."""
    return content.removeprefix("\ufeff").replace("\r\n", "\n").replace("\r", "\n")


def split_line(line: str, separator: str) -> list[str]:
    """Split on `separator`, honoring double-quoted fields ("" is a literal quote)."""
    return [value.strip() for value in next(csv.reader([line], delimiter=separator), [])]


def detect_separator(line: str) -> str:
    """Most frequent of ";", tab and "," outside quotes; ties favor ";" then tab.

    Brazilian spreadsheets write decimal commas, so ";" is the usual separator.
    """
    in_quotes = False
    commas = semicolons = tabs = 0
    for char in line:
        if char == '"':
            in_quotes = not in_quotes
        elif not in_quotes:
            if char == ",":
                commas += 1
            elif char == ";":
                semicolons += 1
            elif char == "\t":
                tabs += 1
    if semicolons >= commas and semicolons >= tabs:
        return ";"
    if tabs >= commas:
        return "\t"
    return ","


def _leading_number(value: str) -> float | None:
    match = _NUMBER.match(value.replace(",", ".", 1))
    return float(match.group(0)) if match else None


def parse_weight(value: str) -> float | None:
    """Positive number with "." or "," decimals, else None."""
    if not value:
        return None
    number = _leading_number(value)
    if number is None or number <= 0:
        return None
    return number


def is_tag_like(value: str) -> bool:
    """Alphanumeric ear tag (ABC001, BR-12345, FSP.0042...), not a plausible weight."""
    if not value or len(value) > 20:
        return False
    number = _leading_number(value)
    if number is not None and WEIGHT_MIN < number < WEIGHT_MAX:
        return False
    return bool(_TAG.match(value))


def is_date_like(value: str) -> bool:
    return bool(_BR_DATE.search(value) or _ISO_DATE.search(value))


def parse_scale_date(value: str) -> datetime | None:
    """YYYY-MM-DD first (the scales' own format), then DD/MM/YYYY or DD/MM/YY."""
    if not value:
        return None
    try:
        match = _ISO_DATE.search(value)
        if match:
            return datetime(int(match.group(1)), int(match.group(2)), int(match.group(3)))
        match = _BR_DATE.search(value)
        if match:
            year = int(match.group(3))
            if year < 100:
                year += 2000
            return datetime(year, int(match.group(2)), int(match.group(1)))
    except ValueError:
        return None
    return None


def is_header_line(line: str) -> bool:
    lower = line.lower()
    return any(keyword in lower for keyword in HEADER_KEYWORDS)


def _weight_warnings(weight: float) -> list[str]:
    if weight < WEIGHT_SUSPECT_LOW:
        return [f"Peso muito baixo ({weight:g} kg). Verifique se está correto."]
    if weight > WEIGHT_SUSPECT_HIGH:
        return [f"Peso muito alto ({weight:g} kg). Verifique se está correto."]
    return []


def _skip(number: int, line: str, reason: str) -> SkippedLine:
    return SkippedLine(line_number=number, content=line[:SKIPPED_PREVIEW_CHARS], reason=reason)


# =============================================================================
# Format Parsers
# =============================================================================


def parse_generic(content: str, now: datetime | None = None) -> ScaleImportResult:
    """Parse a free-layout file; every field is classified on its own."""
    now = now or datetime.now()
    lines = sanitize_content(content).split("\n")
    readings: list[ScaleReading] = []
    skipped: list[SkippedLine] = []

    start = 1 if lines and is_header_line(lines[0]) else 0
    first_data = next((line for line in lines[start:] if line.strip()), "")
    separator = detect_separator(first_data)

    for i in range(start, len(lines)):
        line = lines[i].strip()
        if not line:
            continue

        weight: float | None = None
        tag: str | None = None
        timestamp = now
        warnings: list[str] = []

        for part in split_line(line, separator):
            if not part:
                continue
            if is_date_like(part):
                parsed = parse_scale_date(part)
                if parsed:
                    timestamp = parsed
                    continue
            number = parse_weight(part)
            if number is not None and WEIGHT_MIN < number < WEIGHT_MAX:
                if weight is None:
                    weight = number
                else:
                    warnings.append(f"Múltiplos valores de peso na linha {i + 1}. Usando o primeiro ({weight:g} kg).")
                continue
            if is_tag_like(part) and tag is None:
                tag = part.upper()

        if weight is None:
            skipped.append(_skip(i + 1, line, "Nenhum peso válido encontrado (esperado: entre 10 e 2000 kg)"))
            continue

        warnings.extend(_weight_warnings(weight))
        if not tag:
            warnings.append("Brinco não identificado na leitura. Atribua manualmente.")

        readings.append(
            ScaleReading(id=f"scale-{i}", timestamp=timestamp, weight=weight, animal_tag=tag, warnings=warnings)
        )

    return ScaleImportResult(readings=readings, skipped_lines=skipped)


def parse_tru_test(content: str, now: datetime | None = None) -> ScaleImportResult:
    """Parse a Tru-Test export: header line, then tag, weight, date, time."""
    now = now or datetime.now()
    lines = sanitize_content(content).split("\n")
    readings: list[ScaleReading] = []
    skipped: list[SkippedLine] = []

    first_data = next((line for line in lines[1:] if line.strip()), "")
    separator = detect_separator(first_data)

    for i in range(1, len(lines)):
        line = lines[i].strip()
        if not line:
            continue

        parts = split_line(line, separator)
        if len(parts) < 2:
            skipped.append(_skip(i + 1, line, "Formato inválido: menos de 2 campos encontrados"))
            continue

        tag = parts[0]
        weight = parse_weight(parts[1])
        if weight is None:
            skipped.append(_skip(i + 1, line, f'Peso inválido: "{parts[1]}"'))
            continue

        warnings = _weight_warnings(weight)
        if not tag:
            warnings.append("Brinco não identificado na leitura. Atribua manualmente.")

        timestamp = now
        parsed = parse_scale_date(parts[2]) if len(parts) > 2 else None
        if parsed:
            timestamp = parsed
            if len(parts) > 3 and parts[3]:
                hour, _, minute = parts[3].partition(":")
                try:
                    timestamp = timestamp.replace(hour=int(hour or 0), minute=int(minute[:2] or 0))
                except ValueError:
                    warnings.append(f'Hora inválida: "{parts[3]}"')

        readings.append(
            ScaleReading(id=f"tru-{i}", timestamp=timestamp, weight=weight, animal_tag=tag or None, warnings=warnings)
        )

    return ScaleImportResult(readings=readings, skipped_lines=skipped)


def detect_scale_format(filename: str) -> ScaleFormat:
    lower = filename.lower()
    if "tru-test" in lower or "trutest" in lower:
        return ScaleFormat.TRU_TEST
    if "gallagher" in lower:
        return ScaleFormat.GALLAGHER
    if lower.endswith(".csv"):
        return ScaleFormat.CSV
    if lower.endswith(".txt"):
        return ScaleFormat.TXT
    return ScaleFormat.GENERIC


def parse_scale_content(content: str, filename: str, now: datetime | None = None) -> ScaleImportResult:
    scale_format = detect_scale_format(filename)
    if scale_format == ScaleFormat.TRU_TEST:
        result = parse_tru_test(content, now)
    else:
        # Gallagher exports are plain tag/weight/date files
        result = parse_generic(content, now)
    result.format = scale_format
    logger.info(
        "Scale file %s: %d readings, %d lines skipped (format: %s)",
        filename,
        len(result.readings),
        len(result.skipped_lines),
        scale_format.value,
    )
    return result


def import_scale_file(path: Path, now: datetime | None = None) -> ScaleImportResult:
    path = Path(path)
    # utf-8-sig drops the BOM some scale software writes
    content = path.read_text(encoding="utf-8-sig", errors="replace")
    return parse_scale_content(content, path.name, now)


# =============================================================================
# Matching
# =============================================================================


def match_readings_with_animals(readings: list[ScaleReading], animals: list[Animal]) -> list[ScaleReading]:
    """Attach readings to animals by tag or name (case-insensitive).

    Readings whose tag is unknown get a "não encontrado" warning.
    """
    lookup: dict[str, Animal] = {}
    for animal in animals:
        lookup[animal.tag.upper()] = animal
        if animal.name:
            lookup[animal.name.upper()] = animal

    for reading in readings:
        if not reading.animal_tag:
            continue
        animal = lookup.get(reading.animal_tag.upper())
        if animal:
            reading.matched = True
            reading.animal_id = animal.id
        elif not any("não encontrado" in w for w in reading.warnings):
            reading.warnings.append(f'Brinco "{reading.animal_tag}" não encontrado no cadastro.')
    return readings


def convert_to_weight_entries(
    readings: list[ScaleReading],
    weighing_type: WeighingType = WeighingType.NONE,
) -> dict[str, WeightEntry]:
    """One weighing per matched animal (the last reading wins), keyed by animal id."""
    entries: dict[str, WeightEntry] = {}
    for reading in readings:
        if not (reading.matched and reading.animal_id):
            continue
        weight = to_kg(reading.weight, reading.unit)
        entries[reading.animal_id] = WeightEntry(
            id=f"weight-{reading.timestamp:%Y%m%d%H%M}-{reading.animal_id}",
            date=reading.timestamp.date() if isinstance(reading.timestamp, datetime) else reading.timestamp,
            weight_kg=weight,
            type=weighing_type,
        )
    return entries


def scale_template(today: date | None = None) -> str:
    """Example file in the generic layout."""
    day = (today or date(2025, 1, 15)).strftime("%d/%m/%Y")
    rows = ["brinco,peso_kg,data", f"ABC001,320.5,{day}", f"ABC002,285.0,{day}", f"ABC003,410.2,{day}"]
    return "\n".join(rows)
