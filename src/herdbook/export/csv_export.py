"""
CSV exports of the herd and of a breeding season.

Files are UTF-8 with a byte-order mark so spreadsheet programs pick up the
accents in the Portuguese headers. Lines end in "\\n"; a value is quoted only
when it holds a quote, a comma or a line break.
"""

import logging
import re
from datetime import date
from pathlib import Path

from herdbook.core.dates import format_date_br
from herdbook.models import Animal, BreedingSeason, CoverageType, PregnancyResult

logger = logging.getLogger(__name__)

BOM = "\ufeff"

_NEEDS_QUOTES = re.compile(r'[",\n\r]')

ANIMAL_CSV_HEADERS = {
    "brinco": "Brinco",
    "nome": "Nome",
    "raca": "Raça",
    "sexo": "Sexo",
    "dataNascimento": "Data de Nascimento",
    "pesoKg": "Peso Atual (kg)",
    "status": "Status",
    "paiNome": "Pai",
    "maeNome": "Mãe",
    "numMedicacoes": "Nº Medicações",
    "numPesagens": "Nº Pesagens",
    "numPrenhez": "Nº Prenhez",
    "numAbortos": "Nº Abortos",
    "numProgenie": "Nº Crias",
}

BREEDING_SEASON_HEADERS = {
    "cowBrinco": "Brinco Vaca",
    "coverageDate": "Data Cobertura",
    "coverageType": "Tipo",
    "sire": "Touro/Sêmen",
    "donorInfo": "Doadora (FIV)",
    "recipientInfo": "Receptora (FIV)",
    "technician": "Técnico",
    "pregnancyResult": "Resultado",
    "pregnancyCheckDate": "Data Diagnóstico",
    "expectedCalvingDate": "Previsão Parto",
    "notes": "Observações",
}

COVERAGE_TYPE_LABELS = {
    CoverageType.NATURAL: "Monta Natural",
    CoverageType.AI: "Inseminação Artificial",
    CoverageType.FTAI: "IATF",
    CoverageType.IVF: "FIV (Fertilização In Vitro)",
}

PREGNANCY_RESULT_LABELS = {
    PregnancyResult.POSITIVE: "Prenhe",
    PregnancyResult.NEGATIVE: "Vazia",
    PregnancyResult.PENDING: "Aguardando",
}


def escape_csv(value) -> str:
    if value is None:
        return ""
    text = str(value)
    if _NEEDS_QUOTES.search(text):
        return '"' + text.replace('"', '""') + '"'
    return text


def to_csv(rows: list[dict], headers: dict[str, str]) -> str:
    """Render rows as CSV text (BOM included).

    Args:
        rows: Records keyed like `headers`
        headers: Column key -> header label, in column order
    """
    lines = [",".join(headers.values())]
    for row in rows:
        lines.append(",".join(escape_csv(row.get(key)) for key in headers))
    return BOM + "\n".join(lines)


def write_csv(path: Path, rows: list[dict], headers: dict[str, str]) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    # newline="" keeps "\n" as written on every platform
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(to_csv(rows, headers))
    logger.info("Wrote %d rows to %s", len(rows), path)
    return path


def safe_filename(name: str) -> str:
    return re.sub(r"[^a-zA-Z0-9]", "_", name)


def default_animals_filename(today: date | None = None) -> str:
    return f"rebanho_{(today or date.today()).isoformat()}.csv"


def default_season_filename(season: BreedingSeason, today: date | None = None) -> str:
    return f"estacao_monta_{safe_filename(season.name)}_{(today or date.today()).isoformat()}.csv"


# =============================================================================
# Row Preparation
# =============================================================================


def prepare_animal_rows(animals: list[Animal]) -> list[dict]:
    return [
        {
            "brinco": a.tag,
            "nome": a.name or "",
            "raca": a.breed.value,
            "sexo": a.sex.value,
            "dataNascimento": format_date_br(a.birth_date),
            "pesoKg": a.weight_kg,
            "status": a.status.value,
            "paiNome": a.sire_name or "",
            "maeNome": a.dam_name or "",
            "numMedicacoes": len(a.medications),
            "numPesagens": len(a.weighings),
            "numPrenhez": len(a.pregnancies),
            "numAbortos": len(a.abortions),
            "numProgenie": len(a.progeny),
        }
        for a in animals
    ]


def _animal_name(animals_by_id: dict[str, Animal], animal_id: str | None, tag: str | None) -> str:
    animal = animals_by_id.get(animal_id) if animal_id else None
    if animal:
        return animal.label
    return tag or ""


def prepare_breeding_season_rows(season: BreedingSeason, animals: list[Animal]) -> list[dict]:
    """One row per coverage, oldest first.

    IVF rows name the donor (genetic dam) and the recipient separately.
    Multi-bull natural matings list every bull until the sire is confirmed.
    """
    by_id = {a.id: a for a in animals}
    rows = []
    for coverage in sorted(season.coverage_records, key=lambda c: c.date):
        is_ivf = coverage.type == CoverageType.IVF
        donor = (
            _animal_name(by_id, coverage.donor_cow_id, coverage.donor_cow_tag)
            if is_ivf and coverage.donor_cow_tag
            else ""
        )
        recipient = _animal_name(by_id, coverage.cow_id, coverage.cow_tag) if is_ivf else ""

        if coverage.type == CoverageType.NATURAL and coverage.bulls:
            if coverage.confirmed_sire_id:
                sire = coverage.confirmed_sire_tag or "Confirmado"
            elif len(coverage.bulls) == 1:
                sire = _animal_name(by_id, coverage.bulls[0].bull_id, coverage.bulls[0].bull_tag)
            else:
                sire = " / ".join(b.bull_tag for b in coverage.bulls) + " (pendente)"
        elif coverage.bull_tag:
            sire = _animal_name(by_id, coverage.bull_id, coverage.bull_tag)
        else:
            sire = coverage.semen_code or ""

        result = coverage.pregnancy_result or PregnancyResult.PENDING
        rows.append(
            {
                "cowBrinco": f"{coverage.cow_tag} (Receptora)" if is_ivf else coverage.cow_tag,
                "coverageDate": format_date_br(coverage.date),
                "coverageType": COVERAGE_TYPE_LABELS[coverage.type],
                "sire": sire,
                "donorInfo": donor,
                "recipientInfo": recipient,
                "technician": coverage.technician or "",
                "pregnancyResult": PREGNANCY_RESULT_LABELS[result],
                "pregnancyCheckDate": format_date_br(coverage.pregnancy_check_date),
                "expectedCalvingDate": format_date_br(coverage.expected_calving_date),
                "notes": coverage.notes or "",
            }
        )
    return rows
