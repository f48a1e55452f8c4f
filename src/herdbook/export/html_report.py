"""
Printable HTML reports.

Each report is a standalone document with A4 print styles; open it in a
browser and print (or "save as PDF"). All record text is HTML-escaped.
"""

import logging
from collections import Counter
from datetime import date
from html import escape
from pathlib import Path

from herdbook.analysis.filters import HerdStats
from herdbook.core.dates import format_date_br
from herdbook.export.csv_export import prepare_breeding_season_rows
from herdbook.models import Animal, AnimalStatus, BreedingSeason, ManagementArea

logger = logging.getLogger(__name__)

BRAND = "#381b18"

MONTHS_PT = [
    "janeiro", "fevereiro", "março", "abril", "maio", "junho",
    "julho", "agosto", "setembro", "outubro", "novembro", "dezembro",
]

_BASE_STYLES = f"""
  * {{ box-sizing: border-box; }}
  body {{ font-family: 'Segoe UI', Arial, sans-serif; color: #333; margin: 0; }}
  .header {{ text-align: center; margin-bottom: 20px; padding-bottom: 15px; border-bottom: 2px solid {BRAND}; }}
  .header h1 {{ color: {BRAND}; margin: 0 0 5px 0; font-size: 22px; }}
  .subtitle {{ color: #666; font-size: 12px; margin: 5px 0; }}
  .date {{ color: #999; font-size: 10px; }}
  .stats-grid {{ display: grid; gap: 10px; margin-bottom: 20px; }}
  .stat-card {{ background: #f8f9fa; padding: 12px; border-radius: 6px; text-align: center;
               border-left: 4px solid {BRAND}; }}
  .stat-card .value {{ font-size: 18px; font-weight: bold; color: {BRAND}; }}
  .stat-card .label {{ font-size: 9px; color: #666; margin-top: 3px; }}
  .section-title {{ font-size: 14px; font-weight: bold; color: {BRAND}; margin: 20px 0 10px 0;
                   padding-bottom: 5px; border-bottom: 1px solid #ddd; }}
  table {{ width: 100%; border-collapse: collapse; margin-top: 10px; }}
  th {{ background: {BRAND}; color: white; padding: 6px; text-align: left; font-weight: 600; }}
  td {{ padding: 5px 6px; border-bottom: 1px solid #eee; }}
  tr:nth-child(even) {{ background: #f9f9f9; }}
  .footer {{ margin-top: 30px; padding-top: 15px; border-top: 1px solid #ddd; font-size: 8px;
            color: #999; text-align: center; }}
  @media print {{ body {{ print-color-adjust: exact; -webkit-print-color-adjust: exact; }} }}
"""

_ANIMAL_STYLES = """
  @page { size: A4; margin: 1.5cm; }
  body { font-size: 10px; }
  table { font-size: 9px; }
  .stats-grid { grid-template-columns: repeat(4, 1fr); }
  .distribution-grid { display: grid; grid-template-columns: repeat(2, 1fr); gap: 15px; margin-bottom: 20px; }
  .distribution-card { background: #f8f9fa; padding: 12px; border-radius: 6px; border: 1px solid #e9ecef; }
  .distribution-item { display: flex; justify-content: space-between; padding: 3px 0;
                       border-bottom: 1px dotted #ddd; }
  .status-ativo { color: #28a745; font-weight: bold; }
  .status-vendido { color: #ffc107; font-weight: bold; }
  .status-obito { color: #dc3545; font-weight: bold; }
"""

_SEASON_STYLES = """
  @page { size: A4 landscape; margin: 1.5cm; }
  body { font-size: 9px; }
  table { font-size: 8px; }
  .stats-grid { grid-template-columns: repeat(5, 1fr); }
  .stat-card.success { border-left-color: #10b981; }
  .stat-card.danger { border-left-color: #ef4444; }
  .stat-card.warning { border-left-color: #f59e0b; }
  .stat-card.info { border-left-color: #3b82f6; }
  .badge { padding: 2px 6px; border-radius: 10px; font-size: 8px; font-weight: 500; }
  .badge-success { background: #d1fae5; color: #065f46; }
  .badge-danger { background: #fee2e2; color: #991b1b; }
  .badge-warning { background: #fef3c7; color: #92400e; }
  .fiv-section { background: #fdf4ff; border: 1px solid #e879f9; border-radius: 8px; padding: 12px;
                 margin-bottom: 16px; }
  .fiv-title { color: #a21caf; font-weight: bold; margin-bottom: 8px; }
"""

STATUS_CLASSES = {
    AnimalStatus.ACTIVE: "status-ativo",
    AnimalStatus.SOLD: "status-vendido",
    AnimalStatus.DEAD: "status-obito",
}

RESULT_BADGES = {"Prenhe": "badge-success", "Vazia": "badge-danger"}


def format_date_long(d: date) -> str:
    """e.g. "15 de janeiro de 2025"."""
    return f"{d.day:02d} de {MONTHS_PT[d.month - 1]} de {d.year}"


def _document(title: str, styles: str, body: str) -> str:
    return f"""<!DOCTYPE html>
<html lang="pt-BR">
<head>
<meta charset="UTF-8">
<title>{escape(title)}</title>
<style>{_BASE_STYLES}{styles}</style>
</head>
<body>
{body}
</body>
</html>
"""


def _stat_card(value, label: str, kind: str = "") -> str:
    css = f"stat-card {kind}".strip()
    return (
        f'<div class="{css}"><div class="value">{escape(str(value))}</div>'
        f'<div class="label">{escape(label)}</div></div>'
    )


def _row(cells: list[str]) -> str:
    return "<tr>" + "".join(f"<td>{c}</td>" for c in cells) + "</tr>"


def _or_dash(value) -> str:
    return escape(str(value)) if value not in (None, "") else "-"


# =============================================================================
# Herd Report
# =============================================================================


def render_animals_report(
    animals: list[Animal],
    stats: HerdStats | None,
    areas: list[ManagementArea],
    title: str = "Relatório do Rebanho",
    subtitle: str | None = None,
    today: date | None = None,
) -> str:
    """Herd listing, optionally headed by summary stats and distributions."""
    today = today or date.today()
    area_names = {a.id: a.name for a in areas}

    def area_name(area_id: str | None) -> str:
        if not area_id:
            return "Sem área"
        return area_names.get(area_id, "Área desconhecida")

    parts = [
        '<div class="header">',
        f"<h1>{escape(title)}</h1>",
        f'<div class="subtitle">{escape(subtitle)}</div>' if subtitle else "",
        f'<div class="date">Gerado em: {format_date_long(today)}</div>',
        "</div>",
    ]

    if stats is not None:
        parts.append('<div class="stats-grid">')
        parts.append(_stat_card(stats.total_animals, "Total de Animais"))
        parts.append(_stat_card(stats.active_count, "Ativos"))
        parts.append(_stat_card(f"{stats.average_weight:.1f} kg", "Peso Médio"))
        parts.append(_stat_card(f"{stats.male_count}M / {stats.female_count}F", "Machos / Fêmeas"))
        parts.append("</div>")

        breeds = sorted(stats.breed_distribution.items(), key=lambda item: item[1], reverse=True)
        ages = [
            ("Bezerros (0-6m)", stats.age_distribution.get("bezerros", 0)),
            ("Jovens (6-12m)", stats.age_distribution.get("jovens", 0)),
            ("Novilhos (12-24m)", stats.age_distribution.get("novilhos", 0)),
            ("Adultos (24m+)", stats.age_distribution.get("adultos", 0)),
        ]
        parts.append('<div class="distribution-grid">')
        for heading, items in (("Distribuição por Raça", breeds), ("Distribuição por Idade", ages)):
            parts.append(f'<div class="distribution-card"><h4>{heading}</h4>')
            for label, count in items:
                parts.append(
                    f'<div class="distribution-item"><span>{escape(label)}</span><strong>{count}</strong></div>'
                )
            parts.append("</div>")
        parts.append("</div>")

    headers = ["Brinco", "Nome", "Raça", "Sexo", "Nascimento", "Peso (kg)", "Status", "Área", "Mãe", "Pai"]
    parts.append(f'<div class="section-title">Lista de Animais ({len(animals)})</div>')
    parts.append("<table><thead><tr>" + "".join(f"<th>{h}</th>" for h in headers) + "</tr></thead><tbody>")
    for a in animals:
        status_css = STATUS_CLASSES.get(a.status, "status-obito")
        parts.append(
            "<tr>"
            f"<td><strong>{escape(a.tag)}</strong></td>"
            f"<td>{_or_dash(a.name)}</td>"
            f"<td>{escape(a.breed.value)}</td>"
            f"<td>{escape(a.sex.value)}</td>"
            f"<td>{format_date_br(a.birth_date) or '-'}</td>"
            f"<td>{a.weight_kg:g}</td>"
            f'<td class="{status_css}">{escape(a.status.value)}</td>'
            f"<td>{escape(area_name(a.management_area_id))}</td>"
            f"<td>{_or_dash(a.dam_name)}</td>"
            f"<td>{_or_dash(a.sire_name)}</td>"
            "</tr>"
        )
    parts.append("</tbody></table>")
    parts.append('<div class="footer">herdbook - Relatório do rebanho gerado automaticamente</div>')

    return _document(title, _ANIMAL_STYLES, "\n".join(p for p in parts if p))


# =============================================================================
# Breeding Season Report
# =============================================================================


def _result_badge(result: str) -> str:
    css = RESULT_BADGES.get(result, "badge-warning")
    return f'<span class="badge {css}">{escape(result)}</span>'


def render_breeding_season_report(season: BreedingSeason, animals: list[Animal], today: date | None = None) -> str:
    """Season summary, IVF donor/recipient detail and the full coverage register."""
    today = today or date.today()
    rows = prepare_breeding_season_rows(season, animals)

    total = len(rows)
    results = Counter(r["pregnancyResult"] for r in rows)
    pregnant = results["Prenhe"]
    rate = f"{pregnant / total * 100:.1f}" if total else "0"
    type_counts = Counter(r["coverageType"] for r in rows)
    ivf_rows = [r for r in rows if r["recipientInfo"]]

    title = f"Estação de Monta - {season.name}"
    parts = [
        '<div class="header">',
        f"<h1>Estação de Monta: {escape(season.name)}</h1>",
        f'<div class="subtitle">Período: {format_date_br(season.start_date)} a {format_date_br(season.end_date)}</div>',
        f'<div class="date">Relatório gerado em: {format_date_br(today)}</div>',
        "</div>",
        '<div class="stats-grid">',
        _stat_card(total, "Total Coberturas"),
        _stat_card(pregnant, "Prenhes", "success"),
        _stat_card(results["Vazia"], "Vazias", "danger"),
        _stat_card(results["Aguardando"], "Aguardando", "warning"),
        _stat_card(f"{rate}%", "Taxa Prenhez", "info"),
        "</div>",
        '<div class="stats-grid">',
        *(_stat_card(count, label) for label, count in type_counts.items()),
        "</div>",
    ]

    if ivf_rows:
        parts.append('<div class="fiv-section">')
        parts.append(f'<div class="fiv-title">Detalhamento FIV ({len(ivf_rows)} registros)</div>')
        parts.append(
            "<p>Em FIV, a <em>Doadora</em> é a mãe biológica (genética) e a <em>Receptora</em> "
            "é quem gesta o embrião. A progênie é registrada na Doadora.</p>"
        )
        headers = ["Data", "Doadora (Mãe Biológica)", "Receptora (Gestante)", "Touro/Sêmen", "Resultado", "Previsão Parto"]
        parts.append("<table><thead><tr>" + "".join(f"<th>{h}</th>" for h in headers) + "</tr></thead><tbody>")
        for r in ivf_rows:
            parts.append(
                _row(
                    [
                        escape(r["coverageDate"]),
                        f"<strong>{_or_dash(r['donorInfo'])}</strong>",
                        escape(r["recipientInfo"]),
                        escape(r["sire"]),
                        _result_badge(r["pregnancyResult"]),
                        _or_dash(r["expectedCalvingDate"]),
                    ]
                )
            )
        parts.append("</tbody></table></div>")

    headers = ["Vaca", "Data", "Tipo", "Touro/Sêmen", "Doadora (FIV)", "Técnico", "Resultado",
               "Data Diag.", "Prev. Parto", "Obs."]
    parts.append('<div class="section-title">Registro Completo de Coberturas</div>')
    parts.append("<table><thead><tr>" + "".join(f"<th>{h}</th>" for h in headers) + "</tr></thead><tbody>")
    for r in rows:
        parts.append(
            _row(
                [
                    escape(r["cowBrinco"]),
                    escape(r["coverageDate"]),
                    escape(r["coverageType"]),
                    escape(r["sire"]),
                    _or_dash(r["donorInfo"]),
                    _or_dash(r["technician"]),
                    _result_badge(r["pregnancyResult"]),
                    _or_dash(r["pregnancyCheckDate"]),
                    _or_dash(r["expectedCalvingDate"]),
                    _or_dash(r["notes"]),
                ]
            )
        )
    parts.append("</tbody></table>")
    parts.append('<div class="footer">herdbook - Relatório de Estação de Monta gerado automaticamente</div>')

    return _document(title, _SEASON_STYLES, "\n".join(parts))


def write_report(path: Path, html: str) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(html, encoding="utf-8")
    logger.info("Wrote report to %s", path)
    return path


def report_filename(title: str, today: date | None = None) -> str:
    """e.g. "relatório_do_rebanho_2025-01-15.html"."""
    return f"{'_'.join(title.lower().split())}_{(today or date.today()).isoformat()}.html"
