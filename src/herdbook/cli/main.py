"""Unified herdbook command line.

Works against the local-first store: reads come from the .cache/ snapshot
while it is fresh, writes are queued when Firestore can't be reached.

Usage:
    herdbook animals list --sex Fêmea --sort pesoKg
    herdbook animals gmd
    herdbook seasons metrics --season <id>
    herdbook export season --format html
    herdbook import-scale pesagem.csv --apply
    herdbook queue status
    herdbook nfe dry-run
"""

import argparse
import asyncio
import json
from datetime import date
from pathlib import Path

from herdbook.analysis.filters import AdvancedFilters, calculate_stats, filter_animals
from herdbook.analysis.gmd import classify_gmd, format_gmd, rank_by_gmd
from herdbook.breeding.calving import verify_calvings
from herdbook.breeding.season import calculate_breeding_metrics, get_expected_calvings
from herdbook.core.config import settings
from herdbook.core.dates import format_date_br, json_default
from herdbook.core.units import format_weight
from herdbook.data.animals import add_weighing, fetch_animals
from herdbook.data.farm import fetch_management_areas
from herdbook.data.seasons import fetch_seasons, get_season
from herdbook.data.store import LocalFirstStore
from herdbook.export.csv_export import (
    ANIMAL_CSV_HEADERS,
    BREEDING_SEASON_HEADERS,
    default_animals_filename,
    default_season_filename,
    prepare_animal_rows,
    prepare_breeding_season_rows,
    write_csv,
)
from herdbook.export.html_report import (
    render_animals_report,
    render_breeding_season_report,
    report_filename,
    write_report,
)
from herdbook.importers.scale import (
    convert_to_weight_entries,
    import_scale_file,
    match_readings_with_animals,
    scale_template,
)
from herdbook.logging_config import setup_logging
from herdbook.models import Animal, AnimalStatus, Breed, BreedingSeason, Sex, WeighingType
from herdbook.nfe import providers
from herdbook.nfe.dry_run import run_dry_run
from herdbook.nfe.models import load_nfe_config, sale_from_dict

SORT_FIELDS = ["brinco", "nome", "pesoKg", "dataNascimento", "raca", "status"]

CALVING_STATUS_LABELS = {
    "calved": "Pariu",
    "aborted": "Abortou",
    "overdue": "Atrasada",
    "awaiting": "Aguardando",
}


async def _select_season(store: LocalFirstStore, season_id: str | None) -> BreedingSeason | None:
    """The requested season, or the most recent one."""
    if season_id:
        season = await get_season(store, season_id)
        if season is None:
            print(f"Season not found: {season_id}")
        return season
    seasons = await fetch_seasons(store)
    if not seasons:
        print("No breeding seasons recorded.")
        return None
    return seasons[0]


def _pct(value: float) -> str:
    return f"{value:.1f}%"


# =============================================================================
# animals
# =============================================================================


async def cmd_animals_list(args: argparse.Namespace, store: LocalFirstStore) -> None:
    animals = await fetch_animals(store, refresh=args.refresh)
    filters = AdvancedFilters(
        search_term=args.search or "",
        sex=args.sex or "",
        status=args.status or "",
        breed=args.breed or "",
        sort_field=args.sort,
        sort_descending=args.desc,
    )
    selected = filter_animals(animals, filters)

    if args.json:
        print(json.dumps([a.to_dict() for a in selected], indent=2, ensure_ascii=False, default=json_default))
        return

    print(f"{'Brinco':<10} {'Nome':<18} {'Sexo':<7} {'Raça':<12} {'Nasc.':<11} {'Peso':>10}  Status")
    print("-" * 80)
    for a in selected:
        print(
            f"{a.tag:<10} {(a.name or '-')[:18]:<18} {a.sex.value:<7} {a.breed.value:<12} "
            f"{format_date_br(a.birth_date) or '-':<11} {format_weight(a.weight_kg):>10}  {a.status.value}"
        )
    print("-" * 80)
    print(f"{len(selected)} of {len(animals)} animals")


async def cmd_animals_gmd(args: argparse.Namespace, store: LocalFirstStore) -> None:
    animals = [a for a in await fetch_animals(store) if a.status == AnimalStatus.ACTIVE]
    ranking = rank_by_gmd(animals)

    print("=" * 70)
    print("Average Daily Gain (GMD) Ranking")
    print("=" * 70)
    print(f"{'#':>3}  {'Brinco':<10} {'GMD':>14} {'Dias':>6} {'Peso atual':>12}  Classe")
    print("-" * 70)
    for rank, animal, metrics in ranking[: args.top]:
        print(
            f"{rank:>3}  {animal.tag:<10} {format_gmd(metrics.total):>14} {metrics.days_tracked:>6} "
            f"{format_weight(metrics.final_weight):>12}  {classify_gmd(metrics.total)}"
        )
    untracked = len(animals) - len(ranking)
    if untracked:
        print(f"\n{untracked} animals without weight gain on record")


# =============================================================================
# seasons
# =============================================================================


async def cmd_seasons_list(args: argparse.Namespace, store: LocalFirstStore) -> None:
    seasons = await fetch_seasons(store, refresh=args.refresh)
    print(f"{'ID':<24} {'Nome':<24} {'Início':<11} {'Fim':<11} {'Status':<10} Coberturas")
    print("-" * 90)
    for s in seasons:
        print(
            f"{s.id:<24} {s.name[:24]:<24} {format_date_br(s.start_date):<11} "
            f"{format_date_br(s.end_date):<11} {s.status.value:<10} {len(s.coverage_records)}"
        )


async def cmd_seasons_metrics(args: argparse.Namespace, store: LocalFirstStore) -> None:
    season = await _select_season(store, args.season)
    if season is None:
        return
    m = calculate_breeding_metrics(season)

    print("=" * 70)
    print(f"Breeding Season: {season.name}")
    print(f"{format_date_br(season.start_date)} - {format_date_br(season.end_date)} ({season.status.value})")
    print("=" * 70)
    print(f"  Exposed cows:        {m.total_exposed}")
    print(f"  Covered:             {m.total_covered}")
    print(f"  Pregnant:            {m.total_pregnant}")
    print(f"  Empty:               {m.total_empty}")
    print(f"  Awaiting diagnosis:  {m.total_pending}")
    print()
    print(f"  Pregnancy rate:      {_pct(m.pregnancy_rate)}")
    print(f"  Service rate:        {_pct(m.service_rate)}")
    print(f"  Conception rate:     {_pct(m.conception_rate)}")
    print(f"  Overall (repasse):   {_pct(m.overall_pregnancy_rate)}")
    if m.repasse_count:
        print(f"  Repasse:             {m.repasse_pregnant}/{m.repasse_count} pregnant")

    print("\nCoverages by type:")
    print("-" * 50)
    for coverage_type, count in m.coverages_by_type.items():
        if count:
            print(f"  {coverage_type.value:<12} {count}")

    if m.coverages_by_bull:
        print("\nBulls:")
        print("-" * 50)
        for bull in m.coverages_by_bull:
            print(f"  {bull.bull_tag:<12} {bull.count:>4} coverages, {bull.pregnancies:>4} pregnancies")

    if m.pregnancy_checks_due:
        print("\nPregnancy checks due:")
        print("-" * 50)
        for due in m.pregnancy_checks_due:
            kind = " (repasse)" if due.is_repasse else ""
            print(f"  {due.cow_tag:<12} {format_date_br(due.due_date)}{kind}")


async def cmd_seasons_calvings(args: argparse.Namespace, store: LocalFirstStore) -> None:
    season = await _select_season(store, args.season)
    if season is None:
        return
    calvings = get_expected_calvings(season)
    print(f"Expected calvings - {season.name}")
    print("-" * 70)
    for c in calvings:
        origin = f"FIV, doadora {c.donor_info}" if c.is_ivf and c.donor_info else c.bull_info
        kind = " [repasse]" if c.is_repasse else ""
        print(f"  {format_date_br(c.expected_date):<11} {c.cow_tag:<12} {origin}{kind}")
    print(f"\n{len(calvings)} calvings expected")


async def cmd_seasons_verify(args: argparse.Namespace, store: LocalFirstStore) -> None:
    season = await _select_season(store, args.season)
    if season is None:
        return
    animals = await fetch_animals(store)
    results = verify_calvings(season, animals, tolerance_days=args.tolerance)

    print(f"Calving verification - {season.name}")
    print("-" * 70)
    counts: dict[str, int] = {}
    for r in results:
        counts[r.status.value] = counts.get(r.status.value, 0) + 1
        detail = ""
        if r.calf_tag:
            detail = f"bezerro {r.calf_tag} em {format_date_br(r.event_date)}"
        elif r.event_date:
            detail = f"em {format_date_br(r.event_date)}"
        print(
            f"  {r.cow_tag:<12} previsto {format_date_br(r.expected_date):<11} "
            f"{CALVING_STATUS_LABELS[r.status.value]:<11} {detail}"
        )
    print()
    print("  ".join(f"{CALVING_STATUS_LABELS[k]}: {v}" for k, v in counts.items()) or "No pregnancies")


# =============================================================================
# export
# =============================================================================


async def cmd_export(args: argparse.Namespace, store: LocalFirstStore) -> None:
    animals = await fetch_animals(store)
    today = date.today()

    if args.what == "animals":
        if args.format == "csv":
            path = Path(args.output or default_animals_filename(today))
            write_csv(path, prepare_animal_rows(animals), ANIMAL_CSV_HEADERS)
        else:
            areas = await fetch_management_areas(store)
            stats = calculate_stats(animals, areas, today)
            html = render_animals_report(animals, stats, areas, today=today)
            path = write_report(Path(args.output or report_filename("Relatório do Rebanho", today)), html)
    else:
        season = await _select_season(store, args.season)
        if season is None:
            return
        if args.format == "csv":
            path = Path(args.output or default_season_filename(season, today))
            write_csv(path, prepare_breeding_season_rows(season, animals), BREEDING_SEASON_HEADERS)
        else:
            html = render_breeding_season_report(season, animals, today=today)
            path = write_report(Path(args.output or report_filename(f"Estação {season.name}", today)), html)

    print(f"Exported to {path}")


# =============================================================================
# import-scale
# =============================================================================


async def cmd_import_scale(args: argparse.Namespace, store: LocalFirstStore) -> None:
    if args.template:
        print(scale_template(date.today()))
        return
    if not args.file:
        print("Give a scale file (or --template for an example)")
        return

    result = import_scale_file(Path(args.file))
    animals = await fetch_animals(store)
    match_readings_with_animals(result.readings, animals)

    print(f"Format: {result.format.value}")
    print(f"Readings: {result.total} ({result.matched} matched, {result.unmatched} unmatched)")
    print("-" * 60)
    for r in result.readings:
        mark = "[OK]" if r.matched else "[??]"
        warnings = f"  ! {'; '.join(r.warnings)}" if r.warnings else ""
        print(f"  {mark} {r.animal_tag or '-':<12} {r.weight:>8.1f} {r.unit:<6} {r.timestamp:%d/%m/%Y}{warnings}")
    for skipped in result.skipped_lines:
        print(f"  [SKIP] line {skipped.line_number}: {skipped.reason}")

    if not args.apply:
        print("\nDry run; use --apply to record the matched weighings")
        return

    entries = convert_to_weight_entries(result.readings, WeighingType(args.type))
    by_id: dict[str, Animal] = {a.id: a for a in animals}
    for animal_id, entry in entries.items():
        await add_weighing(store, by_id[animal_id], entry, herd=animals)
    print(f"\nRecorded {len(entries)} weighings")
    if not store.online:
        print(f"Offline: {len(store.queue)} writes queued for the next sync")


# =============================================================================
# queue
# =============================================================================


async def cmd_queue(args: argparse.Namespace, store: LocalFirstStore) -> None:
    queue = store.queue
    if args.action == "clear":
        count = len(queue)
        queue.clear()
        print(f"Discarded {count} queued writes")
        return

    if args.action == "replay":
        if args.retry_failed:
            print(f"Reset {queue.retry_failed()} failed writes")
        summary = await store.sync_pending()
        print(
            f"Sent {summary['processed']}, failed {summary['failed']}, "
            f"skipped {summary['skipped']}, remaining {summary['remaining']}"
        )
        return

    stats = queue.stats()
    print(f"Queued writes: {stats['total']} ({stats['pending']} pending, {stats['failed']} failed)")
    for op in queue.get_queue():
        error = f"  {op.last_error}" if op.last_error else ""
        print(f"  {op.status.value:<8} {op.type.value:<7} {op.collection}/{op.document_id or '?'}{error}")


# =============================================================================
# nfe
# =============================================================================


async def cmd_nfe(args: argparse.Namespace, store: LocalFirstStore) -> None:
    config = load_nfe_config()

    if args.action == "test":
        ok, message = await providers.test_connection(config)
        print(f"[{'OK' if ok else 'FAILED'}] {message}")
        return

    if args.action == "emit":
        if not args.file:
            print("Give the sale JSON with --file")
            return
        with open(args.file, encoding="utf-8") as f:
            sale = sale_from_dict(json.load(f))
        response = await providers.emit_nfe(sale, config)
        print(f"[{response.status.upper()}] {response.message}")
        if response.access_key:
            print(f"  Chave: {response.access_key}")
        if response.danfe_url:
            print(f"  DANFE: {response.danfe_url}")
        for error in response.errors:
            print(f"  - {error}")
        return

    animals = [a for a in await fetch_animals(store) if a.status == AnimalStatus.ACTIVE]
    result = run_dry_run(config, animals)
    print("=" * 70)
    print(f"NF-e dry run ({config.environment})")
    print("=" * 70)
    if result.missing:
        print("Missing:")
        for item in result.missing:
            print(f"  [MISSING] {item}")
    else:
        print("  [OK] Issuer data complete")
    for warning in result.warnings:
        print(f"  [WARN] {warning}")
    print("\nNext steps:")
    for step in result.next_steps:
        print(f"  - {step}")
    if args.show_xml:
        print()
        print(result.payload_preview)


# =============================================================================
# Entry Point
# =============================================================================


def _add_season_arg(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--season", help="Breeding season id (default: most recent)")


async def cli_main() -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Herd management for beef cattle farms",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  herdbook animals list --sex Fêmea          Females, sorted by tag
  herdbook animals list --search "A1 ou A2"  Free-text search
  herdbook animals gmd --top 20              Best weight gain
  herdbook seasons verify                    Check calvings of the latest season
  herdbook export animals --format html      Printable herd report
  herdbook import-scale pesagem.csv --apply  Record scale weighings
  herdbook queue replay                      Send writes queued while offline
  herdbook nfe dry-run --show-xml            Check NF-e issuer data
""",
    )
    parser.add_argument("--refresh", action="store_true", help="Ignore local snapshots and fetch from Firestore")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # animals
    animals_parser = subparsers.add_parser("animals", help="List animals and weight gain")
    animals_sub = animals_parser.add_subparsers(dest="action", required=True)
    list_parser = animals_sub.add_parser("list", help="List animals")
    list_parser.add_argument("--sex", choices=[s.value for s in Sex])
    list_parser.add_argument("--status", choices=[s.value for s in AnimalStatus])
    list_parser.add_argument("--breed", choices=[b.value for b in Breed])
    list_parser.add_argument("--search", help='Search tag and name ("a ou b", "a e b")')
    list_parser.add_argument("--sort", choices=SORT_FIELDS, default="brinco")
    list_parser.add_argument("--desc", action="store_true", help="Sort descending")
    list_parser.add_argument("--json", action="store_true", help="Output as JSON")
    gmd_parser = animals_sub.add_parser("gmd", help="Rank active animals by GMD")
    gmd_parser.add_argument("--top", type=int, default=50, help="Rows to show (default: 50)")

    # seasons
    seasons_parser = subparsers.add_parser("seasons", help="Breeding seasons")
    seasons_sub = seasons_parser.add_subparsers(dest="action", required=True)
    seasons_sub.add_parser("list", help="List breeding seasons")
    _add_season_arg(seasons_sub.add_parser("metrics", help="Pregnancy rates and bull performance"))
    _add_season_arg(seasons_sub.add_parser("calvings", help="Expected calvings"))
    verify_parser = seasons_sub.add_parser("verify", help="Match pregnancies with born calves")
    _add_season_arg(verify_parser)
    verify_parser.add_argument(
        "--tolerance",
        type=int,
        default=None,
        help=f"Days around the expected date (default: {settings.calving_tolerance_days})",
    )

    # export
    export_parser = subparsers.add_parser("export", help="CSV or HTML exports")
    export_parser.add_argument("what", choices=["animals", "season"])
    export_parser.add_argument("--format", choices=["csv", "html"], default="csv")
    export_parser.add_argument("--output", "-o", help="Output file")
    _add_season_arg(export_parser)

    # import-scale
    scale_parser = subparsers.add_parser("import-scale", help="Import weighings from a scale file")
    scale_parser.add_argument("file", nargs="?", help="CSV/TXT export from the scale")
    scale_parser.add_argument("--apply", action="store_true", help="Record matched weighings")
    scale_parser.add_argument(
        "--type",
        choices=[t.value for t in WeighingType],
        default=WeighingType.NONE.value,
        help="Weighing milestone for the recorded entries",
    )
    scale_parser.add_argument("--template", action="store_true", help="Print an example file")

    # queue
    queue_parser = subparsers.add_parser("queue", help="Offline write queue")
    queue_parser.add_argument("action", choices=["status", "replay", "clear"], nargs="?", default="status")
    queue_parser.add_argument("--retry-failed", action="store_true", help="Reset failed writes before replaying")

    # nfe
    nfe_parser = subparsers.add_parser("nfe", help="NF-e invoices")
    nfe_parser.add_argument("action", choices=["dry-run", "test", "emit"])
    nfe_parser.add_argument("--show-xml", action="store_true", help="Print the sample XML (dry-run)")
    nfe_parser.add_argument("--file", help="Sale JSON (emit)")

    # setup
    subparsers.add_parser("setup", help="Check configuration and connectivity")

    args = parser.parse_args()
    setup_logging("DEBUG" if args.verbose else settings.log_level, settings.log_file)

    if args.command == "setup":
        from herdbook.cli.setup import main as setup_main

        await setup_main()
        return

    store = LocalFirstStore()
    if args.command == "animals":
        if args.action == "list":
            await cmd_animals_list(args, store)
        else:
            await cmd_animals_gmd(args, store)
    elif args.command == "seasons":
        if args.action == "list":
            await cmd_seasons_list(args, store)
        elif args.action == "metrics":
            await cmd_seasons_metrics(args, store)
        elif args.action == "calvings":
            await cmd_seasons_calvings(args, store)
        else:
            await cmd_seasons_verify(args, store)
    elif args.command == "export":
        await cmd_export(args, store)
    elif args.command == "import-scale":
        await cmd_import_scale(args, store)
    elif args.command == "queue":
        await cmd_queue(args, store)
    elif args.command == "nfe":
        await cmd_nfe(args, store)
    else:
        parser.print_help()


def cli() -> None:
    """CLI entry point."""
    asyncio.run(cli_main())


if __name__ == "__main__":
    cli()
