"""Notenverwaltung — Haupt-CLI.

Verwendung:
  python main.py setup                         Ersteinrichtung (Wizard)
  python main.py config init                   Standard-Konfiguration schreiben
  python main.py config show                   Konfiguration anzeigen
  python main.py weeks 35 27                   Wochenfolge mit Jahr und Datum
  python main.py plan show <plan.json>         Wochenübersicht eines Jahresplans
  python main.py test list                     Tests des aktuellen Schuljahres
  python main.py test create-scaled <id> ...   CvTE-Test anlegen
  python main.py test create-composite <id>    Zusammengesetzten Test anlegen
  python main.py test show <id>                Noten und Statistik
  python main.py test update <id> --n-term 1.2 Test ändern (Noten werden neu berechnet)
  python main.py test delete <id>              Test samt Noten löschen
  python main.py grade scaled <test> <schüler> <punkte>
  python main.py grade composite <test> <schüler> -p element=punkte ...
  python main.py average <schüler> <klasse>    Gewichteter Durchschnitt
"""

import sys
from datetime import date
from pathlib import Path
from typing import Optional

import click
from pydantic import TypeAdapter, ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich import box

console = Console()


def _load_config():
    """Lädt die Konfiguration (oder Standardwerte) und richtet Logging ein."""
    from config.manager import ConfigManager
    from config.logging_setup import configure_logging

    try:
        config = ConfigManager().load_or_default()
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)
    configure_logging(config.logging)
    return config


def _school_year(config, override: Optional[str] = None) -> str:
    from timeline.school_year import get_current_school_year
    return override or config.calendar.current_school_year or get_current_school_year()


def _service(config):
    from grading.service import GradeService
    from storage.json_store import JsonGradeStore

    store = JsonGradeStore(Path(config.storage.data_dir))
    return GradeService(store, pass_threshold=config.grading.pass_threshold)


def _abort(message: str) -> None:
    console.print(f"[red bold]Fehler:[/red bold] {message}")
    sys.exit(1)


def _grade_color(value: float, threshold: float) -> str:
    return "green" if value >= threshold else "red"


# ─── SETUP & CONFIG ───────────────────────────────────────────────────────────

@click.command("setup")
def cmd_setup():
    """Ersteinrichtung mit dem Setup-Wizard."""
    from config.manager import ConfigManager
    from config.wizard import run_wizard

    mgr = ConfigManager()
    if not mgr.first_run_check():
        console.print("[yellow]Eine Konfiguration existiert bereits.[/yellow]")
        if not click.confirm("Trotzdem neu einrichten?", default=False):
            return
    config = run_wizard()
    if config is not None:
        mgr.save(config)


@click.group("config")
def cmd_config():
    """Konfiguration anzeigen oder anlegen."""


@cmd_config.command("init")
@click.option("--force", is_flag=True, default=False, help="Bestehende Datei überschreiben.")
def config_init(force: bool):
    """Schreibt die Standard-Konfiguration."""
    from config.defaults import default_app_config
    from config.manager import ConfigManager

    mgr = ConfigManager()
    if not mgr.first_run_check() and not force:
        _abort(f"{mgr.DEFAULT_CONFIG} existiert bereits (--force zum Überschreiben).")
    mgr.save(default_app_config())


@cmd_config.command("show")
def config_show():
    """Zeigt die aktuelle Konfiguration an."""
    from config.wizard import show_config_table

    config = _load_config()
    console.print(Panel(
        f"[bold]{config.school_name}[/bold]  |  Schuljahr {_school_year(config)}",
        title="Notenverwaltung",
        border_style="cyan",
    ))
    show_config_table(config)


# ─── KALENDERWOCHEN ───────────────────────────────────────────────────────────

@click.command("weeks")
@click.argument("start", type=int)
@click.argument("end", type=int)
@click.option("--schuljahr", "school_year", default=None, help="z.B. 2024-2025")
@click.option("--policy", type=click.Choice(["threshold", "range"]), default=None,
              help="Jahreszuordnung der Wochen (Standard aus Config).")
def cmd_weeks(start: int, end: int, school_year: Optional[str], policy: Optional[str]):
    """Zeigt die Wochenfolge START..END mit Kalenderjahr und Datum."""
    from timeline.iso_weeks import format_week_dates
    from timeline.school_year import YearPolicy, get_year_for_week, parse_school_year
    from timeline.weeks import generate_week_sequence

    config = _load_config()
    years = parse_school_year(_school_year(config, school_year))
    year_policy = YearPolicy(policy) if policy else config.calendar.year_policy

    table = Table(title=f"Wochen {start} → {end}", box=box.ROUNDED)
    table.add_column("KW", style="bold")
    table.add_column("Jahr")
    table.add_column("Zeitraum")
    for week in generate_week_sequence(start, end):
        year = get_year_for_week(
            week, start, end, years, date.today().year, year_policy,
            config.calendar.summer_threshold_week,
        )
        table.add_row(str(week), str(year), format_week_dates(week, year))
    console.print(table)


# ─── JAHRESPLAN ───────────────────────────────────────────────────────────────

@click.group("plan")
def cmd_plan():
    """Jahrespläne auswerten."""


@cmd_plan.command("show")
@click.argument("datei", type=click.Path(exists=True, path_type=Path))
@click.option("--global-blocked", "global_file", type=click.Path(exists=True, path_type=Path),
              default=None, help="JSON-Liste schulweit gesperrter Wochen.")
def plan_show(datei: Path, global_file: Optional[Path]):
    """Wochenübersicht eines Jahresplans (JSON)."""
    from models.curriculum import BlockedWeek, CurriculumPlan
    from timeline.weeks import format_week_range

    config = _load_config()
    try:
        plan = CurriculumPlan.model_validate_json(datei.read_text(encoding="utf-8"))
        global_blocked = []
        if global_file is not None:
            global_blocked = TypeAdapter(list[BlockedWeek]).validate_json(
                global_file.read_text(encoding="utf-8")
            )
    except ValidationError as e:
        _abort(f"Plan ungültig:\n{e}")

    rows = plan.timeline(
        fallback_year=date.today().year,
        policy=config.calendar.year_policy,
        global_blocked=global_blocked,
        threshold=config.calendar.summer_threshold_week,
    )
    wraps = " (über den Jahreswechsel)" if plan.wraps_year else ""
    table = Table(
        title=f"{plan.subject or 'Jahresplan'} {plan.school_year} — "
              f"Wochen {plan.week_range_start}–{plan.week_range_end}{wraps}",
        box=box.ROUNDED, show_lines=True,
    )
    table.add_column("Woche", style="bold")
    table.add_column("Lernziele")
    table.add_column("Paragraphen")
    for row in rows:
        label = f"{row.week} ({row.year})"
        if row.is_blocked:
            reasons = ", ".join(b.reason or b.type for b in row.blocked)
            table.add_row(f"[dim]{label}[/dim]", f"[yellow]gesperrt: {reasons}[/yellow]", "")
            continue
        goals = "\n".join(
            g.title + ("" if g.week_start == g.week_end
                       else f" ({format_week_range(g.week_start, g.week_end)})")
            for g in row.goals
        ) or "[dim]—[/dim]"
        paragraphs = "\n".join(p.label for p in row.paragraphs) or "[dim]—[/dim]"
        table.add_row(label, goals, paragraphs)
    console.print(table)


# ─── TESTS ────────────────────────────────────────────────────────────────────

@click.group("test")
def cmd_test():
    """Tests verwalten."""


@cmd_test.command("list")
@click.option("--klasse", "class_group", default=None, help="Nur Tests dieser Klasse.")
@click.option("--schuljahr", "school_year", default=None)
def test_list(class_group: Optional[str], school_year: Optional[str]):
    """Listet die Tests eines Schuljahres."""
    config = _load_config()
    service = _service(config)
    year = _school_year(config, school_year)
    tests = service.store.list_tests(year, class_group)
    if not tests:
        console.print(f"[dim]Keine Tests im Schuljahr {year}.[/dim]")
        return

    table = Table(title=f"Tests {year}", box=box.ROUNDED)
    table.add_column("ID", style="bold")
    table.add_column("Name")
    table.add_column("Klassen")
    table.add_column("Modell")
    table.add_column("Gewicht")
    for t in tests:
        kind = "CvTE" if t.is_scaled else "zusammengesetzt"
        table.add_row(t.id, t.name, ", ".join(t.class_groups), kind, f"{t.weight:g}x")
    console.print(table)


@cmd_test.command("create-scaled")
@click.argument("test_id")
@click.option("--name", default="", help="Bezeichnung des Tests.")
@click.option("--klasse", "class_groups", multiple=True, required=True)
@click.option("--max-punkte", "max_points", type=float, required=True)
@click.option("--n-term", type=float, default=None)
@click.option("--r-term", type=float, default=None)
@click.option("--modus", "mode", type=click.Choice(["legacy", "official"]), default=None)
@click.option("--gewicht", "weight", type=float, default=1.0)
@click.option("--schuljahr", "school_year", default=None)
def test_create_scaled(test_id, name, class_groups, max_points, n_term, r_term,
                       mode, weight, school_year):
    """Legt einen CvTE-Test an."""
    from grading.service import GradeServiceError
    from models.assessment import ScaledScoring, Test

    config = _load_config()
    g = config.grading
    try:
        test = Test(
            id=test_id, name=name, class_groups=list(class_groups), weight=weight,
            school_year=_school_year(config, school_year),
            scoring=ScaledScoring(
                max_points=max_points,
                n_term=g.default_n_term if n_term is None else n_term,
                r_term=g.default_r_term if r_term is None else r_term,
                calculation_mode=mode or g.default_calculation_mode,
            ),
        )
        _service(config).create_test(test)
    except (ValidationError, ValueError, GradeServiceError) as e:
        _abort(str(e))
    console.print(f"[green]✓[/green] Test {test_id} angelegt.")


def _parse_element(text: str, order: int):
    """'id:Name:Max[:Gewicht]' → CompositeElement."""
    from models.assessment import CompositeElement

    parts = [p.strip() for p in text.split(":")]
    if len(parts) not in (3, 4):
        raise click.BadParameter(f"Element {text!r}: Format id:Name:Max[:Gewicht]")
    try:
        max_points = float(parts[2])
        weight = float(parts[3]) if len(parts) == 4 else 1.0
    except ValueError:
        raise click.BadParameter(f"Element {text!r}: Max und Gewicht müssen Zahlen sein")
    return CompositeElement(
        id=parts[0], name=parts[1], max_points=max_points, weight=weight, order=order,
    )


@cmd_test.command("create-composite")
@click.argument("test_id")
@click.option("--name", default="")
@click.option("--klasse", "class_groups", multiple=True, required=True)
@click.option("--element", "elements", multiple=True, required=True,
              help="id:Name:Max[:Gewicht], mehrfach angeben.")
@click.option("--formel", "formula", default=None, help="z.B. \"(Inhalt + Stil) / 2\"")
@click.option("--gewicht", "weight", type=float, default=1.0)
@click.option("--schuljahr", "school_year", default=None)
def test_create_composite(test_id, name, class_groups, elements, formula, weight, school_year):
    """Legt einen zusammengesetzten Test an."""
    from grading.formula import formula_references
    from grading.service import GradeServiceError
    from models.assessment import CompositeScoring, Test

    config = _load_config()
    parsed = [_parse_element(text, order) for order, text in enumerate(elements)]
    try:
        test = Test(
            id=test_id, name=name, class_groups=list(class_groups), weight=weight,
            school_year=_school_year(config, school_year),
            scoring=CompositeScoring(elements=parsed, custom_formula=formula),
        )
        _service(config).create_test(test)
    except (ValidationError, ValueError, GradeServiceError) as e:
        _abort(str(e))

    if formula:
        used = formula_references(formula, [e.name for e in parsed])
        unused = [e.name for e in parsed if e.name not in used]
        if unused:
            console.print(f"[yellow]Hinweis:[/yellow] Formel nutzt nicht: {', '.join(unused)}")
    console.print(f"[green]✓[/green] Test {test_id} angelegt.")


@cmd_test.command("show")
@click.argument("test_id")
def test_show(test_id: str):
    """Zeigt Noten und Statistik eines Tests."""
    from grading.service import UnknownTestError

    config = _load_config()
    service = _service(config)
    threshold = config.grading.pass_threshold
    try:
        stats = service.test_statistics(test_id)
    except UnknownTestError as e:
        _abort(str(e))
    test = service.store.get_test(test_id)
    grades = sorted(service.store.list_grades(test_id=test_id), key=lambda g: g.student_id)

    if test.is_scaled:
        s = test.scoring
        model = (f"CvTE ({s.calculation_mode}): max {s.max_points:g}, "
                 f"n={s.n_term:g}, r={s.r_term:g}")
    else:
        s = test.scoring
        model = f"{len(s.elements)} Elemente" + (f", Formel: {s.custom_formula}" if s.has_formula else "")
    console.print(Panel(
        f"[bold]{test.name or test.id}[/bold]  |  {', '.join(test.class_groups)}  |  "
        f"{test.school_year}\n{model}",
        title=f"Test {test.id}", border_style="cyan",
    ))

    table = Table(box=box.ROUNDED)
    table.add_column("Schüler", style="bold")
    table.add_column("Eingabe")
    table.add_column("Berechnet")
    table.add_column("Note")
    for g in grades:
        if g.points_earned is not None:
            raw = f"{g.points_earned:g} P."
        else:
            raw = ", ".join(f"{e.element_id}={e.points_earned:g}" for e in g.element_grades)
        color = _grade_color(g.final_grade, threshold)
        final = f"[{color}]{g.final_grade:.1f}[/{color}]" + (" (manuell)" if g.is_overridden else "")
        table.add_row(str(g.student_id), raw, f"{g.calculated_grade:.2f}", final)
    console.print(table)

    console.print(
        f"Durchschnitt: [bold]{stats.average:.1f}[/bold] | "
        f"Höchste: {stats.highest:.1f} | Niedrigste: {stats.lowest:.1f} | "
        f"Ungenügend: {stats.under_threshold} | Genügend: {stats.above_threshold} | "
        f"Bewertet: {stats.total_graded}"
    )


@cmd_test.command("update")
@click.argument("test_id")
@click.option("--name", default=None)
@click.option("--gewicht", "weight", type=float, default=None)
@click.option("--max-punkte", "max_points", type=float, default=None)
@click.option("--n-term", type=float, default=None)
@click.option("--r-term", type=float, default=None)
@click.option("--modus", "mode", type=click.Choice(["legacy", "official"]), default=None)
@click.option("--formel", "formula", default=None, help="Leerer String entfernt die Formel.")
def test_update(test_id, name, weight, max_points, n_term, r_term, mode, formula):
    """Ändert einen Test; bei geänderter Bewertung werden alle Noten neu berechnet."""
    from grading.service import GradeServiceError

    config = _load_config()
    service = _service(config)
    test = service.store.get_test(test_id)
    if test is None:
        _abort(f"Test nicht gefunden: {test_id}")

    changes = {}
    if name is not None:
        changes["name"] = name
    if weight is not None:
        changes["weight"] = weight

    scaled_options = {
        "max_points": max_points, "n_term": n_term,
        "r_term": r_term, "calculation_mode": mode,
    }
    if test.is_scaled and formula is not None:
        raise click.BadParameter(
            f"Test {test_id} ist ein CvTE-Test ohne Formel.", param_hint="--formel",
        )
    if test.is_composite and any(v is not None for v in scaled_options.values()):
        raise click.BadParameter(
            f"Test {test_id} ist zusammengesetzt; --max-punkte, --n-term, --r-term "
            "und --modus gelten nur für CvTE-Tests.",
        )

    if test.is_scaled:
        scoring = {k: v for k, v in scaled_options.items() if v is not None}
    elif formula is not None:
        scoring = {"custom_formula": formula or None}
    else:
        scoring = {}
    if scoring:
        changes["scoring"] = {**test.scoring.model_dump(), **scoring}

    if not changes:
        console.print("[dim]Keine Änderungen angegeben.[/dim]")
        return
    try:
        service.update_test(test_id, **changes)
    except GradeServiceError as e:
        _abort(str(e))
    console.print(f"[green]✓[/green] Test {test_id} aktualisiert.")


@cmd_test.command("delete")
@click.argument("test_id")
@click.option("--yes", is_flag=True, default=False, help="Ohne Rückfrage löschen.")
def test_delete(test_id: str, yes: bool):
    """Löscht einen Test mit allen Noten."""
    from grading.service import UnknownTestError

    if not yes and not click.confirm(f"Test {test_id} samt Noten löschen?", default=False):
        return
    config = _load_config()
    try:
        _service(config).delete_test(test_id)
    except UnknownTestError as e:
        _abort(str(e))
    console.print(f"[green]✓[/green] Test {test_id} gelöscht.")


# ─── NOTEN ────────────────────────────────────────────────────────────────────

@click.group("grade")
def cmd_grade():
    """Noten eintragen."""


def _print_grade(grade, threshold: float) -> None:
    color = _grade_color(grade.final_grade, threshold)
    suffix = " (manuell)" if grade.is_overridden else ""
    console.print(
        f"[green]✓[/green] Schüler {grade.student_id}: berechnet {grade.calculated_grade:.2f} → "
        f"Note [{color}]{grade.final_grade:.1f}[/{color}]{suffix}"
    )


@cmd_grade.command("scaled")
@click.argument("test_id")
@click.argument("student_id", type=int)
@click.argument("points", type=float)
@click.option("--override", type=float, default=None, help="Manuelle Note.")
def grade_scaled(test_id: str, student_id: int, points: float, override: Optional[float]):
    """Trägt die Punktzahl für einen CvTE-Test ein."""
    from grading.service import GradeServiceError

    config = _load_config()
    try:
        grade = _service(config).save_grade(test_id, student_id, points, override)
    except GradeServiceError as e:
        _abort(str(e))
    _print_grade(grade, config.grading.pass_threshold)


@cmd_grade.command("composite")
@click.argument("test_id")
@click.argument("student_id", type=int)
@click.option("-p", "--punkte", "points", multiple=True, required=True,
              help="element_id=punkte, mehrfach angeben.")
@click.option("--override", type=float, default=None, help="Manuelle Note.")
def grade_composite(test_id: str, student_id: int, points, override: Optional[float]):
    """Trägt Elementpunkte für einen zusammengesetzten Test ein."""
    from grading.service import GradeServiceError
    from models.grade import ElementGrade

    element_grades = []
    for item in points:
        element_id, sep, value = item.partition("=")
        try:
            element_grades.append(ElementGrade(element_id=element_id.strip(),
                                               points_earned=float(value.replace(",", "."))))
        except ValueError:
            raise click.BadParameter(f"{item!r}: Format element_id=punkte") from None
        if not sep:
            raise click.BadParameter(f"{item!r}: Format element_id=punkte")

    config = _load_config()
    try:
        grade = _service(config).save_composite_grade(test_id, student_id, element_grades, override)
    except GradeServiceError as e:
        _abort(str(e))
    _print_grade(grade, config.grading.pass_threshold)


@click.command("average")
@click.argument("student_id", type=int)
@click.argument("class_group")
@click.option("--schuljahr", "school_year", default=None)
def cmd_average(student_id: int, class_group: str, school_year: Optional[str]):
    """Gewichteter Durchschnitt eines Schülers in einer Klasse."""
    config = _load_config()
    year = _school_year(config, school_year)
    average = _service(config).student_average(student_id, class_group, year)
    if average is None:
        console.print(f"[dim]Keine Noten für Schüler {student_id} in {class_group} ({year}).[/dim]")
        return
    color = _grade_color(average, config.grading.pass_threshold)
    console.print(f"Schüler {student_id}, {class_group} ({year}): [{color}]{average:.1f}[/{color}]")


# ─── HAUPT-CLI ────────────────────────────────────────────────────────────────

@click.group()
def cli():
    """Notenverwaltung: CvTE-Noten, zusammengesetzte Tests und Jahrespläne."""


def main():
    from storage.base import StorageError

    try:
        cli()
    except StorageError as e:
        _abort(str(e))


# Befehle registrieren
cli.add_command(cmd_setup)
cli.add_command(cmd_config)
cli.add_command(cmd_weeks)
cli.add_command(cmd_plan)
cli.add_command(cmd_test)
cli.add_command(cmd_grade)
cli.add_command(cmd_average)


if __name__ == "__main__":
    main()
