"""Interaktiver Setup-Wizard für die Ersteinrichtung.

Fragt Schulname, Schuljahr, Notengrenze und CvTE-Standardwerte ab.
"""

from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, FloatPrompt, IntPrompt, Prompt
from rich.table import Table
from rich import box

from config.defaults import default_app_config
from config.schema import AppConfig, CalendarConfig, GradingConfig
from timeline.school_year import (
    YearPolicy,
    get_current_school_year,
    is_valid_school_year,
)

console = Console()


def _header(title: str) -> None:
    console.print()
    console.print(Panel(f"[bold cyan]{title}[/bold cyan]", expand=False))


def _warn(text: str) -> None:
    console.print(f"[yellow]⚠[/yellow]  {text}")


def show_config_table(config: AppConfig) -> None:
    """Zeigt die Konfiguration als rich-Tabelle an."""
    table = Table(title="Konfiguration", box=box.ROUNDED)
    table.add_column("Bereich", style="bold")
    table.add_column("Parameter")
    table.add_column("Wert")
    for section in ("grading", "calendar", "storage", "logging"):
        for key, value in getattr(config, section).model_dump(mode="json").items():
            table.add_row(section, key, str(value))
    console.print(table)


def _wizard_grading() -> GradingConfig:
    _header("Schritt 1: Notenberechnung")
    defaults = GradingConfig()
    threshold = FloatPrompt.ask("Genügend ab Note", default=defaults.pass_threshold)
    n_term = FloatPrompt.ask("Standard n-Term", default=defaults.default_n_term)
    r_term = FloatPrompt.ask("Standard r-Term", default=defaults.default_r_term)
    mode = Prompt.ask(
        "Berechnungsmodus", choices=["legacy", "official"],
        default=defaults.default_calculation_mode,
    )
    return GradingConfig(
        pass_threshold=threshold,
        default_n_term=n_term,
        default_r_term=r_term,
        default_calculation_mode=mode,
    )


def _wizard_calendar() -> CalendarConfig:
    _header("Schritt 2: Kalender")
    school_year: Optional[str] = None
    while True:
        answer = Prompt.ask(
            f"Aktuelles Schuljahr (leer = automatisch, derzeit {get_current_school_year()})",
            default="",
            show_default=False,
        ).strip()
        if not answer:
            break
        if is_valid_school_year(answer):
            school_year = answer
            break
        _warn("Format JJJJ-JJJJ mit aufeinanderfolgenden Jahren, z.B. 2024-2025.")

    policy = Prompt.ask(
        "Jahreszuordnung der Wochen",
        choices=[p.value for p in YearPolicy],
        default=YearPolicy.THRESHOLD.value,
    )
    threshold = IntPrompt.ask("Sommerferien-Grenze (KW)", default=30)
    return CalendarConfig(
        current_school_year=school_year,
        year_policy=YearPolicy(policy),
        summer_threshold_week=threshold,
    )


def run_wizard() -> Optional[AppConfig]:
    """Führt durch alle Schritte; None wenn der Nutzer am Ende abbricht."""
    config = default_app_config()
    school_name = Prompt.ask("Name der Schule", default=config.school_name)
    config = config.model_copy(update={
        "school_name": school_name,
        "grading": _wizard_grading(),
        "calendar": _wizard_calendar(),
    })

    _header("Zusammenfassung")
    show_config_table(config)
    if not Confirm.ask("Konfiguration speichern?", default=True):
        console.print("[yellow]Abgebrochen.[/yellow]")
        return None
    return config
