"""Tests für das Konfigurationssystem und die CLI."""

import json
from pathlib import Path

import pytest

from config.schema import AppConfig, CalendarConfig, GradingConfig, LoggingConfig
from config.defaults import default_app_config, default_calendar, default_grading
from config.manager import ConfigManager
from timeline.school_year import YearPolicy


# ─── DEFAULT-KONFIGURATION ────────────────────────────────────────────────────

class TestDefaultConfig:
    def test_default_grading(self):
        """CvTE-Standard: r=9, n=1, genügend ab 5,5."""
        g = default_grading()
        assert g.pass_threshold == 5.5
        assert g.default_n_term == 1.0
        assert g.default_r_term == 9.0
        assert g.default_calculation_mode == "legacy"

    def test_default_calendar(self):
        """Schuljahr automatisch, Jahreswechsel der Wochen in KW 30."""
        c = default_calendar()
        assert c.current_school_year is None
        assert c.year_policy == YearPolicy.THRESHOLD
        assert c.summer_threshold_week == 30

    def test_default_app_config(self):
        config = default_app_config()
        assert config.school_name == "Musterschule"
        assert config.storage.data_dir == "data"
        assert config.logging.level == "WARNING"


# ─── PYDANTIC-VALIDIERUNG ─────────────────────────────────────────────────────

class TestPydanticValidation:
    def test_invalid_school_year_raises(self):
        """Schuljahr muss JJJJ-JJJJ mit aufeinanderfolgenden Jahren sein."""
        with pytest.raises(Exception):
            CalendarConfig(current_school_year="2024-2026")

    def test_valid_school_year(self):
        assert CalendarConfig(current_school_year="2024-2025").current_school_year == "2024-2025"

    def test_threshold_out_of_range_raises(self):
        with pytest.raises(Exception):
            GradingConfig(pass_threshold=11.0)

    def test_r_term_must_be_positive(self):
        with pytest.raises(Exception):
            GradingConfig(default_r_term=0)

    def test_unknown_mode_raises(self):
        with pytest.raises(Exception):
            GradingConfig(default_calculation_mode="linear")

    def test_year_policy_from_string(self):
        assert CalendarConfig(year_policy="range").year_policy == YearPolicy.RANGE

    def test_invalid_log_level_raises(self):
        with pytest.raises(Exception):
            LoggingConfig(level="VERBOSE")


# ─── YAML SPEICHERN / LADEN ───────────────────────────────────────────────────

class TestConfigManager:
    def _manager(self, tmp_path: Path) -> ConfigManager:
        mgr = ConfigManager()
        mgr.CONFIG_DIR = tmp_path
        mgr.DEFAULT_CONFIG = tmp_path / "app_config.yaml"
        return mgr

    def test_save_and_load_roundtrip(self, tmp_path: Path):
        """Config speichern, laden und validieren — vollständiger Roundtrip."""
        config = default_app_config().model_copy(update={
            "school_name": "Test-Schule",
            "calendar": CalendarConfig(current_school_year="2024-2025",
                                       year_policy=YearPolicy.RANGE),
        })
        mgr = self._manager(tmp_path)

        mgr.save(config)
        assert mgr.DEFAULT_CONFIG.exists()

        loaded = mgr.load(mgr.DEFAULT_CONFIG)
        assert loaded == config

    def test_saved_yaml_has_comments(self, tmp_path: Path):
        """Gespeicherte Datei enthält Kopf- und Abschnittskommentare."""
        mgr = self._manager(tmp_path)
        mgr.save(default_app_config())
        text = mgr.DEFAULT_CONFIG.read_text(encoding="utf-8")
        assert text.startswith("# ===")
        assert "─── Notenberechnung ───" in text
        assert "null = aus heutigem Datum" in text

    def test_first_run_check_no_file(self, tmp_path: Path):
        """first_run_check gibt True zurück wenn keine Config existiert."""
        mgr = ConfigManager()
        mgr.DEFAULT_CONFIG = tmp_path / "nonexistent.yaml"
        assert mgr.first_run_check() is True

    def test_first_run_check_with_file(self, tmp_path: Path):
        """first_run_check gibt False zurück wenn Config existiert."""
        mgr = self._manager(tmp_path)
        mgr.save(default_app_config())
        assert mgr.first_run_check() is False

    def test_load_nonexistent_raises(self, tmp_path: Path):
        """Laden einer nicht-existenten Datei → FileNotFoundError."""
        mgr = ConfigManager()
        with pytest.raises(FileNotFoundError):
            mgr.load(tmp_path / "not_there.yaml")

    def test_load_invalid_raises_value_error(self, tmp_path: Path):
        """Ungültige Werte → ValueError mit Dateinamen."""
        path = tmp_path / "broken.yaml"
        path.write_text("grading:\n  pass_threshold: 42\n", encoding="utf-8")
        with pytest.raises(ValueError, match="broken.yaml"):
            ConfigManager().load(path)

    def test_load_or_default_without_file(self, tmp_path: Path):
        mgr = self._manager(tmp_path)
        assert mgr.load_or_default() == default_app_config()

    def test_partial_file_uses_defaults(self, tmp_path: Path):
        """Fehlende Abschnitte werden mit Standardwerten ergänzt."""
        path = tmp_path / "partial.yaml"
        path.write_text("school_name: Lyceum\n", encoding="utf-8")
        config = ConfigManager().load(path)
        assert config.school_name == "Lyceum"
        assert config.grading == GradingConfig()


# ─── MAIN.PY CLI ──────────────────────────────────────────────────────────────

class TestCli:
    def test_help(self):
        """main.py --help gibt Usage aus."""
        from click.testing import CliRunner
        from main import cli
        runner = CliRunner()
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "Usage" in result.output

    def test_config_init_and_show(self):
        """config init schreibt die Datei, config show liest sie."""
        from click.testing import CliRunner
        from main import cli
        runner = CliRunner()
        with runner.isolated_filesystem():
            result = runner.invoke(cli, ["config", "init"])
            assert result.exit_code == 0
            assert Path("config/app_config.yaml").exists()

            result = runner.invoke(cli, ["config", "init"])
            assert result.exit_code != 0

            result = runner.invoke(cli, ["config", "show"])
            assert result.exit_code == 0
            assert "Musterschule" in result.output

    def test_weeks_command(self):
        """weeks 51 2 zeigt die Wochen über den Jahreswechsel."""
        from click.testing import CliRunner
        from main import cli
        runner = CliRunner()
        with runner.isolated_filesystem():
            result = runner.invoke(cli, ["weeks", "51", "2", "--schuljahr", "2024-2025"])
            assert result.exit_code == 0
            assert "2024" in result.output
            assert "2025" in result.output
            assert "16.12." in result.output   # Montag KW 51/2024

    def test_scaled_test_workflow(self):
        """Test anlegen, Note eintragen, n-Term ändern, löschen."""
        from click.testing import CliRunner
        from main import cli
        runner = CliRunner()
        with runner.isolated_filesystem():
            result = runner.invoke(cli, [
                "test", "create-scaled", "t1", "--name", "Kapitel 1",
                "--klasse", "3A", "--max-punkte", "40", "--schuljahr", "2024-2025",
            ])
            assert result.exit_code == 0, result.output

            result = runner.invoke(cli, ["grade", "scaled", "t1", "7", "30"])
            assert result.exit_code == 0, result.output
            assert "7.8" in result.output

            result = runner.invoke(cli, ["test", "update", "t1", "--n-term", "2"])
            assert result.exit_code == 0, result.output
            grades = json.loads(Path("data/grades.json").read_text(encoding="utf-8"))
            assert grades[0]["final_grade"] == 8.8

            result = runner.invoke(cli, ["test", "delete", "t1", "--yes"])
            assert result.exit_code == 0
            assert json.loads(Path("data/grades.json").read_text(encoding="utf-8")) == []

    def test_update_rejects_options_of_other_model(self):
        """--formel bei CvTE-Tests und --n-term bei zusammengesetzten Tests → Fehler."""
        from click.testing import CliRunner
        from main import cli
        runner = CliRunner()
        with runner.isolated_filesystem():
            runner.invoke(cli, ["test", "create-scaled", "s1", "--klasse", "3A",
                                "--max-punkte", "40", "--schuljahr", "2024-2025"])
            runner.invoke(cli, ["test", "create-composite", "c1", "--klasse", "3A",
                                "--element", "e1:Inhalt:20", "--schuljahr", "2024-2025"])

            result = runner.invoke(cli, ["test", "update", "s1", "--formel", "Inhalt"])
            assert result.exit_code == 2
            assert "--formel" in result.output

            result = runner.invoke(cli, ["test", "update", "c1", "--n-term", "2"])
            assert result.exit_code == 2
            assert "CvTE" in result.output

            result = runner.invoke(cli, ["test", "update", "c1", "--formel", "Inhalt / 2"])
            assert result.exit_code == 0, result.output

    def test_grade_unknown_test_fails(self):
        from click.testing import CliRunner
        from main import cli
        runner = CliRunner()
        with runner.isolated_filesystem():
            result = runner.invoke(cli, ["grade", "scaled", "nope", "1", "10"])
            assert result.exit_code == 1
            assert "nicht gefunden" in result.output

    def test_plan_show(self, tmp_path: Path):
        """plan show rendert Lernziele und gesperrte Wochen."""
        from click.testing import CliRunner
        from main import cli
        plan = {
            "id": "p1", "subject": "Biologie", "school_year": "2024-2025",
            "week_range_start": 50, "week_range_end": 2,
            "study_goals": [{"id": "g1", "title": "Zellen", "week_start": 51, "week_end": 1}],
            "blocked_weeks": [{"id": "b1", "reason": "Weihnachtsferien",
                               "week_start": 52, "week_end": 52}],
        }
        path = tmp_path / "plan.json"
        path.write_text(json.dumps(plan), encoding="utf-8")
        runner = CliRunner()
        with runner.isolated_filesystem():
            result = runner.invoke(cli, ["plan", "show", str(path)])
        assert result.exit_code == 0, result.output
        assert "Zellen" in result.output
        assert "Weihnachtsferien" in result.output
