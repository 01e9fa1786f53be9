"""JSON-Dateispeicher für Tests und Noten.

Zwei Dateien im Datenverzeichnis: ``tests.json`` und ``grades.json``.
Geschrieben wird immer in eine temporäre Datei im selben Verzeichnis, die
danach per ``os.replace`` die alte Datei ersetzt.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

from pydantic import TypeAdapter, ValidationError

from models.assessment import Test
from models.grade import Grade
from storage.base import GradeRepository, StorageError
from storage.memory import filter_grades, filter_tests, merge_grade

logger = logging.getLogger(__name__)

_TESTS = TypeAdapter(list[Test])
_GRADES = TypeAdapter(list[Grade])


class JsonGradeStore(GradeRepository):
    TESTS_FILE = "tests.json"
    GRADES_FILE = "grades.json"

    def __init__(self, data_dir: Path) -> None:
        self.data_dir = Path(data_dir)

    @property
    def tests_path(self) -> Path:
        return self.data_dir / self.TESTS_FILE

    @property
    def grades_path(self) -> Path:
        return self.data_dir / self.GRADES_FILE

    # ─── Dateizugriff ───

    def _read(self, path: Path, adapter: TypeAdapter) -> list:
        if not path.exists():
            return []
        try:
            return adapter.validate_json(path.read_bytes())
        except (OSError, UnicodeDecodeError, ValidationError) as e:
            raise StorageError(f"Datei nicht lesbar: {path}\n{e}") from e

    def _write(self, path: Path, adapter: TypeAdapter, items: list) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.stem}-",
                                        suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(adapter.dump_json(items, indent=2))
            os.replace(tmp_name, path)
        except OSError as e:
            raise StorageError(f"Datei nicht schreibbar: {path}\n{e}") from e
        finally:
            # nach os.replace existiert die Temp-Datei nicht mehr
            Path(tmp_name).unlink(missing_ok=True)
        logger.debug(f"{len(items)} Einträge gespeichert: {path}")

    def _tests(self) -> list[Test]:
        return self._read(self.tests_path, _TESTS)

    def _grades(self) -> list[Grade]:
        return self._read(self.grades_path, _GRADES)

    # ─── Tests ───

    def list_tests(self, school_year=None, class_group=None) -> list[Test]:
        return filter_tests(self._tests(), school_year, class_group)

    def get_test(self, test_id: str) -> Optional[Test]:
        return next((t for t in self._tests() if t.id == test_id), None)

    def add_test(self, test: Test) -> None:
        tests = self._tests()
        if any(t.id == test.id for t in tests):
            raise ValueError(f"Test-ID bereits vergeben: {test.id}")
        self._write(self.tests_path, _TESTS, tests + [test])

    def replace_test(self, test: Test) -> None:
        tests = [test if t.id == test.id else t for t in self._tests()]
        self._write(self.tests_path, _TESTS, tests)

    def remove_test_cascade(self, test_id: str) -> bool:
        tests = self._tests()
        remaining = [t for t in tests if t.id != test_id]
        if len(remaining) == len(tests):
            return False
        # Erst die Noten, dann den Test: nie verwaiste Noten
        grades = [g for g in self._grades() if g.test_id != test_id]
        self._write(self.grades_path, _GRADES, grades)
        self._write(self.tests_path, _TESTS, remaining)
        logger.info(f"Test {test_id} samt Noten gelöscht")
        return True

    # ─── Noten ───

    def list_grades(self, test_id=None, school_year=None, student_id=None) -> list[Grade]:
        return filter_grades(self._grades(), test_id, school_year, student_id)

    def upsert_grade(self, grade: Grade) -> None:
        self._write(self.grades_path, _GRADES, merge_grade(self._grades(), grade))

    def replace_grades_for_test(self, test_id: str, grades: list[Grade]) -> None:
        others = [g for g in self._grades() if g.test_id != test_id]
        self._write(self.grades_path, _GRADES, others + list(grades))
