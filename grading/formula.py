"""Eingeschränkter Formel-Auswerter für zusammengesetzte Tests.

Erlaubt sind nur Zahlen, ``+ - * /``, Klammern und Leerzeichen. Elementnamen
werden vor der Auswertung durch ihre Punktzahlen ersetzt. Es wird nie ein
allgemeiner Python-Auswerter benutzt.

Grammatik::

    expr   := term (('+' | '-') term)*
    term   := factor (('*' | '/') factor)*
    factor := ('+' | '-') factor | '(' expr ')' | number
    number := digits ['.' digits]
"""

import math
import re
from collections.abc import Iterable, Mapping
from typing import Optional

_SAFE_EXPRESSION = re.compile(r"^[0-9\s+\-*/().]+$")

MAX_NESTING_DEPTH = 100


class FormulaError(ValueError):
    """Formel ist syntaktisch ungültig oder nicht auswertbar."""


class FormulaParser:
    """Rekursiver Abstiegsparser mit üblicher Operator-Rangfolge."""

    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0
        self.depth = 0

    @classmethod
    def evaluate(cls, text: str) -> Optional[float]:
        """Wertet ``text`` aus; None bei jedem Fehler."""
        try:
            return cls(text).parse()
        except FormulaError:
            return None

    def parse(self) -> float:
        value = self._expression()
        self._skip_whitespace()
        if not self._at_end():
            raise FormulaError(
                f"Unerwartetes Zeichen {self._peek()!r} an Position {self.pos}"
            )
        if not math.isfinite(value):
            raise FormulaError("Ergebnis ist keine endliche Zahl")
        return value

    # ── Grammatik ────────────────────────────────────────────────────────────

    def _expression(self) -> float:
        value = self._term()
        while True:
            self._skip_whitespace()
            op = self._peek()
            if op not in ("+", "-"):
                return value
            self.pos += 1
            right = self._term()
            value = value + right if op == "+" else value - right

    def _term(self) -> float:
        value = self._factor()
        while True:
            self._skip_whitespace()
            op = self._peek()
            if op not in ("*", "/"):
                return value
            self.pos += 1
            right = self._factor()
            if op == "*":
                value = value * right
            elif right == 0:
                raise FormulaError("Division durch Null")
            else:
                value = value / right

    def _factor(self) -> float:
        # Vorzeichen iterativ, damit lange Ketten keine Rekursion auslösen
        negative = False
        self._skip_whitespace()
        while self._peek() in ("+", "-"):
            negative ^= self._peek() == "-"
            self.pos += 1
            self._skip_whitespace()

        if self._peek() == "(":
            if self.depth >= MAX_NESTING_DEPTH:
                raise FormulaError(f"Mehr als {MAX_NESTING_DEPTH} Klammerebenen")
            self.pos += 1
            self.depth += 1
            value = self._expression()
            self.depth -= 1
            self._skip_whitespace()
            if self._peek() != ")":
                raise FormulaError("Schließende Klammer fehlt")
            self.pos += 1
        else:
            value = self._number()
        return -value if negative else value

    def _number(self) -> float:
        self._skip_whitespace()
        start = self.pos
        seen_dot = False
        while not self._at_end():
            char = self._peek()
            if char in "0123456789":
                self.pos += 1
            elif char == "." and not seen_dot:
                seen_dot = True
                self.pos += 1
            else:
                break

        token = self.text[start:self.pos]
        if not token or token == ".":
            raise FormulaError(f"Zahl erwartet an Position {start}")
        return float(token)

    # ── Zeichenzugriff ───────────────────────────────────────────────────────

    def _skip_whitespace(self) -> None:
        while not self._at_end() and self.text[self.pos].isspace():
            self.pos += 1

    def _peek(self) -> str:
        return "" if self._at_end() else self.text[self.pos]

    def _at_end(self) -> bool:
        return self.pos >= len(self.text)


def evaluate_formula_expression(text: str) -> Optional[float]:
    return FormulaParser.evaluate(text)


def is_safe_expression(text: str) -> bool:
    """Nur Ziffern, Leerzeichen, Operatoren, Klammern und Dezimalpunkte."""
    return bool(_SAFE_EXPRESSION.match(text))


def _name_pattern(name: str) -> re.Pattern:
    return re.compile(rf"\b{re.escape(name)}\b", re.IGNORECASE)


def _format_value(value: float) -> str:
    # 8.0 → "8", 7.5 → "7.5"; nie Exponentenschreibweise ("1e-05")
    if float(value).is_integer():
        return str(int(value))
    return f"{float(value):.10f}".rstrip("0").rstrip(".")


def substitute_element_values(formula: str, values: Mapping[str, float]) -> str:
    """Ersetzt Elementnamen (ganze Wörter, ohne Groß-/Kleinschreibung) durch Werte.

    Längere Namen werden zuerst ersetzt, damit "Inhalt gesamt" nicht von
    "Inhalt" zerlegt wird. Kommas werden anschließend zu Dezimalpunkten.
    """
    result = formula.strip()
    for name in sorted(values, key=len, reverse=True):
        clean = name.strip()
        if not clean:
            continue
        replacement = _format_value(values[name])
        result = _name_pattern(clean).sub(lambda _m: replacement, result)
    return result.replace(",", ".")


def formula_references(formula: str, names: Iterable[str]) -> list[str]:
    """Welche der Elementnamen in der Formel vorkommen (in Eingabereihenfolge)."""
    return [
        name for name in names
        if name.strip() and _name_pattern(name.strip()).search(formula)
    ]
