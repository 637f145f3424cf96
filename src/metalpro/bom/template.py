"""Downloadable BOM template and CSV export in the same column layout."""

from __future__ import annotations

import csv
import io
from typing import Iterable, List, Optional, Sequence

from metalpro.bom.models import BOMRow, BOMTemplate

TEMPLATE_HEADERS: List[str] = [
    "Familie",
    "Standard",
    "Grad",
    "Dimensiune",
    "Lungime (m)",
    "Cantitate",
    "Unitate",
    "Finisaj",
    "Note",
]

TEMPLATE_SAMPLE_ROWS: List[List[str]] = [
    ["profiles", "EN 10025", "S235JR", "HEA 100", "6", "10", "buc", "", "Pentru structură metalică"],
    ["plates", "EN 10025", "S235JR", "6mm", "", "500", "kg", "", "Grosime 6mm"],
    ["pipes", "EN 10219", "S235JRH", "40x20x2", "6", "20", "buc", "", ""],
]

TEMPLATE_INSTRUCTIONS = """
Instrucțiuni pentru completarea fișierului BOM:

COLOANE OBLIGATORII:
- Cantitate: Cantitatea necesară (număr pozitiv)
- Unitate: kg, buc, m, sau ton

COLOANE OPȚIONALE (pentru auto-matching mai precis):
- Familie: profiles, plates, pipes, fasteners, stainless, nonferrous
- Standard: EN 10025, EN 10219, EN 10034, EN 10365, etc.
- Grad: S235JR, S355JR, S355J2, DC01, S235JRH, etc.
- Dimensiune: HEA 100, IPE 160, UNP 80, 6mm, 10mm, 40x20x2, etc.
- Lungime (m): Lungimea în metri (opțional, pentru calcul cantitate)
- Finisaj: Nu completați (se va selecta la checkout)
- Note: Orice observații sau cerințe speciale

FORMAT FIȘIER:
- CSV (comma-separated values) sau XLSX
- Prima linie = antet (nu modificați!)
- Codificare: UTF-8
- Separatoare: virgule (,)

SFATURI:
1. Cu cât completați mai multe coloane, cu atât matching-ul automat va fi mai precis
2. Folosiți exact valorile din catalog pentru familie (profiles, plates, pipes, etc.)
3. Dimensiunea trebuie să corespundă exact cu ce apare în titlul produsului
4. Dacă auto-matching-ul nu găsește produsul (confidence low/none), veți putea să-l mapați manual
5. Lăsați o coloană goală dacă nu aveți informația (nu scrieți "N/A" sau "-")
""".strip()


def get_bom_template() -> BOMTemplate:
    return BOMTemplate(
        headers=list(TEMPLATE_HEADERS),
        sample_rows=[list(row) for row in TEMPLATE_SAMPLE_ROWS],
        instructions=TEMPLATE_INSTRUCTIONS,
    )


def _render_csv(headers: Sequence[str], rows: Iterable[Sequence[object]]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n", quoting=csv.QUOTE_MINIMAL)
    writer.writerow(headers)
    for row in rows:
        writer.writerow(["" if cell is None else cell for cell in row])
    return buffer.getvalue()


def render_template_csv() -> str:
    """Headers plus sample rows, ready to be re-uploaded as-is."""

    template = get_bom_template()
    return _render_csv(template.headers, template.sample_rows)


def _format_number(value: Optional[float]) -> str:
    if value is None:
        return ""
    if float(value).is_integer():
        return str(int(value))
    return str(value)


def export_rows_csv(rows: Iterable[BOMRow]) -> str:
    """Render BOM rows back to the template layout."""

    return _render_csv(
        TEMPLATE_HEADERS,
        (
            [
                row.family,
                row.standard,
                row.grade,
                row.dimension,
                _format_number(row.length_m),
                _format_number(row.qty),
                row.unit.value,
                row.finish,
                row.notes,
            ]
            for row in rows
        ),
    )
