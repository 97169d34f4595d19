"""
Seat extraction from rendered course listing pages.

Locates each tracked course in the page's tables and infers a seat count:
1. Rows are scanned in document order; the first row whose text contains the
   course code (and, when a section is tracked, has a cell equal to it) wins.
2. The seat column is taken from the table header ("seat" / "available").
3. Without such a header, the last numeric cell of the row is used.

Everything here is pure: no state, no I/O.
"""

import re
from typing import Any, Iterable, Iterator, Optional, Union

from bs4 import BeautifulSoup, Tag

from seat_monitor.models.schemas import CheckResult, TrackedItem

NOT_FOUND_NOTE = "Course not found on page."
UNPARSED_NOTE = "Unable to parse seat count."
PARSED_NOTE = "Parsed from page."

SEAT_HEADER_HINTS = ("seat", "available")

_WHITESPACE_RE = re.compile(r"\s+")
_NON_DIGIT_RE = re.compile(r"[^0-9]")

Document = Union[str, BeautifulSoup]


def normalize(value: str) -> str:
    """Strip all whitespace and upper-case, for row/section matching."""
    return _WHITESPACE_RE.sub("", value or "").upper()


def parse_digits(text: str) -> Optional[int]:
    """Integer from the digits of ``text``; None when it has none."""
    digits = _NON_DIGIT_RE.sub("", text)
    return int(digits) if digits else None


def parse_seat_count(cells: list[str], seat_index: Optional[int]) -> Optional[int]:
    if seat_index is not None and 0 <= seat_index < len(cells):
        return parse_digits(cells[seat_index])

    numbers = [n for n in (parse_digits(cell) for cell in cells) if n is not None]
    return numbers[-1] if numbers else None


def find_seat_index(table: Tag) -> Optional[int]:
    """Index of the first header cell that names the seat column."""
    header_cells = table.select("thead th")
    if not header_cells:
        return None

    for index, cell in enumerate(header_cells):
        label = cell.get_text().strip().lower()
        if any(hint in label for hint in SEAT_HEADER_HINTS):
            return index
    return None


def _row_cells(row: Tag) -> list[str]:
    return [cell.get_text().strip() for cell in row.find_all(["td", "th"])]


def _index_rows(soup: BeautifulSoup) -> list[tuple[Tag, list[str]]]:
    """Every non-empty table row paired with its cell texts, in document order."""
    indexed = []
    for row in soup.select("table tr"):
        cells = _row_cells(row)
        if cells:
            indexed.append((row, cells))
    return indexed


def _find_row(
    rows: list[tuple[Tag, list[str]]], code: str, section: str
) -> tuple[Optional[list[str]], Optional[int]]:
    for row, cells in rows:
        if code not in normalize(" ".join(cells)):
            continue

        # Exact cell match so section "2" does not match "20"
        if section and not any(normalize(cell) == section for cell in cells):
            continue

        table = row.find_parent("table")
        return cells, find_seat_index(table) if table is not None else None

    return None, None


def _check_course(rows: list[tuple[Tag, list[str]]], course: TrackedItem) -> CheckResult:
    cells, seat_index = _find_row(rows, normalize(course.code), normalize(course.section))

    if cells is None:
        return CheckResult(
            key=course.key,
            label=course.label,
            available=False,
            seats=None,
            note=NOT_FOUND_NOTE,
        )

    seats = parse_seat_count(cells, seat_index)
    return CheckResult(
        key=course.key,
        label=course.label,
        available=seats is not None and seats > 0,
        seats=seats,
        note=UNPARSED_NOTE if seats is None else PARSED_NOTE,
    )


def iter_results(
    courses: Iterable[TrackedItem], document: Document
) -> Iterator[CheckResult]:
    """Lazily yield one result per course, in input order."""
    soup = document if isinstance(document, BeautifulSoup) else BeautifulSoup(
        document, "html.parser"
    )
    rows = _index_rows(soup)
    for course in courses:
        yield _check_course(rows, course)


def extract(courses: Iterable[TrackedItem], document: Document) -> list[CheckResult]:
    """
    Seat availability for every tracked course.

    Args:
        courses: Tracked courses, results keep their order
        document: Rendered page HTML or an already parsed tree

    Returns:
        One CheckResult per course
    """
    return list(iter_results(courses, document))


def _coerce_course(raw: Any) -> TrackedItem:
    if isinstance(raw, TrackedItem):
        return raw
    code = raw.get("code") or ""
    section = raw.get("section") or ""
    return TrackedItem(key=raw.get("key") or f"{code}|{section}", code=code, section=section)


def handle_message(message: Any, html: str, url: str) -> Optional[dict]:
    """
    Answer a message sent to a rendering context.

    Only ``{"action": "checkSeats", "courses": [...]}`` is understood; other
    messages get no response (None).
    """
    if not isinstance(message, dict) or message.get("action") != "checkSeats":
        return None

    try:
        courses = [_coerce_course(raw) for raw in message.get("courses") or []]
        results = extract(courses, html)
        return {
            "results": [result.model_dump(mode="json") for result in results],
            "url": url,
        }
    except Exception as e:
        return {"error": str(e)}
