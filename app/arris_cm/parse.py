"""
Some generic parsing functions that pull out the data we're interested in from the HTML source.
    Only tested against SB8200's web interface but should work for other Arris modems as well.

"""

import re
from datetime import datetime
from enum import Enum

import structlog
from bs4 import BeautifulSoup, Tag
from err.exceptions import MarkupShapeError, RowParseError

from arris_cm.layout import ColumnKind, FieldLocator, TableShape

log = structlog.get_logger(__name__)

# Plain base-10 number; float() on its own would also take 'nan', 'inf', '1_000' ... etc.
_DECIMAL_RE = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")
_NON_DIGITS_RE = re.compile(r"[^0-9]+")

# days -> hours -> minutes -> seconds
_UPTIME_UNITS = (24, 60, 60)


class RowKind(Enum):
    HEADER = "header"
    DATA = "data"


def is_login_page(soup: BeautifulSoup) -> bool:
    """Check if the page is the login page"""
    title = soup.find("title")
    return title is not None and title.text.strip() == "Login"


def parse_unit_value(text: str, unit: str = "") -> float:
    """Turns something like '6.2 dBmV' into 6.2.

    The unit has to match exactly; '6.2 dB' is not a valid ' dBmV' value and neither is a bare '6.2'.
    An empty unit means a bare number (the error counters).
    """
    raw = text.strip()
    if unit:
        if not raw.endswith(unit):
            raise RowParseError(f"{raw!r} does not end with {unit!r}", payload=raw)
        raw = raw[: -len(unit)]

    if _DECIMAL_RE.fullmatch(raw) is None:
        raise RowParseError(f"{raw!r} is not a number", payload=text)
    return float(raw)


def _row_cells(row: Tag) -> list[Tag]:
    # nth-child counts <th> too, so we do the same
    return row.find_all(["td", "th"], recursive=False)


def _column_text(cells: list[Tag], index: int) -> str:
    if 0 < index <= len(cells):
        return cells[index - 1].text.strip()
    return ""


def classify_row(row: Tag, shape: TableShape) -> RowKind:
    """Header rows are only ever the ones whose first cell is on the shape's allow-list."""
    first = _column_text(_row_cells(row), 1)
    if first in shape.header_labels:
        return RowKind.HEADER
    return RowKind.DATA


def parse_row(row: Tag, shape: TableShape):
    """Build one channel record out of a data row. Raises RowParseError if any column is off."""
    cells = _row_cells(row)
    values = {}
    for name, column in shape.columns.items():
        text = _column_text(cells, column.index)
        if column.kind is ColumnKind.LOCK:
            values[name] = text == shape.locked_text
        elif column.kind in (ColumnKind.NUMBER, ColumnKind.COUNTER):
            value = parse_unit_value(text, column.unit)
            if column.kind is ColumnKind.COUNTER and value < 0:
                raise RowParseError(f"{name} counter is negative: {value}", payload=text)
            values[name] = value
        else:
            values[name] = text
    return shape.record(**values)


def parse_channel_table(table: Tag, shape: TableShape) -> tuple:
    """Walk every <tr> of a channel table, skipping headings and dropping anything malformed.

    A bad row is logged and forgotten; it never stops the rest of the table from being read.
    """
    channels = []
    for idx, row in enumerate(table.find_all("tr")):
        if classify_row(row, shape) is RowKind.HEADER:
            log.debug("Skipping header row", direction=shape.direction, row_idx=idx)
            continue
        try:
            channels.append(parse_row(row, shape))
        except RowParseError as e:
            log.debug(
                "Dropping unparsable row",
                direction=shape.direction,
                row_idx=idx,
                error=e.message,
            )
    log.debug("Parsed channel table", direction=shape.direction, count=len(channels))
    return tuple(channels)


def find_channel_table(soup: BeautifulSoup, shape: TableShape) -> Tag | None:
    """Find the table for a direction.

    There's no id/class to go on. Prefer the table that holds the "... Bonded Channels" heading and
    only fall back to counting <table> elements if the heading has gone missing.
    """
    if shape.anchor is not None:
        heading = soup.find(
            lambda tag: tag.name in ("th", "td") and tag.get_text(strip=True) == shape.anchor
        )
        if heading is not None and (table := heading.find_parent("table")) is not None:
            return table
        log.debug("Table anchor not found, using position", anchor=shape.anchor)

    tables = soup.find_all("table")
    if len(tables) > shape.position:
        return tables[shape.position]
    return None


def find_field(soup: BeautifulSoup, locator: FieldLocator) -> str:
    """Text of a single value cell, or '' if we can't find it."""
    if locator.label is not None:
        label_cell = soup.find(
            lambda tag: tag.name == "td" and tag.get_text(strip=True) == locator.label
        )
        if label_cell is not None and (value := label_cell.find_next_sibling("td")) is not None:
            return value.text.strip()

    if locator.selector is not None:
        if (value := soup.select_one(locator.selector)) is not None:
            return value.text.strip()

    return ""


def get_current_system_time(soup: BeautifulSoup) -> datetime | None:
    """Attempts to pull the current system time from the HTML source."""
    # Towards the very end of the page is a single <p> tag with the system time
    # <p id="systime" align="center"><strong>Current System Time:</strong> Tue Mar 12 14:20:59 2024</p>
    if (system_time_row := soup.find("p", id="systime")) is not None:
        system_time_str = system_time_row.text.strip()
        _, _, datetime_str = system_time_str.partition(":")
        try:
            # The format is "Day Mon dd hh:mm:ss yyyy"
            return datetime.strptime(datetime_str.strip(), "%a %b %d %H:%M:%S %Y")
        except ValueError:
            log.warning("Could not parse system time", raw=system_time_str)
            return None

    log.warning("Failed to find system time. Scrape error?")
    return None


def parse_uptime(uptime: str) -> float:
    """
    Turns the human-friendly string into a count of seconds.

    Input ends up being something like:
        '0 days 00h:01m:55s.00'
            or
        '46 days 12h:55m:21s.00'

    Anything that doesn't split into exactly days/hours/minutes/seconds/hundredths means the page
    layout has changed under us, which is why this raises instead of returning None.
    """
    tokens = _NON_DIGITS_RE.split(uptime.strip())
    if len(tokens) != len(_UPTIME_UNITS) + 2 or not all(tokens):
        raise MarkupShapeError(f"Unexpected uptime format: {uptime!r}", payload=uptime)

    # Last token is hundredths of a second; don't care
    days, *rest = tokens[:-1]
    seconds = float(days)
    for unit, token in zip(_UPTIME_UNITS, rest):
        seconds = seconds * unit + int(token)
    return seconds
