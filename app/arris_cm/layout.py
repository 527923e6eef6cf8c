"""
Where things live on the modem's pages.

The HTML has no ids/classes that tell the channel tables apart, so every lookup here is some mix of
"the cell next to the cell that says X" and "the Nth table / Nth row". All of that guessing lives in
this file so that a different firmware (or a different SB model) is a new PageLayout, not new code.

Column indices are 1-based to match `td:nth-child(n)`, which is how you'd read them off a browser's
dev tools.
"""

from dataclasses import dataclass, field
from enum import Enum

from arris_cm.models import DownstreamChannel, UpstreamChannel
from util.const import DOWNSTREAM, UPSTREAM


class ColumnKind(Enum):
    TEXT = "text"
    # "Locked" => True, anything else => False
    LOCK = "lock"
    NUMBER = "number"
    # Like NUMBER but may not go negative
    COUNTER = "counter"


@dataclass(frozen=True)
class Column:
    index: int
    kind: ColumnKind = ColumnKind.TEXT
    # Exact suffix to strip before parsing NUMBER/COUNTER cells, e.g. ' dBmV'
    unit: str = ""


@dataclass(frozen=True)
class TableShape:
    """Maps a channel table's columns onto the fields of a record type."""

    direction: str
    record: type
    # record field name -> column
    columns: dict[str, Column]
    # First-cell text of rows that are headings, not channels. Allow-list; nothing else is skipped.
    header_labels: frozenset[str]
    # Text of the <th> inside the table; preferred way of finding it
    anchor: str | None
    # Fallback: index into soup.find_all("table")
    position: int
    locked_text: str = "Locked"


@dataclass(frozen=True)
class FieldLocator:
    """A single value cell.

    `label` finds a <td> with that exact text and takes the <td> right after it.
    `selector` is a CSS path used when the label isn't found (or is None).
    """

    label: str | None = None
    selector: str | None = None


@dataclass(frozen=True)
class PageLayout:
    downstream: TableShape
    upstream: TableShape
    # On the connection status page
    connectivity: FieldLocator
    # On the product info page; keys are DeviceState field names
    info_fields: dict[str, FieldLocator] = field(default_factory=dict)
    uptime: FieldLocator = FieldLocator()
    connected_text: str = "OK"


SB8200_DOWNSTREAM = TableShape(
    direction=DOWNSTREAM,
    record=DownstreamChannel,
    columns={
        "channel_id": Column(1),
        "locked": Column(2, ColumnKind.LOCK),
        "modulation": Column(3),
        "frequency": Column(4),
        "power_dbmv": Column(5, ColumnKind.NUMBER, " dBmV"),
        "snr_db": Column(6, ColumnKind.NUMBER, " dB"),
        "corrected": Column(7, ColumnKind.COUNTER),
        "uncorrectable": Column(8, ColumnKind.COUNTER),
    },
    header_labels=frozenset({"Downstream Bonded Channels", "Channel ID"}),
    anchor="Downstream Bonded Channels",
    position=1,
)

# Upstream has two heading rows; the title row has nothing in the first <td> slot
SB8200_UPSTREAM = TableShape(
    direction=UPSTREAM,
    record=UpstreamChannel,
    columns={
        "channel": Column(1),
        "channel_id": Column(2),
        "locked": Column(3, ColumnKind.LOCK),
        "channel_type": Column(4),
        "frequency": Column(5),
        "width": Column(6),
        "power_dbmv": Column(7, ColumnKind.NUMBER, " dBmV"),
    },
    header_labels=frozenset({"Upstream Bonded Channels", "Channel", ""}),
    anchor="Upstream Bonded Channels",
    position=2,
)

# Browser-copied selectors with the tbody step loosened to a descendant match; html.parser
#   doesn't invent a <tbody> the way a browser does.
SB8200_LAYOUT = PageLayout(
    downstream=SB8200_DOWNSTREAM,
    upstream=SB8200_UPSTREAM,
    connectivity=FieldLocator(
        label="Connectivity State",
        selector=".content > center:nth-child(2) > table:nth-child(1) tr:nth-child(4) > td:nth-child(2)",
    ),
    info_fields={
        "docsis_version": FieldLocator(
            label="Standard Specification Compliant",
            selector="table.simpleTable:nth-child(2) tr:nth-child(2) > td:nth-child(2)",
        ),
        "hardware_version": FieldLocator(
            label="Hardware Version",
            selector="table.simpleTable:nth-child(2) tr:nth-child(3) > td:nth-child(2)",
        ),
        "software_version": FieldLocator(
            label="Software Version",
            selector="table.simpleTable:nth-child(2) tr:nth-child(4) > td:nth-child(2)",
        ),
        "mac_address": FieldLocator(
            label="Cable Modem MAC Address",
            selector="table.simpleTable:nth-child(2) tr:nth-child(5) > td:nth-child(2)",
        ),
        "serial_number": FieldLocator(
            label="Serial Number",
            selector="table.simpleTable:nth-child(2) tr:nth-child(6) > td:nth-child(2)",
        ),
    },
    uptime=FieldLocator(
        label="Up Time",
        selector="table.simpleTable:nth-child(5) tr:nth-child(2) > td:nth-child(2)",
    ),
)
