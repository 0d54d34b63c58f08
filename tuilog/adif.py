"""ADIF export for the logbook.

Each enriched QSO becomes a fixed, ordered list of ADIF fields; the batch is
written after a small header. parse_adif reads such a file back; it is
tolerant of lowercase tags, type indicators and text between fields.
"""

from __future__ import annotations

import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from . import __version__
from .errors import ExportIOError
from .models import EnrichedLogEntry

# ADIF spec: https://www.adif.org/

logger = logging.getLogger(__name__)

PROGRAM_ID = "TUILOG"

# Voice modes ADIF files under MODE=SSB with the sideband as SUBMODE
SSB_SUBMODES = frozenset({"USB", "LSB"})

Field = Tuple[str, str]


def make_field(tag: str, value: Optional[str]) -> str:
    """Render <TAG:len>value, where len is the UTF-8 byte count of value.

    Files are written as UTF-8, so a byte count keeps non-ASCII values such as
    "Zürich" readable by tools that seek by bytes.
    """
    value = value or ""
    return f"<{tag}:{len(value.encode('utf-8'))}>{value}"


def header_fields(
    program_id: str = PROGRAM_ID, program_version: str = __version__
) -> List[Field]:
    return [("PROGRAMVERSION", program_version), ("PROGRAMID", program_id)]


def mode_fields(mode: str) -> List[Field]:
    """Split a logged mode into ADIF MODE and, for USB/LSB, SUBMODE."""
    if mode in SSB_SUBMODES:
        return [("MODE", "SSB"), ("SUBMODE", mode)]
    return [("MODE", mode)]


def record_fields(item: EnrichedLogEntry) -> List[Field]:
    """Map one QSO and its operator profile to ordered ADIF fields.

    No distinct receive frequency is tracked, so FREQ_RX/BAND_RX repeat the
    transmit values.
    """
    q, op = item.entry, item.profile
    stamp = q.stamp
    fields: List[Field] = [
        ("CALL", q.call),
        ("QSO_DATE", stamp.strftime("%Y%m%d")),
        ("TIME_ON", stamp.strftime("%H%M%S")),
        ("FREQ", q.frequency),
        ("BAND", q.band),
        ("FREQ_RX", q.frequency),
        ("BAND_RX", q.band),
        ("COMMENT", q.comments or ""),
    ]
    fields.extend(mode_fields(q.mode))
    fields.extend(
        [
            ("MY_GRIDSQUARE", op.grid),
            ("STATION_CALLSIGN", op.call),
            ("CQZ", op.cqz),
            ("ITUZ", op.ituz),
            ("DXCC", op.dxcc),
            ("CONT", op.cont),
            ("OPERATOR", op.call),
            ("RST_SENT", q.rsttx),
            ("RST_RCVD", q.rstrx),
            ("TX_PWR", q.power or ""),
        ]
    )
    return fields


def dump_adif(
    entries: Iterable[EnrichedLogEntry],
    *,
    program_id: str = PROGRAM_ID,
    program_version: str = __version__,
) -> str:
    """Serialize enriched QSOs to ADIF text in the order given."""
    lines: List[str] = [make_field(t, v) for t, v in header_fields(program_id, program_version)]
    lines.append("<EOH>")
    for item in entries:
        rec = [make_field(t, v) for t, v in record_fields(item)]
        rec.append("<EOR>")
        lines.append("".join(rec))
    return "\n".join(lines) + "\n"


def write_adif(path: Path, text: str) -> None:
    """Write ADIF text to path via a temporary file and an atomic rename.

    A failed export leaves any previous file at path untouched. Raises
    ExportIOError on any filesystem failure.
    """
    path = Path(path)
    tmp_name = None
    try:
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{path.name}.", suffix=".tmp", dir=path.parent
        )
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(text)
        os.replace(tmp_name, path)
        tmp_name = None
    except OSError as e:
        raise ExportIOError(f"Failed to write ADIF to {path}: {e}") from e
    finally:
        if tmp_name is not None:
            try:
                os.unlink(tmp_name)
            except OSError:
                logger.warning("Could not remove temporary export file %s", tmp_name)



# <TAG>, <TAG:len> or <TAG:len:type>
_SPECIFIER = re.compile(rb"<([A-Za-z0-9_]+)(?::(\d+)(?::[A-Za-z])?)?>")


def parse_adif(text: str) -> Tuple[Dict[str, str], List[Dict[str, str]]]:
    """Read ADIF text back into (header fields, list of record fields).

    Lengths are UTF-8 byte counts, matching make_field. Tags are matched
    case-insensitively; fields after the last <EOR> are kept as a record.
    """
    data = text.encode("utf-8")
    header: Dict[str, str] = {}
    records: List[Dict[str, str]] = []
    current: Dict[str, str] = {}
    pos = 0
    while (m := _SPECIFIER.search(data, pos)) is not None:
        tag = m.group(1).decode("ascii").upper()
        pos = m.end()
        if tag == "EOH":
            header, current = current, {}
        elif tag == "EOR":
            if current:
                records.append(current)
            current = {}
        elif m.group(2) is not None:
            length = int(m.group(2))
            current[tag] = data[pos : pos + length].decode("utf-8", errors="replace")
            pos += length
    if current:
        records.append(current)
    return header, records
