"""
Reading address lists from delimited text.

Each record holds a hex address (with or without '0x') in a fixed column.
A bad record does not stop ingestion: it is logged, collected as a
`RecordError`, and the remaining records are still read.
"""

import csv
import io
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, TextIO, Union

from zkmerkle.crypto.field import Fq
from zkmerkle.exceptions import InvalidRecordError
from zkmerkle.utils.encoding import hex_to_field

logger = logging.getLogger(__name__)


@dataclass
class RecordError:
    """A record that could not be turned into a leaf."""

    line: int
    value: str
    reason: str


@dataclass
class IngestResult:
    """Leaves read from one input set, in input order."""

    addresses: List[str] = field(default_factory=list)
    leaves: List[Fq] = field(default_factory=list)
    errors: List[RecordError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def __len__(self) -> int:
        return len(self.leaves)


def parse_record(row: List[str], column: int = 0) -> Fq:
    """
    Turn one CSV row into a leaf.

    Raises:
        InvalidRecordError: If the column is missing or not a valid hex scalar
    """
    if column >= len(row):
        raise InvalidRecordError(f"Record has no column {column}")

    value = row[column].strip()
    if not value:
        raise InvalidRecordError("Empty value")

    try:
        return hex_to_field(value)
    except ValueError as e:
        raise InvalidRecordError(str(e)) from e


def _read_rows(rows: Iterable[List[str]], column: int, has_header: bool) -> IngestResult:
    result = IngestResult()

    for line, row in enumerate(rows, start=1):
        if has_header and line == 1:
            continue
        if not row:
            continue

        try:
            leaf = parse_record(row, column)
        except InvalidRecordError as e:
            raw = row[column] if column < len(row) else ",".join(row)
            logger.warning("Skipping record on line %d (%r): %s", line, raw, e)
            result.errors.append(RecordError(line=line, value=raw, reason=str(e)))
            continue

        result.addresses.append(row[column].strip())
        result.leaves.append(leaf)

    return result


def read_addresses(
    source: Union[str, Path, TextIO],
    column: int = 0,
    has_header: bool = True,
    delimiter: str = ",",
) -> IngestResult:
    """
    Read leaves from a CSV file path or an open text stream.

    Args:
        source: Path to the file, or a text stream
        column: Zero-based column holding the address
        has_header: Skip the first record
        delimiter: Field delimiter

    Returns:
        IngestResult: Parsed leaves plus one RecordError per rejected record
    """
    if isinstance(source, (str, Path)):
        with open(source, newline="", encoding="utf-8") as f:
            return _read_rows(csv.reader(f, delimiter=delimiter), column, has_header)
    return _read_rows(csv.reader(source, delimiter=delimiter), column, has_header)


def read_addresses_text(text: str, **kwargs) -> IngestResult:
    """Convenience wrapper for in-memory CSV text."""
    return read_addresses(io.StringIO(text), **kwargs)
