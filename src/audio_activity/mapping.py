"""Raw class index to activity mapping table.

Source format, one record per line::

    <rawClassIndex>,<entry>[|<entry>]*
    <entry> ::= <activityLabel>[*<threshold>]

e.g. ``0,Speaking*0.6|Conversation``. Entries without a threshold use the
default threshold given at load time. Malformed lines, including lines
with bytes that are not valid UTF-8, are skipped with a warning; activity
labels are not checked here.

A table is immutable. When the same (raw index, activity) pair appears
more than once, the last threshold wins and the entry keeps the position
where the pair was first seen.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, Iterator, List, Mapping, Optional, Tuple, Union

from .errors import MalformedMappingRecord

logger = logging.getLogger(__name__)

FIELD_SEPARATOR = ","
ENTRY_SEPARATOR = "|"
THRESHOLD_SEPARATOR = "*"
COMMENT_PREFIX = "#"
# Stands in for bytes that are not valid UTF-8
UNDECODABLE_CHAR = "\ufffd"

MappingSource = Union[str, Path, Iterable[str]]


@dataclass(frozen=True)
class ThresholdEntry:
    """Evidence rule: a raw class counts for ``activity`` above ``threshold``."""
    activity: str
    threshold: float

    def __post_init__(self):
        if not 0.0 <= self.threshold <= 1.0:
            raise ValueError(f"Threshold must be in [0, 1], got {self.threshold}")

    def __str__(self) -> str:
        return f"{self.activity}{THRESHOLD_SEPARATOR}{self.threshold}"


def parse_entry(text: str, default_threshold: float) -> ThresholdEntry:
    """Parse ``label[*threshold]``.

    Raises:
        ValueError: If the label is empty or the threshold is invalid
    """
    parts = text.split(THRESHOLD_SEPARATOR)
    if len(parts) > 2:
        raise ValueError(f"too many '{THRESHOLD_SEPARATOR}' in entry '{text}'")

    label = parts[0].strip()
    if not label:
        raise ValueError(f"empty activity label in entry '{text}'")

    threshold = default_threshold
    if len(parts) == 2:
        threshold = float(parts[1].strip())

    return ThresholdEntry(label, threshold)


def parse_record(
    line: str,
    default_threshold: float,
    line_number: Optional[int] = None,
) -> Tuple[int, List[ThresholdEntry]]:
    """Parse one mapping line into (raw index, entries).

    Raises:
        MalformedMappingRecord: If the line does not follow the format
    """
    if UNDECODABLE_CHAR in line:
        raise MalformedMappingRecord(
            "line contains bytes that are not valid UTF-8",
            line_number=line_number,
            line=line,
        )

    fields = line.split(FIELD_SEPARATOR)
    if len(fields) != 2:
        raise MalformedMappingRecord(
            f"expected 2 fields, found {len(fields)}",
            line_number=line_number,
            line=line,
        )

    index_text, entry_text = fields
    try:
        raw_index = int(index_text.strip())
    except ValueError as e:
        raise MalformedMappingRecord(
            f"raw class index '{index_text.strip()}' is not an integer",
            line_number=line_number,
            line=line,
        ) from e
    if raw_index < 0:
        raise MalformedMappingRecord(
            f"raw class index {raw_index} is negative",
            line_number=line_number,
            line=line,
        )

    try:
        entries = [
            parse_entry(text, default_threshold)
            for text in entry_text.split(ENTRY_SEPARATOR)
        ]
    except ValueError as e:
        raise MalformedMappingRecord(
            str(e), line_number=line_number, line=line
        ) from e

    return raw_index, entries


class ActivityMappingTable:
    """Immutable raw class index -> threshold entries lookup."""

    def __init__(
        self,
        entries: Optional[Mapping[int, Iterable[ThresholdEntry]]] = None,
        skipped_records: int = 0,
    ):
        """Build a table.

        Args:
            entries: Raw class index to entries; indices with no entries
                are left out
            skipped_records: Number of malformed source lines (for reporting)
        """
        table: Dict[int, Tuple[ThresholdEntry, ...]] = {}
        for raw_index, index_entries in (entries or {}).items():
            if int(raw_index) < 0:
                raise ValueError(f"Raw class index must be >= 0, got {raw_index}")
            by_label: Dict[str, ThresholdEntry] = {}
            for entry in index_entries:
                by_label[entry.activity] = entry
            if by_label:
                table[int(raw_index)] = tuple(by_label.values())

        self._entries: Mapping[int, Tuple[ThresholdEntry, ...]] = MappingProxyType(table)
        self.skipped_records = skipped_records

    @classmethod
    def load(
        cls,
        source: MappingSource,
        default_threshold: float = 0.5,
    ) -> "ActivityMappingTable":
        """Load a table from a file path or an iterable of lines.

        Raises:
            FileNotFoundError: If ``source`` is a path that does not exist
            ValueError: If ``default_threshold`` is outside [0, 1]
        """
        if isinstance(source, (str, Path)):
            path = Path(source)
            with open(path, "r", encoding="utf-8-sig", errors="replace") as f:
                table = cls.from_lines(f, default_threshold, source_name=str(path))
            return table
        return cls.from_lines(source, default_threshold)

    @classmethod
    def from_lines(
        cls,
        lines: Iterable[str],
        default_threshold: float = 0.5,
        source_name: str = "<lines>",
    ) -> "ActivityMappingTable":
        """Parse mapping records, skipping malformed lines."""
        if not 0.0 <= default_threshold <= 1.0:
            raise ValueError(
                f"Default threshold must be in [0, 1], got {default_threshold}"
            )

        merged: Dict[int, List[ThresholdEntry]] = {}
        skipped = 0

        for line_number, line in enumerate(lines, start=1):
            line = line.strip()
            if not line or line.startswith(COMMENT_PREFIX):
                continue
            try:
                raw_index, entries = parse_record(line, default_threshold, line_number)
            except MalformedMappingRecord as e:
                logger.warning(
                    f"Skipping malformed mapping record "
                    f"{source_name}:{line_number}: {e.message} ({line!r})"
                )
                skipped += 1
                continue
            merged.setdefault(raw_index, []).extend(entries)

        table = cls(merged, skipped_records=skipped)
        logger.info(
            f"Loaded activity mapping from {source_name}: "
            f"{len(table)} raw classes, {table.entry_count} entries, {skipped} skipped"
        )
        return table

    def lookup(self, raw_index: int) -> Tuple[ThresholdEntry, ...]:
        """Entries for a raw class; empty if the class maps to nothing."""
        return self._entries.get(raw_index, ())

    @property
    def indices(self) -> Tuple[int, ...]:
        return tuple(self._entries)

    @property
    def entry_count(self) -> int:
        """Total number of threshold entries across all raw classes."""
        return sum(len(entries) for entries in self._entries.values())

    def activities(self) -> FrozenSet[str]:
        """All activity labels referenced by the table."""
        return frozenset(
            entry.activity
            for entries in self._entries.values()
            for entry in entries
        )

    def out_of_range(self, output_width: int) -> List[int]:
        """Indices the model can never produce (index >= output_width)."""
        return sorted(i for i in self._entries if i >= output_width)

    def items(self) -> Iterator[Tuple[int, Tuple[ThresholdEntry, ...]]]:
        return iter(self._entries.items())

    def __contains__(self, raw_index: object) -> bool:
        return raw_index in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"ActivityMappingTable(classes={len(self)}, entries={self.entry_count})"
