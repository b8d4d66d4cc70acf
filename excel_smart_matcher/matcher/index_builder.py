"""
Match index construction.

excel_smart_matcher/matcher/index_builder.py

Builds a hash index from normalized key value to source row. The first
row carrying a key wins; later duplicates are counted but never replace
it, so lookups are deterministic and favour the canonical first row of a
master list. Blank keys are skipped and counted separately.
"""

import logging

from types import MappingProxyType
from typing import Optional

from excel_smart_matcher.core.table import Table, TableRef
from excel_smart_matcher.config.settings_loader import MatchSettings, DEFAULT_SETTINGS
from excel_smart_matcher.matcher.errors import BuildFailed, ColumnIndexOutOfRange
from excel_smart_matcher.matcher.normalize import KeyCoercionError, normalize_key
from excel_smart_matcher.matcher.key_detector import detect_header


logger = logging.getLogger(__name__)


class MatchIndex:
    """
    Read-only mapping of normalized key to source row (a tuple of cells).

    Built once by MatchIndexBuilder and then shared by all join workers
    without locking; nothing mutates it after construction.
    """

    __slots__ = ('_entries', 'source_ref', 'key_column', 'has_header', 'column_count',
                 'source_row_count', 'duplicate_key_count', 'skipped_key_count', '_frozen')

    def __init__(self, entries: dict, source_ref: TableRef, key_column: int, has_header: bool,
                 column_count: int, source_row_count: int, duplicate_key_count: int,
                 skipped_key_count: int):
        self._entries = MappingProxyType(dict(entries))
        self.source_ref = source_ref
        self.key_column = key_column
        self.has_header = has_header
        self.column_count = column_count
        self.source_row_count = source_row_count
        self.duplicate_key_count = duplicate_key_count
        self.skipped_key_count = skipped_key_count
        self._frozen = True

    def __setattr__(self, name, value):
        if getattr(self, '_frozen', False):
            raise AttributeError("MatchIndex is read-only once built")
        object.__setattr__(self, name, value)

    def lookup(self, key: Optional[str]) -> Optional[tuple]:
        """Source row for a normalized key, or None."""
        if key is None:
            return None
        return self._entries.get(key)

    def __contains__(self, key) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def keys(self):
        return self._entries.keys()

    def __repr__(self) -> str:
        return (f"MatchIndex(source={self.source_ref.label!r}, keys={len(self)}, "
                f"duplicates={self.duplicate_key_count}, skipped={self.skipped_key_count})")


class MatchIndexBuilder:
    """Builds a MatchIndex over the data rows of a source table."""

    def __init__(self, settings: MatchSettings = DEFAULT_SETTINGS):
        self.settings = settings

    def build(self, table: Table, key_column: int, has_header: Optional[bool] = None,
              source_ref: TableRef = None) -> MatchIndex:
        """
        Index a source table by its key column.

        Args:
            table: Source table
            key_column: 0-based key column index
            has_header: Header flag; None applies the header heuristic
            source_ref: Identity recorded in the index (defaults to the table name)

        Returns:
            Built MatchIndex

        Raises:
            BuildFailed: If the table has no rows at all
            ColumnIndexOutOfRange: If the key column does not exist
        """
        if not isinstance(table, Table):
            raise BuildFailed(f"Source must be a Table, got {type(table).__name__}")

        if table.row_count <= 0:
            raise BuildFailed(f"Cannot build index: source table '{table.name}' has no rows")

        if not table.has_column(key_column):
            raise ColumnIndexOutOfRange(key_column, table.column_count, table.name)

        if has_header is None:
            has_header = detect_header(table, self.settings)

        if source_ref is None:
            source_ref = TableRef(table_id=table.name, name=table.name)

        entries = {}
        duplicate_count = 0
        skipped_count = 0

        data_rows = table.data_rows(has_header)
        for row in data_rows:
            try:
                key = normalize_key(row[key_column])
            except KeyCoercionError as e:
                logger.debug(f"Skipping unreadable key in '{source_ref.label}': {e}")
                key = None

            if key is None:
                skipped_count += 1
                continue

            if key in entries:
                duplicate_count += 1
                continue

            entries[key] = row

        index = MatchIndex(
            entries=entries,
            source_ref=source_ref,
            key_column=key_column,
            has_header=has_header,
            column_count=table.column_count,
            source_row_count=len(data_rows),
            duplicate_key_count=duplicate_count,
            skipped_key_count=skipped_count,
        )

        logger.info(f"Built match index on '{source_ref.label}' column {key_column + 1}: "
                    f"{len(index)} keys from {len(data_rows)} rows")
        if duplicate_count:
            logger.warning(f"⚠️  {duplicate_count} duplicate key(s) in '{source_ref.label}' ignored "
                           f"(first occurrence kept)")
        if skipped_count:
            logger.debug(f"{skipped_count} blank key(s) skipped in '{source_ref.label}'")

        return index


# End of file #
