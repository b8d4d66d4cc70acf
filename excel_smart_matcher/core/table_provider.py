"""
Table provider interface for the smart matcher.

excel_smart_matcher/core/table_provider.py

The engine never talks to a workbook directly. It reads fully materialized
Table snapshots, enumerates sibling tables, and writes one rectangular
result block through a TableProvider. InMemoryTableProvider keeps named
snapshots in a dict and is what tests and embedding code use when the data
already lives in memory.
"""

import logging

from abc import ABC, abstractmethod

from excel_smart_matcher.core.table import Table, TableRef, TableError


logger = logging.getLogger(__name__)


class TableProviderError(Exception):
    """Raised when a table cannot be read, written or enumerated."""
    pass


class TableProvider(ABC):
    """Read/write/enumerate interface consumed by the match orchestrator."""

    @abstractmethod
    def read_table(self, table_id: str) -> Table:
        """
        Return a fully materialized snapshot of a table.

        Raises:
            TableProviderError: If the table does not exist
        """
        pass

    @abstractmethod
    def write_region(self, target_id: str, top_row: int, left_col: int, values: list) -> None:
        """
        Write a rectangular block of values with its top-left corner at (top_row, left_col).

        Coordinates are 0-based and relative to the table's own origin.
        """
        pass

    @abstractmethod
    def list_candidate_tables(self, excluding_id: str = None) -> list:
        """Return TableRefs of every table except excluding_id."""
        pass

    def get_ref(self, table_id: str) -> TableRef:
        """TableRef for a table id; providers with display names override this."""
        return TableRef(table_id=table_id, name=table_id)


class InMemoryTableProvider(TableProvider):
    """
    Table provider over named in-memory snapshots.

    Writes replace the stored snapshot with a new one containing the block,
    so earlier snapshots handed out by read_table stay unchanged.
    """

    def __init__(self, tables: dict = None):
        """
        Initialize the provider.

        Args:
            tables: Optional mapping of table id to Table or 2-D raw values
        """
        self._tables = {}
        self._write_log = []

        for table_id, table in (tables or {}).items():
            self.add_table(table_id, table)

    def add_table(self, table_id: str, table, has_header: bool = None) -> Table:
        """
        Register a table, converting raw 2-D values to a Table if needed.

        Args:
            table_id: Unique table id
            table: Table or 2-D sequence of raw values
            has_header: Header flag used when converting raw values

        Returns:
            The stored Table
        """
        self._validate_table_id(table_id)

        if not isinstance(table, Table):
            try:
                table = Table.from_values(table, name=table_id, has_header=has_header)
            except TableError as e:
                raise TableProviderError(f"Cannot register table '{table_id}': {e}") from e

        if table_id in self._tables:
            logger.debug(f"Replacing table '{table_id}'")

        self._tables[table_id] = table
        logger.debug(f"Registered table '{table_id}': {table.row_count} rows, {table.column_count} columns")
        return table

    def read_table(self, table_id: str) -> Table:
        if table_id not in self._tables:
            available = list(self._tables.keys())
            raise TableProviderError(
                f"Table '{table_id}' not found."
                + (f" Available tables: {available}" if available else " No tables have been registered.")
            )
        return self._tables[table_id]

    def write_region(self, target_id: str, top_row: int, left_col: int, values: list) -> None:
        table = self.read_table(target_id)

        try:
            self._tables[target_id] = table.with_region(top_row, left_col, values)
        except TableError as e:
            raise TableProviderError(f"Cannot write region into '{target_id}': {e}") from e

        height = len(values)
        width = max((len(row) for row in values), default=0)
        self._write_log.append((target_id, top_row, left_col, height, width))
        logger.debug(f"Wrote {height}x{width} block into '{target_id}' at ({top_row}, {left_col})")

    def list_candidate_tables(self, excluding_id: str = None) -> list:
        return [
            TableRef(table_id=table_id, name=table.name or table_id)
            for table_id, table in self._tables.items()
            if table_id != excluding_id
        ]

    def table_exists(self, table_id: str) -> bool:
        return table_id in self._tables

    @property
    def write_log(self) -> list:
        """(target_id, top_row, left_col, height, width) for each write, oldest first."""
        return list(self._write_log)

    @staticmethod
    def _validate_table_id(table_id: str) -> None:
        if not isinstance(table_id, str):
            raise TableProviderError("Table id must be a string")

        if not table_id.strip():
            raise TableProviderError("Table id cannot be empty")


# End of file #
