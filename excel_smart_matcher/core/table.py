"""
Table snapshots for the smart matcher.

excel_smart_matcher/core/table.py

A Table is an immutable, rectangular snapshot of cell values read from a
sheet or region. Every raw value is resolved once into a tagged Cell
(NULL / NUMBER / TEXT / DATE) when the table is materialized, so the
matching code never has to re-inspect Python types per comparison.
"""

import math
import numbers
import logging
import datetime

import pandas as pd

from enum import Enum
from typing import Any, Optional
from dataclasses import dataclass


logger = logging.getLogger(__name__)


class TableError(Exception):
    """Raised when a table cannot be built or addressed."""
    pass


class CellKind(Enum):
    """Tag for the value held by a cell."""
    NULL = "null"
    NUMBER = "number"
    TEXT = "text"
    DATE = "date"


@dataclass(frozen=True)
class Cell:
    """One tagged cell value. The raw value is kept verbatim for copying."""

    kind: CellKind
    value: Any = None

    @property
    def is_null(self) -> bool:
        return self.kind is CellKind.NULL

    @classmethod
    def from_value(cls, value: Any) -> 'Cell':
        """
        Resolve a raw Python value into a tagged cell.

        Args:
            value: Raw cell value from a reader or DataFrame

        Returns:
            Cell with the matching kind
        """
        if isinstance(value, Cell):
            return value

        if value is None or value is pd.NaT or value is pd.NA:
            return NULL_CELL

        # bool is a Number subclass; spreadsheets show TRUE/FALSE as text
        if isinstance(value, bool):
            return cls(CellKind.TEXT, value)

        if isinstance(value, (datetime.datetime, datetime.date)):
            return cls(CellKind.DATE, value)

        if isinstance(value, numbers.Number):
            if value != value:  # NaN
                return cls(CellKind.NULL, value)
            if isinstance(value, float) and math.isinf(value):
                return cls(CellKind.TEXT, value)
            return cls(CellKind.NUMBER, value)

        if isinstance(value, str):
            if not value.strip():
                return cls(CellKind.NULL, value)
            return cls(CellKind.TEXT, value)

        return cls(CellKind.TEXT, value)


NULL_CELL = Cell(CellKind.NULL, None)


@dataclass(frozen=True)
class TableRef:
    """Identity of a table inside a table provider."""

    table_id: str
    name: str = ''

    @property
    def label(self) -> str:
        return self.name or self.table_id


class Table:
    """
    Immutable rectangular block of tagged cells.

    Rows shorter than the widest row are padded with NULL cells. The
    optional has_header flag records what the caller knows about row 0;
    None means "let the header heuristic decide".
    """

    def __init__(self, rows, name: str = '', has_header: Optional[bool] = None):
        # Guard clause: rows must be iterable of rows
        if rows is None:
            raise TableError("Table rows cannot be None")

        if has_header is not None and not isinstance(has_header, bool):
            raise TableError(f"has_header must be True, False or None, got {has_header!r}")

        materialized = []
        for row_number, row in enumerate(rows):
            if isinstance(row, (str, bytes)) or not hasattr(row, '__iter__'):
                raise TableError(f"Row {row_number} is not a sequence of cell values: {row!r}")
            materialized.append(tuple(Cell.from_value(value) for value in row))

        width = max((len(row) for row in materialized), default=0)
        self._rows = tuple(
            row + (NULL_CELL,) * (width - len(row)) for row in materialized
        )
        self._width = width
        self.name = name
        self.has_header = has_header

    # =========================================================================
    # CONSTRUCTION
    # =========================================================================

    @classmethod
    def from_values(cls, values, name: str = '', has_header: Optional[bool] = None) -> 'Table':
        """Build a table from a 2-D sequence of raw values."""
        return cls(values, name=name, has_header=has_header)

    @classmethod
    def from_dataframe(cls, df: pd.DataFrame, name: str = '', include_header: bool = True) -> 'Table':
        """
        Build a table from a pandas DataFrame.

        Args:
            df: Source DataFrame
            name: Table name
            include_header: Put the column labels in row 0 and mark the header

        Returns:
            Table snapshot of the DataFrame
        """
        if not isinstance(df, pd.DataFrame):
            raise TableError("from_dataframe requires a pandas DataFrame")

        rows = []
        if include_header:
            rows.append([str(col) for col in df.columns])

        for record in df.astype(object).itertuples(index=False, name=None):
            rows.append(list(record))

        logger.debug(f"Materialized DataFrame into table '{name}': {len(df)} rows, {len(df.columns)} columns")
        return cls(rows, name=name, has_header=True if include_header else None)

    # =========================================================================
    # SHAPE AND ACCESS
    # =========================================================================

    @property
    def row_count(self) -> int:
        return len(self._rows)

    @property
    def column_count(self) -> int:
        return self._width

    @property
    def rows(self) -> tuple:
        return self._rows

    def cell(self, row_index: int, column_index: int) -> Cell:
        return self._rows[row_index][column_index]

    def has_column(self, column_index: int) -> bool:
        return isinstance(column_index, int) and 0 <= column_index < self._width

    def data_start(self, has_header: bool) -> int:
        """Index of the first data row."""
        return 1 if has_header and self.row_count > 0 else 0

    def data_row_count(self, has_header: bool) -> int:
        return self.row_count - self.data_start(has_header)

    def data_rows(self, has_header: bool) -> tuple:
        return self._rows[self.data_start(has_header):]

    def column_cells(self, column_index: int, has_header: bool) -> list:
        """Cells of one column over the data rows."""
        return [row[column_index] for row in self.data_rows(has_header)]

    def header_name(self, column_index: int, has_header: bool) -> Optional[str]:
        """Header text of a column, or None when there is no usable header."""
        if not has_header or self.row_count == 0:
            return None
        cell = self._rows[0][column_index]
        if cell.is_null:
            return None
        return str(cell.value).strip()

    def header_names(self, has_header: bool) -> list:
        return [self.header_name(col, has_header) for col in range(self._width)]

    def values(self) -> list:
        """Raw values as a list of lists, NULL cells included verbatim."""
        return [[cell.value for cell in row] for row in self._rows]

    # =========================================================================
    # DERIVED SNAPSHOTS
    # =========================================================================

    def with_region(self, top_row: int, left_col: int, values) -> 'Table':
        """
        Return a new table with a rectangular block of values written in.

        The table grows as needed to fit the block; cells outside the block
        are unchanged.
        """
        if top_row < 0 or left_col < 0:
            raise TableError(f"Region origin must be non-negative, got ({top_row}, {left_col})")

        block = [list(row) for row in values]
        block_width = max((len(row) for row in block), default=0)
        height = max(self.row_count, top_row + len(block))
        width = max(self._width, left_col + block_width)

        grid = [list(row) + [NULL_CELL] * (width - self._width) for row in self._rows]
        grid.extend([NULL_CELL] * width for _ in range(height - self.row_count))

        for offset_row, row in enumerate(block):
            for offset_col, value in enumerate(row):
                grid[top_row + offset_row][left_col + offset_col] = Cell.from_value(value)

        return Table(grid, name=self.name, has_header=self.has_header)

    def to_dataframe(self, has_header: Optional[bool] = None) -> pd.DataFrame:
        """
        Convert the table to a pandas DataFrame.

        Args:
            has_header: Use row 0 as column labels (defaults to the table flag)

        Returns:
            DataFrame with raw cell values
        """
        if has_header is None:
            has_header = bool(self.has_header)

        raw = self.values()
        if has_header and raw:
            columns = [
                str(value) if value is not None else f"Column {index + 1}"
                for index, value in enumerate(raw[0])
            ]
            return pd.DataFrame(raw[1:], columns=columns)

        return pd.DataFrame(raw, columns=list(range(self._width)))

    def __repr__(self) -> str:
        return f"Table(name={self.name!r}, rows={self.row_count}, columns={self.column_count})"


# End of file #
