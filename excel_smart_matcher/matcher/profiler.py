"""
Column profiling for join key discovery.

excel_smart_matcher/matcher/profiler.py

Computes per-column statistics over the data rows of a table: distinct
normalized values, blanks, numeric vs text counts and structural pattern
hits. Profiles also carry two small samples used later by the column
similarity scorer, so scanning never has to go back to the raw cells.
"""

import logging

from typing import Optional
from dataclasses import dataclass

from excel_smart_matcher.core.table import Table
from excel_smart_matcher.config.settings_loader import MatchSettings, DEFAULT_SETTINGS
from excel_smart_matcher.matcher.errors import ColumnIndexOutOfRange
from excel_smart_matcher.matcher.patterns import PatternLibrary, DEFAULT_PATTERNS
from excel_smart_matcher.matcher.normalize import (
    KeyCoercionError,
    display_text,
    is_numeric_cell,
    normalize_key,
)


logger = logging.getLogger(__name__)

NUMERIC = 'numeric'
TEXT = 'text'


@dataclass(frozen=True)
class ColumnProfile:
    """Statistics for one column, computed over data rows only."""

    column_index: int
    header_name: Optional[str]
    row_count: int
    unique_count: int
    null_count: int
    numeric_count: int
    text_count: int
    # (pattern name, count) pairs sorted by name
    pattern_counts: tuple = ()
    sample_numeric_count: int = 0
    sample_text_count: int = 0
    value_sample: tuple = ()

    @property
    def display_name(self) -> str:
        return self.header_name or f"Column {self.column_index + 1}"

    @property
    def non_null_count(self) -> int:
        return self.row_count - self.null_count

    @property
    def uniqueness_ratio(self) -> float:
        if self.row_count == 0:
            return 0.0
        return self.unique_count / self.row_count

    @property
    def null_ratio(self) -> float:
        if self.row_count == 0:
            return 0.0
        return self.null_count / self.row_count

    @property
    def completeness(self) -> float:
        if self.row_count == 0:
            return 0.0
        return 1.0 - self.null_ratio

    @property
    def type_homogeneity(self) -> float:
        if self.non_null_count == 0:
            return 0.0
        return max(self.numeric_count, self.text_count) / self.non_null_count

    @property
    def numeric_ratio(self) -> float:
        if self.non_null_count == 0:
            return 0.0
        return self.numeric_count / self.non_null_count

    @property
    def pattern_count(self) -> int:
        return sum(count for _, count in self.pattern_counts)

    @property
    def pattern_ratio(self) -> float:
        if self.non_null_count == 0:
            return 0.0
        return self.pattern_count / self.non_null_count

    @property
    def sample_size(self) -> int:
        return self.sample_numeric_count + self.sample_text_count

    @property
    def dominant_type(self) -> Optional[str]:
        """Majority type over the type sample; None when the sample is empty."""
        if self.sample_size == 0:
            return None
        return NUMERIC if self.sample_numeric_count > self.sample_text_count else TEXT


class ColumnProfiler:
    """Builds ColumnProfiles. Stateless apart from its settings and patterns."""

    def __init__(self, settings: MatchSettings = DEFAULT_SETTINGS,
                 patterns: PatternLibrary = DEFAULT_PATTERNS):
        self.settings = settings
        self.patterns = patterns

    def profile(self, table: Table, column_index: int, has_header: bool) -> ColumnProfile:
        """
        Profile one column of a table.

        Args:
            table: Table snapshot
            column_index: 0-based column index
            has_header: Whether row 0 is a header (excluded from statistics)

        Returns:
            ColumnProfile for the column

        Raises:
            ColumnIndexOutOfRange: If the column does not exist
        """
        if not table.has_column(column_index):
            raise ColumnIndexOutOfRange(column_index, table.column_count, table.name)

        type_sample_rows = self.settings.type_sample_rows
        value_sample_rows = self.settings.candidate_value_sample

        distinct = set()
        pattern_counts = {}
        value_sample = []
        null_count = numeric_count = text_count = 0
        sample_numeric = sample_text = 0

        cells = table.column_cells(column_index, has_header)
        for row_number, cell in enumerate(cells):
            try:
                key = normalize_key(cell)
            except KeyCoercionError:
                key = None

            if key is None:
                null_count += 1
                continue

            distinct.add(key)

            numeric = is_numeric_cell(cell)
            if numeric:
                numeric_count += 1
            else:
                text_count += 1

            if row_number < type_sample_rows:
                if numeric:
                    sample_numeric += 1
                else:
                    sample_text += 1

            if row_number < value_sample_rows:
                value_sample.append(key)

            pattern = self.patterns.classify(display_text(cell))
            if pattern is not None:
                pattern_counts[pattern] = pattern_counts.get(pattern, 0) + 1

        profile = ColumnProfile(
            column_index=column_index,
            header_name=table.header_name(column_index, has_header),
            row_count=len(cells),
            unique_count=len(distinct),
            null_count=null_count,
            numeric_count=numeric_count,
            text_count=text_count,
            pattern_counts=tuple(sorted(pattern_counts.items())),
            sample_numeric_count=sample_numeric,
            sample_text_count=sample_text,
            value_sample=tuple(value_sample),
        )

        logger.debug(
            f"Profiled '{profile.display_name}' of '{table.name}': {profile.row_count} rows, "
            f"{profile.unique_count} unique, {profile.null_count} blank, "
            f"homogeneity {profile.type_homogeneity:.2f}, patterns {profile.pattern_ratio:.2f}"
        )
        return profile

    def profile_table(self, table: Table, has_header: bool) -> list:
        """Profiles for every column of a table, in column order."""
        return [self.profile(table, col, has_header) for col in range(table.column_count)]


# End of file #
