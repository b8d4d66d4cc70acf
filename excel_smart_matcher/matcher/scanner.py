"""
Source candidate scanning.

excel_smart_matcher/matcher/scanner.py

Given the detected key column of the target table, scores every column of
every candidate table and ranks the tables by their best column. Finding
no usable source is a normal outcome and is returned as an empty
ScanResult, not raised.
"""

import logging

from typing import Optional
from dataclasses import dataclass
from concurrent.futures import ThreadPoolExecutor

from excel_smart_matcher.core.table import Table, TableRef
from excel_smart_matcher.config.settings_loader import MatchSettings, DEFAULT_SETTINGS
from excel_smart_matcher.matcher.patterns import PatternLibrary, DEFAULT_PATTERNS
from excel_smart_matcher.matcher.profiler import ColumnProfiler
from excel_smart_matcher.matcher.similarity import ColumnSimilarityScorer
from excel_smart_matcher.matcher.key_detector import KeyColumnCandidate, detect_header


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ColumnMatch:
    """One scored candidate column in a source table."""

    source_ref: TableRef
    source_column_index: int
    source_column_name: Optional[str]
    match_score: float


@dataclass(frozen=True)
class SourceCandidate:
    """A scanned table that cleared the acceptance floors."""

    source_ref: TableRef
    table: Table
    has_header: bool
    matches: tuple

    @property
    def best_match(self) -> ColumnMatch:
        return self.matches[0]

    @property
    def best_score(self) -> float:
        return self.matches[0].match_score

    @property
    def row_count(self) -> int:
        return self.table.data_row_count(self.has_header)


@dataclass(frozen=True)
class ScanResult:
    """Ranked sources for one key column. Empty when nothing cleared the floor."""

    key: KeyColumnCandidate
    sources: tuple
    tables_scanned: int = 0

    @property
    def is_empty(self) -> bool:
        return len(self.sources) == 0

    @property
    def top(self) -> Optional[SourceCandidate]:
        return self.sources[0] if self.sources else None

    @property
    def runner_up(self) -> Optional[SourceCandidate]:
        return self.sources[1] if len(self.sources) > 1 else None

    def __len__(self) -> int:
        return len(self.sources)


class SourceCandidateScanner:
    """Scores candidate tables against a detected key column."""

    def __init__(self, settings: MatchSettings = DEFAULT_SETTINGS,
                 patterns: PatternLibrary = DEFAULT_PATTERNS):
        self.settings = settings
        self.profiler = ColumnProfiler(settings, patterns)
        self.scorer = ColumnSimilarityScorer(settings)

    def scan(self, key: KeyColumnCandidate, candidates, exclude_id: str = None) -> ScanResult:
        """
        Scan candidate tables for columns compatible with the key.

        Args:
            key: Detected key column of the target table
            candidates: Iterable of (TableRef, Table) pairs
            exclude_id: Table id to skip (the target itself)

        Returns:
            ScanResult ranked by best column score (desc), then row count (desc)
        """
        pairs = [(ref, table) for ref, table in candidates if ref.table_id != exclude_id]

        workers = min(self.settings.scan_workers, len(pairs))
        if workers > 1:
            with ThreadPoolExecutor(max_workers=workers) as executor:
                scanned = list(executor.map(lambda pair: self.scan_table(key, *pair), pairs))
        else:
            scanned = [self.scan_table(key, ref, table) for ref, table in pairs]

        sources = [source for source in scanned if source is not None]
        sources.sort(key=lambda s: (-s.best_score, -s.row_count, s.source_ref.table_id))

        result = ScanResult(key=key, sources=tuple(sources), tables_scanned=len(pairs))
        if result.is_empty:
            logger.info(f"No source table matched key '{key.display_name}' ({len(pairs)} tables scanned)")
        else:
            logger.info(
                f"Found {len(sources)} source table(s) for key '{key.display_name}': "
                + ", ".join(f"'{s.source_ref.label}'={s.best_score:.3f}" for s in sources)
            )
        return result

    def scan_table(self, key: KeyColumnCandidate, ref: TableRef, table: Table) -> Optional[SourceCandidate]:
        """
        Score every column of one table.

        Returns:
            SourceCandidate with columns at or above the column floor, or None
            when the table is empty or its best column is below the table floor
        """
        has_header = detect_header(table, self.settings)
        if table.column_count == 0 or table.data_row_count(has_header) == 0:
            logger.debug(f"Skipping empty table '{ref.label}'")
            return None

        matches = []
        for profile in self.profiler.profile_table(table, has_header):
            score = self.scorer.score(key.profile, profile)
            if score >= self.settings.column_match_floor:
                matches.append(ColumnMatch(
                    source_ref=ref,
                    source_column_index=profile.column_index,
                    source_column_name=profile.header_name,
                    match_score=score,
                ))

        if not matches:
            logger.debug(f"Table '{ref.label}': no column reached {self.settings.column_match_floor}")
            return None

        matches.sort(key=lambda m: (-m.match_score, m.source_column_index))
        if matches[0].match_score < self.settings.table_match_floor:
            logger.debug(f"Table '{ref.label}': best column {matches[0].match_score:.3f} "
                         f"below table floor {self.settings.table_match_floor}")
            return None

        return SourceCandidate(source_ref=ref, table=table, has_header=has_header, matches=tuple(matches))


# End of file #
