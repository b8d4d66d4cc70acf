"""
Match orchestration: smart matching, wizard matching and batch VLOOKUP.

excel_smart_matcher/matcher/orchestrator.py

Wires profiling, key detection, source scanning, indexing and joining into
the public matching operations and owns the failure/ambiguity policy:

    Start -> Profiled -> KeyDetected -> SourcesScanned
          -> {NoKeyFound | NoSourceFound | Ambiguous | SourceChosen}
          -> Indexed -> Joined -> Reported

Expected data conditions (no key, no source, ambiguous sources, nothing to
copy, cancellation) come back as a MatchOutcome status. Only caller misuse
(bad column indices, malformed source tables) raises.
"""

import logging

from enum import Enum
from typing import Optional
from dataclasses import dataclass

from excel_smart_matcher.core.table import Table, TableRef
from excel_smart_matcher.core.table_provider import TableProvider, TableProviderError
from excel_smart_matcher.config.settings_loader import MatchSettings, DEFAULT_SETTINGS
from excel_smart_matcher.matcher.errors import (
    AmbiguousSources,
    ColumnIndexOutOfRange,
    JoinCancelled,
    MatcherError,
    NoDataRows,
    NoKeyFound,
    NoSourceFound,
)
from excel_smart_matcher.matcher.patterns import PatternLibrary, DEFAULT_PATTERNS
from excel_smart_matcher.matcher.progress import ProgressMonitor
from excel_smart_matcher.matcher.key_detector import KeyColumnCandidate, KeyColumnDetector, detect_header
from excel_smart_matcher.matcher.scanner import ScanResult, SourceCandidateScanner
from excel_smart_matcher.matcher.index_builder import MatchIndexBuilder
from excel_smart_matcher.matcher.join_executor import JoinExecutor, JoinReport


logger = logging.getLogger(__name__)

# Float slack when comparing score gaps against the ambiguity margin
SCORE_EPSILON = 1e-9

NOT_FOUND_EXACT = '#N/A'
NOT_FOUND_APPROXIMATE = ''


class MatchStatus(Enum):
    """Final status of one matching operation."""
    MATCHED = "matched"
    NO_DATA_ROWS = "no_data_rows"
    NO_KEY_FOUND = "no_key_found"
    NO_SOURCE_FOUND = "no_source_found"
    AMBIGUOUS_SOURCES = "ambiguous_sources"
    NO_RETURN_COLUMNS = "no_return_columns"
    CANCELLED = "cancelled"


class MatchState(Enum):
    """States an operation passes through; recorded on the outcome."""
    START = "start"
    PROFILED = "profiled"
    KEY_DETECTED = "key_detected"
    SOURCES_SCANNED = "sources_scanned"
    NO_KEY_FOUND = "no_key_found"
    NO_SOURCE_FOUND = "no_source_found"
    AMBIGUOUS = "ambiguous"
    SOURCE_CHOSEN = "source_chosen"
    INDEXED = "indexed"
    JOINED = "joined"
    CANCELLED = "cancelled"
    REPORTED = "reported"


@dataclass(frozen=True)
class MatchOutcome:
    """What a matching operation returns instead of raising for data conditions."""

    status: MatchStatus
    target_id: str
    message: str = ''
    report: Optional[JoinReport] = None
    values: Optional[list] = None
    key: Optional[KeyColumnCandidate] = None
    key_candidates: tuple = ()
    scan: Optional[ScanResult] = None
    source_ref: Optional[TableRef] = None
    source_key_column: Optional[int] = None
    return_columns: tuple = ()
    origin: Optional[tuple] = None
    states: tuple = ()

    @property
    def succeeded(self) -> bool:
        return self.status is MatchStatus.MATCHED

    def raise_for_status(self) -> 'MatchOutcome':
        """Raise the matching MatcherError for a non-success outcome; return self otherwise."""
        if self.status is MatchStatus.MATCHED:
            return self
        if self.status is MatchStatus.NO_DATA_ROWS:
            raise NoDataRows(self.message)
        if self.status is MatchStatus.NO_KEY_FOUND:
            raise NoKeyFound(self.message)
        if self.status is MatchStatus.NO_SOURCE_FOUND:
            raise NoSourceFound(self.message)
        if self.status is MatchStatus.AMBIGUOUS_SOURCES:
            raise AmbiguousSources(self.message, self.scan.sources if self.scan else ())
        if self.status is MatchStatus.CANCELLED:
            raise JoinCancelled(self.message)
        raise MatcherError(self.message)


@dataclass(frozen=True)
class BatchLookupResult:
    """Result of a classic batch VLOOKUP."""

    values: list
    total_rows: int
    matched_rows: int
    not_found_rows: int
    elapsed_seconds: float
    report: JoinReport


class MatchOrchestrator:
    """
    Runs matching operations against tables served by a TableProvider.

    Holds no state between operations; every call builds its own profiles,
    index and report.
    """

    def __init__(self, provider: TableProvider, settings: MatchSettings = DEFAULT_SETTINGS,
                 patterns: PatternLibrary = DEFAULT_PATTERNS):
        # Guard clause: provider must implement the table interface
        if not isinstance(provider, TableProvider):
            raise MatcherError("MatchOrchestrator requires a TableProvider")

        self.provider = provider
        self.settings = settings
        self.detector = KeyColumnDetector(settings, patterns)
        self.scanner = SourceCandidateScanner(settings, patterns)
        self.index_builder = MatchIndexBuilder(settings)
        self.executor = JoinExecutor(settings)

    # =========================================================================
    # PUBLIC OPERATIONS
    # =========================================================================

    def smart_match(self, target_id: str, return_columns=None, origin: tuple = None,
                    monitor: ProgressMonitor = None, write: bool = True) -> MatchOutcome:
        """
        Detect the key, find the source and enrich the target automatically.

        Args:
            target_id: Table to enrich
            return_columns: Source columns to copy (indices or header names);
                None suggests every source column the target does not have yet
            origin: (row, col) for the result block; defaults to the first
                free column right of the target, level with its first data row
                (or its header row when a header row is written)
            monitor: Optional progress/cancellation monitor
            write: Write the result block through the provider

        Returns:
            MatchOutcome describing what happened
        """
        states = [MatchState.START]
        logger.info(f"Starting smart match for '{target_id}'")

        target = self.provider.read_table(target_id)
        has_header = detect_header(target, self.settings)

        try:
            candidates = self.detector.detect(target, has_header)
        except NoDataRows as e:
            logger.warning(f"⚠️  {e}")
            return MatchOutcome(status=MatchStatus.NO_DATA_ROWS, target_id=target_id,
                                message=str(e), states=tuple(states))

        states.extend([MatchState.PROFILED, MatchState.KEY_DETECTED])
        key = self.detector.select_key(candidates)

        if key is None:
            states.append(MatchState.NO_KEY_FOUND)
            message = (f"No column in '{target_id}' is a viable join key "
                       f"(best: '{candidates[0].display_name}', score {candidates[0].score:.3f})")
            logger.warning(f"⚠️  {message}")
            return MatchOutcome(status=MatchStatus.NO_KEY_FOUND, target_id=target_id, message=message,
                                key_candidates=tuple(candidates), states=tuple(states))

        logger.info(f"Using '{key.display_name}' as join key ({key.rationale})")

        refs = self.provider.list_candidate_tables(excluding_id=target_id)
        tables = []
        for ref in refs:
            try:
                tables.append((ref, self.provider.read_table(ref.table_id)))
            except TableProviderError as e:
                logger.warning(f"⚠️  Skipping table '{ref.label}' while scanning: {e}")
        scan = self.scanner.scan(key, tables, exclude_id=target_id)
        states.append(MatchState.SOURCES_SCANNED)

        if scan.is_empty:
            states.append(MatchState.NO_SOURCE_FOUND)
            message = f"No table matches key column '{key.display_name}' of '{target_id}'"
            return MatchOutcome(status=MatchStatus.NO_SOURCE_FOUND, target_id=target_id, message=message,
                                key=key, key_candidates=tuple(candidates), scan=scan, states=tuple(states))

        if self._is_ambiguous(scan):
            states.append(MatchState.AMBIGUOUS)
            message = (f"Sources '{scan.top.source_ref.label}' ({scan.top.best_score:.3f}) and "
                       f"'{scan.runner_up.source_ref.label}' ({scan.runner_up.best_score:.3f}) "
                       f"are within {self.settings.ambiguity_margin}; choose one explicitly")
            logger.warning(f"⚠️  {message}")
            return MatchOutcome(status=MatchStatus.AMBIGUOUS_SOURCES, target_id=target_id, message=message,
                                key=key, key_candidates=tuple(candidates), scan=scan, states=tuple(states))

        states.append(MatchState.SOURCE_CHOSEN)
        source = scan.top
        source_key_column = source.best_match.source_column_index
        logger.info(f"Chose source '{source.source_ref.label}' column "
                    f"'{source.best_match.source_column_name or source_key_column + 1}' "
                    f"(score {source.best_score:.3f})")

        if return_columns is None:
            columns = self.suggest_return_columns(target, has_header, source.table,
                                                  source.has_header, source_key_column)
        else:
            columns = self._resolve_columns(return_columns, source.table, source.has_header)

        if not columns:
            message = f"Source '{source.source_ref.label}' has no columns that '{target_id}' lacks"
            logger.warning(f"⚠️  {message}")
            return MatchOutcome(status=MatchStatus.NO_RETURN_COLUMNS, target_id=target_id, message=message,
                                key=key, key_candidates=tuple(candidates), scan=scan,
                                source_ref=source.source_ref, source_key_column=source_key_column,
                                states=tuple(states))

        return self._index_join_write(
            target_id=target_id, target=target, target_has_header=has_header,
            target_key_column=key.column_index, source_ref=source.source_ref,
            source=source.table, source_has_header=source.has_header,
            source_key_column=source_key_column, return_columns=columns, origin=origin,
            monitor=monitor, write=write, states=states,
            extra={'key': key, 'key_candidates': tuple(candidates), 'scan': scan},
        )

    def wizard_match(self, target_id: str, target_key_column: int, source_id: str,
                     source_key_column: int, return_columns, origin: tuple = None,
                     target_has_header: Optional[bool] = None, source_has_header: Optional[bool] = None,
                     monitor: ProgressMonitor = None, write: bool = True) -> MatchOutcome:
        """
        Join with explicit column choices, skipping detection and scanning.

        Args:
            target_id: Table to enrich
            target_key_column: Key column index in the target
            source_id: Table to pull values from
            source_key_column: Key column index in the source
            return_columns: Source columns to copy (indices or header names)
            origin: (row, col) for the result block
            target_has_header: Target header flag; None applies the heuristic
            source_has_header: Source header flag; None applies the heuristic
            monitor: Optional progress/cancellation monitor
            write: Write the result block through the provider

        Returns:
            MatchOutcome with status MATCHED or CANCELLED

        Raises:
            ColumnIndexOutOfRange: If any column choice does not exist
            BuildFailed: If the source table has no rows
        """
        states = [MatchState.START]
        logger.info(f"Starting wizard match '{target_id}' <- '{source_id}'")

        target = self.provider.read_table(target_id)
        source = self.provider.read_table(source_id)

        if not target.has_column(target_key_column):
            raise ColumnIndexOutOfRange(target_key_column, target.column_count, target.name or target_id)

        if target_has_header is None:
            target_has_header = detect_header(target, self.settings)
        if source_has_header is None:
            source_has_header = detect_header(source, self.settings)

        columns = self._resolve_columns(return_columns, source, source_has_header)

        return self._index_join_write(
            target_id=target_id, target=target, target_has_header=target_has_header,
            target_key_column=target_key_column, source_ref=self.provider.get_ref(source_id),
            source=source, source_has_header=source_has_header, source_key_column=source_key_column,
            return_columns=columns, origin=origin, monitor=monitor, write=write, states=states,
            extra={},
        )

    def batch_vlookup(self, lookup_id: str, table_array_id: str, col_index: int, exact_match: bool = True,
                      lookup_has_header: bool = False, table_has_header: bool = False,
                      monitor: ProgressMonitor = None, write: bool = True) -> BatchLookupResult:
        """
        Classic VLOOKUP over a whole column.

        Looks up column 0 of the lookup table in column 0 of the table array
        and returns the value at the 1-based col_index (clamped to the last
        column). Missing keys give '#N/A' with exact_match, '' otherwise.
        Results are written right of the lookup table's used range.

        Raises:
            ColumnIndexOutOfRange: If col_index is below 1
            JoinCancelled: If the monitor cancels the lookup
        """
        lookup = self.provider.read_table(lookup_id)
        table_array = self.provider.read_table(table_array_id)

        if not isinstance(col_index, int) or isinstance(col_index, bool) or col_index < 1:
            raise ColumnIndexOutOfRange(col_index, table_array.column_count, table_array.name or table_array_id)

        return_column = min(col_index, table_array.column_count) - 1
        index = self.index_builder.build(table_array, 0, table_has_header, self.provider.get_ref(table_array_id))
        fill_value = NOT_FOUND_EXACT if exact_match else NOT_FOUND_APPROXIMATE

        result = self.executor.execute(lookup, 0, index, [return_column], has_header=lookup_has_header,
                                       monitor=monitor, fill_value=fill_value)
        report = result.report

        if write and result.values:
            self.provider.write_region(lookup_id, lookup.data_start(lookup_has_header),
                                       lookup.column_count, result.values)

        logger.info(f"Batch VLOOKUP complete: {report.target_row_count} rows, "
                    f"{report.matched_count} matched")
        return BatchLookupResult(
            values=result.values,
            total_rows=report.target_row_count,
            matched_rows=report.matched_count,
            not_found_rows=report.unmatched_count,
            elapsed_seconds=report.elapsed_seconds,
            report=report,
        )

    # =========================================================================
    # HELPERS
    # =========================================================================

    def suggest_return_columns(self, target: Table, target_has_header: bool, source: Table,
                               source_has_header: bool, source_key_column: int) -> list:
        """Source columns, minus the key, whose header the target does not already have."""
        target_headers = {
            name.casefold() for name in target.header_names(target_has_header) if name
        }

        columns = []
        for col in range(source.column_count):
            if col == source_key_column:
                continue
            name = source.header_name(col, source_has_header)
            if name and name.casefold() in target_headers:
                continue
            columns.append(col)
        return columns

    def _is_ambiguous(self, scan: ScanResult) -> bool:
        if scan.runner_up is None:
            return False
        gap = scan.top.best_score - scan.runner_up.best_score
        return gap <= self.settings.ambiguity_margin + SCORE_EPSILON

    @staticmethod
    def _resolve_columns(columns, table: Table, has_header: bool) -> list:
        """Accept column indices or header names; return indices."""
        if columns is None or isinstance(columns, (str, bytes)):
            columns = [columns] if isinstance(columns, str) else []

        headers = {}
        for col, name in enumerate(table.header_names(has_header)):
            if name:
                headers.setdefault(name.casefold(), col)

        resolved = []
        for column in columns:
            if isinstance(column, str):
                key = column.strip().casefold()
                if key not in headers:
                    raise MatcherError(
                        f"Column '{column}' not found in '{table.name}'. "
                        f"Available columns: {[n for n in table.header_names(has_header) if n]}"
                    )
                resolved.append(headers[key])
            elif isinstance(column, int) and not isinstance(column, bool) and table.has_column(column):
                resolved.append(column)
            else:
                raise ColumnIndexOutOfRange(column, table.column_count, table.name)
        return resolved

    def _index_join_write(self, target_id: str, target: Table, target_has_header: bool,
                          target_key_column: int, source_ref: TableRef, source: Table,
                          source_has_header: bool, source_key_column: int, return_columns: list,
                          origin: Optional[tuple], monitor: Optional[ProgressMonitor], write: bool,
                          states: list, extra: dict) -> MatchOutcome:
        """Shared tail of smart and wizard matching: Indexed -> Joined -> Reported."""
        index = self.index_builder.build(source, source_key_column, source_has_header, source_ref)
        states.append(MatchState.INDEXED)

        try:
            result = self.executor.execute(target, target_key_column, index, return_columns,
                                           has_header=target_has_header, monitor=monitor)
        except JoinCancelled as e:
            states.append(MatchState.CANCELLED)
            logger.warning(f"⚠️  Match into '{target_id}' cancelled; nothing written")
            return MatchOutcome(status=MatchStatus.CANCELLED, target_id=target_id, message=str(e),
                                source_ref=source_ref, source_key_column=source_key_column,
                                return_columns=tuple(return_columns), states=tuple(states), **extra)

        states.append(MatchState.JOINED)

        block = self._build_block(result.values, source, source_has_header, return_columns,
                                  target_has_header)
        if origin is None:
            # Header row (when written) goes in row 0, data starts on the first data row
            top_row = target.data_start(target_has_header) - (len(block) - len(result.values))
            origin = (top_row, target.column_count)

        if write and block:
            self.provider.write_region(target_id, origin[0], origin[1], block)

        states.append(MatchState.REPORTED)
        report = result.report
        message = (f"Matched {report.matched_count} of {report.target_row_count} rows "
                   f"from '{source_ref.label}'")
        logger.info(f"✅ {message}")

        return MatchOutcome(status=MatchStatus.MATCHED, target_id=target_id, message=message,
                            report=report, values=result.values, source_ref=source_ref,
                            source_key_column=source_key_column, return_columns=tuple(return_columns),
                            origin=tuple(origin), states=tuple(states), **extra)

    def _build_block(self, values: list, source: Table, source_has_header: bool,
                     return_columns: list, target_has_header: bool) -> list:
        """Result block to write: optional header row, then one row per target data row."""
        if not (target_has_header and self.settings.write_headers):
            return [list(row) for row in values]

        header_row = [
            source.header_name(col, source_has_header) or f"Column {col + 1}"
            for col in return_columns
        ]
        return [header_row] + [list(row) for row in values]


# End of file #
