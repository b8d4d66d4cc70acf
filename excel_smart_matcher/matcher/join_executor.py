"""
Batch equi-join execution.

excel_smart_matcher/matcher/join_executor.py

Looks up every target row's normalized key in a built MatchIndex and copies
the requested source columns into a pre-sized result block. Rows are split
into chunks that run on a thread pool; each chunk writes only its own rows,
so result order always mirrors target order and no locking is needed.

Source values are copied verbatim. A row whose key cannot be normalized is
counted as a coercion error and left unmatched; it never fails the join.
Cancellation is polled every few rows and discards the whole result.
"""

import os
import time
import logging

from typing import Any, Optional
from dataclasses import dataclass
from concurrent.futures import ThreadPoolExecutor, as_completed

from excel_smart_matcher.core.table import Table, TableRef
from excel_smart_matcher.config.settings_loader import MatchSettings, DEFAULT_SETTINGS
from excel_smart_matcher.matcher.errors import ColumnIndexOutOfRange, JoinCancelled, MatcherError
from excel_smart_matcher.matcher.normalize import KeyCoercionError, normalize_key
from excel_smart_matcher.matcher.progress import ProgressMonitor, NULL_MONITOR
from excel_smart_matcher.matcher.index_builder import MatchIndex
from excel_smart_matcher.matcher.key_detector import detect_header


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class JoinReport:
    """Counts and timing for one join."""

    source_ref: TableRef
    target_row_count: int
    matched_count: int
    unmatched_count: int
    duplicate_key_count: int
    skipped_key_count: int
    coercion_error_count: int
    elapsed_seconds: float
    return_columns: tuple = ()

    @property
    def match_rate(self) -> float:
        if self.target_row_count == 0:
            return 0.0
        return self.matched_count / self.target_row_count


@dataclass(frozen=True)
class JoinResult:
    """Result block shaped (target data rows, return columns) plus its report."""

    values: list
    report: JoinReport

    @property
    def shape(self) -> tuple:
        return (len(self.values), len(self.report.return_columns))


class JoinExecutor:
    """Runs the lookup/copy loop for one target table against one index."""

    def __init__(self, settings: MatchSettings = DEFAULT_SETTINGS):
        self.settings = settings

    def execute(self, target: Table, key_column: int, index: MatchIndex, return_columns,
                has_header: Optional[bool] = None, monitor: ProgressMonitor = None,
                fill_value: Any = None) -> JoinResult:
        """
        Enrich the target's data rows with columns from the indexed source.

        Args:
            target: Target table
            key_column: 0-based key column in the target
            index: Built index over the source table
            return_columns: Source column indices to copy, in output order
            has_header: Target header flag; None applies the header heuristic
            monitor: Optional progress/cancellation monitor
            fill_value: Value placed in unmatched rows

        Returns:
            JoinResult with the value block and a JoinReport

        Raises:
            ColumnIndexOutOfRange: If the key or a return column does not exist
            JoinCancelled: If the monitor requested cancellation before completion
        """
        if not target.has_column(key_column):
            raise ColumnIndexOutOfRange(key_column, target.column_count, target.name)

        return_columns = self._validate_return_columns(return_columns, index)
        monitor = monitor or NULL_MONITOR

        if has_header is None:
            has_header = detect_header(target, self.settings)

        started = time.perf_counter()
        rows = target.data_rows(has_header)
        total = len(rows)
        results = [None] * total

        chunk_size = self.settings.join_chunk_size
        chunks = [(start, min(start + chunk_size, total)) for start in range(0, total, chunk_size)]

        if monitor.is_cancelled():
            raise JoinCancelled("Join cancelled before it started")

        max_workers = self.settings.max_workers or os.cpu_count() or 1
        workers = min(max_workers, len(chunks))

        def run_chunk(bounds):
            return self._join_chunk(rows, bounds[0], bounds[1], key_column, index,
                                    return_columns, fill_value, results, monitor)

        matched = unmatched = coercion_errors = 0
        done = 0

        if workers <= 1:
            for bounds in chunks:
                chunk_matched, chunk_unmatched, chunk_errors = run_chunk(bounds)
                matched += chunk_matched
                unmatched += chunk_unmatched
                coercion_errors += chunk_errors
                done += bounds[1] - bounds[0]
                monitor.report_progress(done, total)
        else:
            logger.debug(f"Joining {total} rows in {len(chunks)} chunks on {workers} workers")
            with ThreadPoolExecutor(max_workers=workers) as executor:
                futures = {executor.submit(run_chunk, bounds): bounds for bounds in chunks}
                try:
                    for future in as_completed(futures):
                        chunk_matched, chunk_unmatched, chunk_errors = future.result()
                        matched += chunk_matched
                        unmatched += chunk_unmatched
                        coercion_errors += chunk_errors
                        bounds = futures[future]
                        done += bounds[1] - bounds[0]
                        monitor.report_progress(done, total)
                except JoinCancelled:
                    for future in futures:
                        future.cancel()
                    raise

        elapsed = time.perf_counter() - started
        report = JoinReport(
            source_ref=index.source_ref,
            target_row_count=total,
            matched_count=matched,
            unmatched_count=unmatched,
            duplicate_key_count=index.duplicate_key_count,
            skipped_key_count=index.skipped_key_count,
            coercion_error_count=coercion_errors,
            elapsed_seconds=elapsed,
            return_columns=tuple(return_columns),
        )
        self._log_results(report)
        return JoinResult(values=results, report=report)

    def _join_chunk(self, rows, start: int, stop: int, key_column: int, index: MatchIndex,
                    return_columns: list, fill_value: Any, results: list,
                    monitor: ProgressMonitor) -> tuple:
        """Process rows[start:stop], writing only results[start:stop]."""
        interval = self.settings.cancel_check_interval
        width = len(return_columns)
        matched = unmatched = coercion_errors = 0

        for position in range(start, stop):
            if (position - start) % interval == 0 and monitor.is_cancelled():
                raise JoinCancelled(f"Join cancelled at row {position + 1}")

            try:
                key = normalize_key(rows[position][key_column])
            except KeyCoercionError:
                coercion_errors += 1
                key = None

            source_row = index.lookup(key)
            if source_row is None:
                results[position] = [fill_value] * width
                unmatched += 1
            else:
                results[position] = [source_row[col].value for col in return_columns]
                matched += 1

        return matched, unmatched, coercion_errors

    @staticmethod
    def _validate_return_columns(return_columns, index: MatchIndex) -> list:
        if return_columns is None or isinstance(return_columns, (str, bytes)):
            raise MatcherError("return_columns must be a list of column indices")

        columns = list(return_columns)
        if not columns:
            raise MatcherError("return_columns must not be empty")

        for col in columns:
            if not isinstance(col, int) or isinstance(col, bool) or not 0 <= col < index.column_count:
                raise ColumnIndexOutOfRange(col, index.column_count, index.source_ref.label)

        return columns

    def _log_results(self, report: JoinReport) -> None:
        logger.info(
            f"📊 Join with '{report.source_ref.label}': {report.matched_count:,} matched, "
            f"{report.unmatched_count:,} unmatched of {report.target_row_count:,} rows "
            f"({report.match_rate * 100:.1f}%) in {report.elapsed_seconds:.3f}s"
        )

        if report.coercion_error_count:
            logger.warning(f"⚠️  {report.coercion_error_count} target key(s) could not be read")

        if report.target_row_count and report.match_rate < self.settings.low_match_rate_warning:
            logger.warning(f"⚠️  Low match rate: {report.match_rate * 100:.1f}% "
                           f"against '{report.source_ref.label}'")


# End of file #
