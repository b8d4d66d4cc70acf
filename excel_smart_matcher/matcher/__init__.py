"""
Join key discovery and batch record matching.

This package contains the matching pipeline: column profiling, key column
detection, column similarity, source scanning, index building, joining and
the orchestrator that wires them together.
"""

from .errors import (
    MatcherError,
    ColumnIndexOutOfRange,
    NoDataRows,
    NoKeyFound,
    NoSourceFound,
    AmbiguousSources,
    BuildFailed,
    JoinCancelled,
)
from .progress import ProgressMonitor, CancellationToken
from .profiler import ColumnProfile, ColumnProfiler
from .key_detector import KeyColumnCandidate, KeyColumnDetector, detect_header
from .similarity import ColumnSimilarityScorer
from .scanner import ColumnMatch, SourceCandidate, ScanResult, SourceCandidateScanner
from .index_builder import MatchIndex, MatchIndexBuilder
from .join_executor import JoinExecutor, JoinReport, JoinResult
from .orchestrator import MatchOrchestrator, MatchOutcome, MatchStatus, MatchState, BatchLookupResult

__all__ = [
    'MatcherError',
    'ColumnIndexOutOfRange',
    'NoDataRows',
    'NoKeyFound',
    'NoSourceFound',
    'AmbiguousSources',
    'BuildFailed',
    'JoinCancelled',
    'ProgressMonitor',
    'CancellationToken',
    'ColumnProfile',
    'ColumnProfiler',
    'KeyColumnCandidate',
    'KeyColumnDetector',
    'detect_header',
    'ColumnSimilarityScorer',
    'ColumnMatch',
    'SourceCandidate',
    'ScanResult',
    'SourceCandidateScanner',
    'MatchIndex',
    'MatchIndexBuilder',
    'JoinExecutor',
    'JoinReport',
    'JoinResult',
    'MatchOrchestrator',
    'MatchOutcome',
    'MatchStatus',
    'MatchState',
    'BatchLookupResult',
]
