"""
excel_smart_matcher: smart VLOOKUP engine for spreadsheet tables.
"""

from ._version import __version__, __author__, __email__, __description__

from excel_smart_matcher.core.table import Cell, CellKind, Table, TableRef
from excel_smart_matcher.core.table_provider import TableProvider, InMemoryTableProvider
from excel_smart_matcher.config.settings_loader import MatchSettings, load_match_settings
from excel_smart_matcher.matcher.orchestrator import MatchOrchestrator, MatchOutcome, MatchStatus


__all__ = [
    '__version__',
    '__author__',
    '__email__',
    '__description__',
    'Cell',
    'CellKind',
    'Table',
    'TableRef',
    'TableProvider',
    'InMemoryTableProvider',
    'MatchSettings',
    'load_match_settings',
    'MatchOrchestrator',
    'MatchOutcome',
    'MatchStatus',
]
