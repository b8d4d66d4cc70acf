"""Version information for excel_smart_matcher package."""

__version__ = '0.3.0'
__author__ = 'excel_smart_matcher contributors'
__email__ = 'maintainers@example.com'
__description__ = 'Smart VLOOKUP engine: automatic join-key discovery and batch record matching for spreadsheet tables'
