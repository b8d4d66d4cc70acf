"""
Tests for the match orchestrator: smart match, wizard match and batch VLOOKUP.

tests/test_match_orchestrator.py
"""

import pytest

from excel_smart_matcher.core.table_provider import InMemoryTableProvider, TableProviderError
from excel_smart_matcher.config.settings_loader import DEFAULT_SETTINGS
from excel_smart_matcher.matcher.errors import (
    AmbiguousSources,
    ColumnIndexOutOfRange,
    MatcherError,
    NoSourceFound,
)
from excel_smart_matcher.matcher.progress import CancellationToken
from excel_smart_matcher.matcher.orchestrator import MatchOrchestrator, MatchState, MatchStatus


def create_target_rows():
    return [['ID', 'Name'], ['E001', ''], ['E002', '']]


def create_department_rows():
    return [['ID', 'Dept'], ['E001', 'Tech'], ['E002', 'Sales']]


def create_price_rows():
    return [['Qty', 'Price'], [1, 2.5], [2, 3.5]]


def create_provider(**tables):
    provider = InMemoryTableProvider()
    for table_id, rows in tables.items():
        provider.add_table(table_id, rows)
    return provider


def test_smart_match_enriches_target():
    """Test detection, scanning, joining and the written result block."""
    provider = create_provider(target=create_target_rows(), depts=create_department_rows(),
                               prices=create_price_rows())

    outcome = MatchOrchestrator(provider).smart_match('target')

    assert outcome.status is MatchStatus.MATCHED
    assert outcome.succeeded
    assert outcome.values == [['Tech'], ['Sales']]
    assert outcome.key.column_index == 0
    assert outcome.source_ref.table_id == 'depts'
    assert outcome.source_key_column == 0
    assert outcome.return_columns == (1,)
    assert outcome.origin == (0, 2)
    assert outcome.report.matched_count == 2
    assert outcome.report.unmatched_count == 0
    assert outcome.states == (
        MatchState.START, MatchState.PROFILED, MatchState.KEY_DETECTED,
        MatchState.SOURCES_SCANNED, MatchState.SOURCE_CHOSEN, MatchState.INDEXED,
        MatchState.JOINED, MatchState.REPORTED,
    )

    assert provider.write_log == [('target', 0, 2, 3, 1)]
    written = provider.read_table('target').values()
    assert [row[2] for row in written] == ['Dept', 'Tech', 'Sales']


def test_smart_match_without_header_row_in_output():
    settings = DEFAULT_SETTINGS.with_overrides(write_headers=False)
    provider = create_provider(target=create_target_rows(), depts=create_department_rows())

    outcome = MatchOrchestrator(provider, settings).smart_match('target', origin=(1, 1))

    assert outcome.succeeded
    assert provider.write_log == [('target', 1, 1, 2, 1)]
    assert [row[1] for row in provider.read_table('target').values()] == ['Name', 'Tech', 'Sales']


def test_default_origin_without_header_row_starts_at_data():
    settings = DEFAULT_SETTINGS.with_overrides(write_headers=False)
    provider = create_provider(target=create_target_rows(), depts=create_department_rows())

    outcome = MatchOrchestrator(provider, settings).smart_match('target')

    assert outcome.origin == (1, 2)
    assert provider.write_log == [('target', 1, 2, 2, 1)]
    assert provider.read_table('target').cell(0, 2).is_null


def test_smart_match_with_named_return_columns():
    provider = create_provider(
        target=create_target_rows(),
        staff=[['ID', 'Dept', 'Grade'], ['E001', 'Tech', 'A'], ['E002', 'Sales', 'B']],
    )

    outcome = MatchOrchestrator(provider).smart_match('target', return_columns=['grade', 'Dept'], write=False)

    assert outcome.return_columns == (2, 1)
    assert outcome.values == [['A', 'Tech'], ['B', 'Sales']]
    assert provider.write_log == []


def test_no_source_found():
    provider = create_provider(target=create_target_rows(), prices=create_price_rows())

    outcome = MatchOrchestrator(provider).smart_match('target')

    assert outcome.status is MatchStatus.NO_SOURCE_FOUND
    assert outcome.scan.is_empty
    assert outcome.states[-1] is MatchState.NO_SOURCE_FOUND
    assert provider.write_log == []

    with pytest.raises(NoSourceFound):
        outcome.raise_for_status()


def test_no_key_found():
    provider = InMemoryTableProvider()
    provider.add_table('target', [['Status']] + [['ok']] * 5, has_header=True)
    provider.add_table('depts', create_department_rows())

    outcome = MatchOrchestrator(provider).smart_match('target')

    assert outcome.status is MatchStatus.NO_KEY_FOUND
    assert outcome.key is None
    assert len(outcome.key_candidates) == 1
    assert provider.write_log == []


def test_no_data_rows():
    provider = InMemoryTableProvider()
    provider.add_table('target', [['ID', 'Name']], has_header=True)

    outcome = MatchOrchestrator(provider).smart_match('target')

    assert outcome.status is MatchStatus.NO_DATA_ROWS
    assert not outcome.succeeded


class BrokenSiblingProvider(InMemoryTableProvider):
    """In-memory provider whose 'broken' table cannot be read."""

    def read_table(self, table_id):
        if table_id == 'broken':
            raise TableProviderError("Table 'broken' could not be read")
        return super().read_table(table_id)


def test_unreadable_sibling_is_skipped():
    provider = BrokenSiblingProvider()
    provider.add_table('target', create_target_rows())
    provider.add_table('broken', create_department_rows())
    provider.add_table('depts', create_department_rows())

    outcome = MatchOrchestrator(provider).smart_match('target', write=False)

    assert outcome.status is MatchStatus.MATCHED
    assert outcome.source_ref.table_id == 'depts'
    assert len(outcome.scan) == 1
    assert outcome.values == [['Tech'], ['Sales']]


def test_ambiguous_sources_are_not_joined():
    """Test that two equally good sources stop the match without writing."""
    provider = create_provider(target=create_target_rows(), depts_a=create_department_rows(),
                               depts_b=create_department_rows())

    outcome = MatchOrchestrator(provider).smart_match('target')

    assert outcome.status is MatchStatus.AMBIGUOUS_SOURCES
    assert len(outcome.scan) == 2
    assert outcome.states[-1] is MatchState.AMBIGUOUS
    assert provider.write_log == []

    with pytest.raises(AmbiguousSources) as excinfo:
        outcome.raise_for_status()
    assert len(excinfo.value.candidates) == 2


def test_clear_winner_is_not_ambiguous():
    provider = create_provider(
        target=create_target_rows(),
        depts=create_department_rows(),
        partial=[['ID', 'Dept'], ['E001', 'Tech'], ['E777', 'Ops']],
    )

    outcome = MatchOrchestrator(provider).smart_match('target', write=False)

    assert outcome.status is MatchStatus.MATCHED
    assert outcome.source_ref.table_id == 'depts'


def test_no_return_columns():
    """Test that a source with nothing new to copy is reported, not joined."""
    provider = create_provider(target=[['ID', 'Dept'], ['E001', ''], ['E002', '']],
                               depts=create_department_rows())

    outcome = MatchOrchestrator(provider).smart_match('target')

    assert outcome.status is MatchStatus.NO_RETURN_COLUMNS
    assert outcome.source_ref.table_id == 'depts'
    assert provider.write_log == []

    with pytest.raises(MatcherError):
        outcome.raise_for_status()


def test_wizard_match_with_explicit_columns():
    provider = create_provider(
        orders=[['Code', 'Qty'], ['A1', 3], ['B2', 4]],
        catalog=[['Code', 'Desc', 'Price'], ['B2', 'Bolt', 0.5], ['A1', 'Anchor', 1.25]],
    )

    outcome = MatchOrchestrator(provider).wizard_match('orders', 0, 'catalog', 0, ['Desc', 2], origin=(0, 5))

    assert outcome.succeeded
    assert outcome.values == [['Anchor', 1.25], ['Bolt', 0.5]]
    assert outcome.states == (MatchState.START, MatchState.INDEXED, MatchState.JOINED, MatchState.REPORTED)
    assert provider.write_log == [('orders', 0, 5, 3, 2)]
    assert provider.read_table('orders').values()[0][5:] == ['Desc', 'Price']


def test_wizard_match_bad_columns_raise():
    provider = create_provider(target=create_target_rows(), depts=create_department_rows())
    orchestrator = MatchOrchestrator(provider)

    with pytest.raises(ColumnIndexOutOfRange):
        orchestrator.wizard_match('target', 7, 'depts', 0, [1])

    with pytest.raises(ColumnIndexOutOfRange):
        orchestrator.wizard_match('target', 0, 'depts', 9, [1])

    with pytest.raises(ColumnIndexOutOfRange):
        orchestrator.wizard_match('target', 0, 'depts', 0, [4])

    with pytest.raises(MatcherError):
        orchestrator.wizard_match('target', 0, 'depts', 0, ['Salary'])

    assert provider.write_log == []


def test_cancelled_match_writes_nothing():
    provider = create_provider(target=create_target_rows(), depts=create_department_rows())
    token = CancellationToken()
    token.cancel()

    outcome = MatchOrchestrator(provider).wizard_match('target', 0, 'depts', 0, [1], monitor=token)

    assert outcome.status is MatchStatus.CANCELLED
    assert outcome.states[-1] is MatchState.CANCELLED
    assert outcome.values is None
    assert provider.write_log == []
    assert provider.read_table('target').column_count == 2


def test_batch_vlookup():
    """Test classic VLOOKUP with #N/A for missing keys."""
    provider = create_provider(
        orders=[['E001'], ['E999'], ['E002']],
        staff=[['E001', 'Tech', 'Alice'], ['E002', 'Sales', 'Bob']],
    )

    result = MatchOrchestrator(provider).batch_vlookup('orders', 'staff', 2)

    assert result.values == [['Tech'], ['#N/A'], ['Sales']]
    assert result.total_rows == 3
    assert result.matched_rows == 2
    assert result.not_found_rows == 1
    assert provider.write_log == [('orders', 0, 1, 3, 1)]


def test_batch_vlookup_options():
    provider = create_provider(
        orders=[['E001'], ['E999']],
        staff=[['E001', 'Tech', 'Alice']],
    )
    orchestrator = MatchOrchestrator(provider)

    clamped = orchestrator.batch_vlookup('orders', 'staff', 9, write=False)
    assert clamped.values == [['Alice'], ['#N/A']]

    approximate = orchestrator.batch_vlookup('orders', 'staff', 2, exact_match=False, write=False)
    assert approximate.values == [['Tech'], ['']]

    with pytest.raises(ColumnIndexOutOfRange):
        orchestrator.batch_vlookup('orders', 'staff', 0)

    assert provider.write_log == []


def test_batch_vlookup_with_header_rows():
    provider = create_provider(
        orders=[['Employee'], ['E002']],
        staff=[['ID', 'Dept'], ['E002', 'Sales']],
    )

    result = MatchOrchestrator(provider).batch_vlookup('orders', 'staff', 2, lookup_has_header=True,
                                                       table_has_header=True)

    assert result.values == [['Sales']]
    assert provider.write_log == [('orders', 1, 1, 1, 1)]


def test_suggest_return_columns_skips_existing_headers():
    provider = create_provider(
        target=[['ID', 'dept'], ['E001', '']],
        staff=[['ID', 'Dept', 'Grade', None], ['E001', 'Tech', 'A', 'x']],
    )
    orchestrator = MatchOrchestrator(provider)

    columns = orchestrator.suggest_return_columns(provider.read_table('target'), True,
                                                  provider.read_table('staff'), True, 0)

    assert columns == [2, 3]


def test_orchestrator_requires_provider():
    with pytest.raises(MatcherError):
        MatchOrchestrator({'target': []})


def test_unknown_target_raises_provider_error():
    provider = create_provider(depts=create_department_rows())

    with pytest.raises(TableProviderError):
        MatchOrchestrator(provider).smart_match('missing')


# End of file #
