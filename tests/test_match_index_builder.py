"""
Tests for match index construction.

tests/test_match_index_builder.py
"""

import pytest

from excel_smart_matcher.core.table import Table, TableRef
from excel_smart_matcher.matcher.errors import BuildFailed, ColumnIndexOutOfRange
from excel_smart_matcher.matcher.index_builder import MatchIndexBuilder


def create_source_with_duplicates():
    """Source where E001 appears three times with different departments."""
    return Table.from_values([
        ['ID', 'Dept'],
        ['E001', 'Tech'],
        ['E001', 'Sales'],
        ['E001', 'Ops'],
        ['E002', 'HR'],
    ], name='depts')


def test_first_occurrence_wins():
    """Test that three repeats give two duplicates and keep the first row."""
    index = MatchIndexBuilder().build(create_source_with_duplicates(), 0)

    assert index.duplicate_key_count == 2
    assert len(index) == 2
    assert index.lookup('e001')[1].value == 'Tech'
    assert index.lookup('e002')[1].value == 'HR'
    assert index.source_row_count == 4
    assert index.has_header is True


def test_blank_keys_are_skipped():
    table = Table.from_values([
        ['ID', 'Dept'],
        ['', 'Tech'],
        [None, 'Sales'],
        ['E003', 'Ops'],
    ], has_header=True)

    index = MatchIndexBuilder().build(table, 0)

    assert index.skipped_key_count == 2
    assert index.duplicate_key_count == 0
    assert list(index.keys()) == ['e003']


def test_lookup_misses():
    index = MatchIndexBuilder().build(create_source_with_duplicates(), 0)

    assert index.lookup('e999') is None
    assert index.lookup(None) is None
    assert 'e001' in index
    assert 'E001' not in index


def test_numeric_keys_are_normalized():
    """Test that 1001 in the source is found by the '1001.0' text key."""
    table = Table.from_values([[1001, 'Acme'], [1002.0, 'Beta']], has_header=False)
    index = MatchIndexBuilder().build(table, 0, has_header=False)

    assert index.lookup('1001')[1].value == 'Acme'
    assert index.lookup('1002')[1].value == 'Beta'


def test_header_row_is_not_indexed():
    index = MatchIndexBuilder().build(create_source_with_duplicates(), 0, has_header=True)
    assert 'id' not in index

    index = MatchIndexBuilder().build(create_source_with_duplicates(), 0, has_header=False)
    assert 'id' in index


def test_source_ref_defaults_to_table_name():
    index = MatchIndexBuilder().build(create_source_with_duplicates(), 0)
    assert index.source_ref == TableRef('depts', 'depts')

    ref = TableRef('Sheet2', 'Departments')
    index = MatchIndexBuilder().build(create_source_with_duplicates(), 0, source_ref=ref)
    assert index.source_ref is ref


def test_index_is_read_only():
    index = MatchIndexBuilder().build(create_source_with_duplicates(), 0)

    with pytest.raises(AttributeError):
        index.duplicate_key_count = 0

    with pytest.raises(TypeError):
        index._entries['e999'] = ()


def test_build_failures():
    """Test malformed sources and bad key columns."""
    builder = MatchIndexBuilder()

    with pytest.raises(BuildFailed):
        builder.build(Table.from_values([]), 0)

    with pytest.raises(BuildFailed):
        builder.build([['ID'], ['E001']], 0)

    with pytest.raises(ColumnIndexOutOfRange):
        builder.build(create_source_with_duplicates(), 2)


def test_header_only_source_builds_empty_index():
    index = MatchIndexBuilder().build(Table.from_values([['ID', 'Dept']], has_header=True), 0)

    assert len(index) == 0
    assert index.source_row_count == 0


# End of file #
