"""
Tests for reading, matching and writing real Excel workbooks.

tests/test_workbook_provider.py
"""

import openpyxl
import pytest

from excel_smart_matcher.core.table_provider import TableProviderError
from excel_smart_matcher.core.workbook_provider import WorkbookTableProvider
from excel_smart_matcher.readers.workbook_reader import WorkbookReader, WorkbookReaderError
from excel_smart_matcher.writers.workbook_writer import WorkbookWriter, WorkbookWriterError
from excel_smart_matcher.matcher.orchestrator import MatchOrchestrator, MatchStatus


def create_test_workbook(path):
    """Create a workbook with an Orders sheet, a Staff sheet and one formula cell."""
    wb = openpyxl.Workbook()

    orders = wb.active
    orders.title = 'Orders'
    for row in [['ID', 'Qty'], ['E001', 3], ['E002', 3], ['E003', 3]]:
        orders.append(row)
    orders['D1'] = '=1+1'

    staff = wb.create_sheet('Staff')
    for row in [['ID', 'Dept'], ['E001', 'Tech'], ['E002', 'Sales']]:
        staff.append(row)

    wb.save(path)
    return path


def test_read_sheet_trims_used_range(tmp_path):
    path = create_test_workbook(tmp_path / 'book.xlsx')

    table = WorkbookReader.read_file(path, 'Orders')

    # D1 holds a formula with no cached value, so it reads as blank
    assert table.name == 'Orders'
    assert table.row_count == 4
    assert table.column_count == 2
    assert table.cell(1, 1).value == 3


def test_get_worksheet_by_index_and_name(tmp_path):
    wb = openpyxl.load_workbook(create_test_workbook(tmp_path / 'book.xlsx'))

    assert WorkbookReader.get_worksheet(wb, 2).title == 'Staff'
    assert WorkbookReader.get_worksheet(wb, 'Orders').title == 'Orders'
    assert WorkbookReader.get_worksheet(wb).title == 'Orders'

    with pytest.raises(WorkbookReaderError):
        WorkbookReader.get_worksheet(wb, 3)

    with pytest.raises(WorkbookReaderError):
        WorkbookReader.get_worksheet(wb, 'Missing')


def test_load_workbook_errors(tmp_path):
    with pytest.raises(WorkbookReaderError):
        WorkbookReader.load_workbook(tmp_path / 'missing.xlsx')

    text_file = tmp_path / 'notes.txt'
    text_file.write_text('hello', encoding='utf-8')
    with pytest.raises(WorkbookReaderError):
        WorkbookReader.load_workbook(text_file)

    with pytest.raises(TableProviderError):
        WorkbookTableProvider.open(tmp_path / 'missing.xlsx')


def test_smart_match_on_workbook(tmp_path):
    """Test a full smart match that saves and keeps untouched formulas."""
    path = create_test_workbook(tmp_path / 'book.xlsx')
    output = tmp_path / 'out' / 'enriched.xlsx'

    provider = WorkbookTableProvider.open(path)
    try:
        assert [ref.table_id for ref in provider.list_candidate_tables('Orders')] == ['Staff']

        outcome = MatchOrchestrator(provider).smart_match('Orders')

        assert outcome.status is MatchStatus.MATCHED
        assert outcome.source_ref.table_id == 'Staff'
        assert outcome.values == [['Tech'], ['Sales'], [None]]
        assert outcome.report.unmatched_count == 1

        # Reads see the block right away
        assert provider.read_table('Orders').cell(1, 2).value == 'Tech'

        saved = provider.save(output)
    finally:
        provider.close()

    assert saved == output
    wb = openpyxl.load_workbook(output)
    ws = wb['Orders']
    assert [ws.cell(row=r, column=3).value for r in range(1, 5)] == ['Dept', 'Tech', 'Sales', None]
    assert ws['D1'].value == '=1+1'
    wb.close()


def test_chart_sheets_are_not_candidates(tmp_path):
    """Test that a chart sheet neither lists as a candidate nor breaks a smart match."""
    from openpyxl.chart import BarChart, Reference

    wb = openpyxl.Workbook()
    target = wb.active
    target.title = 'target'
    for row in [['ID', 'Name'], ['E001', ''], ['E002', '']]:
        target.append(row)
    depts = wb.create_sheet('depts')
    for row in [['ID', 'Dept'], ['E001', 'Tech'], ['E002', 'Sales']]:
        depts.append(row)

    chart = BarChart()
    chart.add_data(Reference(depts, min_col=2, min_row=1, max_row=3), titles_from_data=True)
    wb.create_chartsheet('chart').add_chart(chart)
    path = tmp_path / 'charted.xlsx'
    wb.save(path)

    provider = WorkbookTableProvider.open(path)
    try:
        assert [ref.table_id for ref in provider.list_candidate_tables('target')] == ['depts']

        outcome = MatchOrchestrator(provider).smart_match('target', write=False)

        assert outcome.status is MatchStatus.MATCHED
        assert outcome.values == [['Tech'], ['Sales']]

        with pytest.raises(TableProviderError):
            provider.read_table('chart')
    finally:
        provider.close()

    loaded = openpyxl.load_workbook(path)
    with pytest.raises(WorkbookReaderError):
        WorkbookReader.get_worksheet(loaded, 'chart')
    loaded.close()


def test_save_requires_path():
    provider = WorkbookTableProvider(openpyxl.Workbook())

    with pytest.raises(TableProviderError):
        provider.save()

    with pytest.raises(TableProviderError):
        provider.read_table('Missing')

    with pytest.raises(TableProviderError):
        WorkbookTableProvider({'Sheet': []})


def test_writer_region_and_backups(tmp_path):
    writer = WorkbookWriter()
    wb = openpyxl.Workbook()
    ws = wb.active

    assert writer.write_region(ws, 1, 1, [['a', 'b'], ['c', 'd']]) == 4
    assert ws['B2'].value == 'a'
    assert ws['C3'].value == 'd'

    with pytest.raises(WorkbookWriterError):
        writer.write_region(ws, -1, 0, [['x']])

    target = tmp_path / 'result'
    saved = writer.save_workbook(wb, target)
    assert saved.suffix == '.xlsx'

    first = writer.save_workbook(wb, saved, create_backup=True)
    second = writer.save_workbook(wb, saved, create_backup=True)
    assert first == second == saved
    assert (tmp_path / 'result.xlsx.backup').exists()
    assert (tmp_path / 'result.xlsx.backup1').exists()


# End of file #
