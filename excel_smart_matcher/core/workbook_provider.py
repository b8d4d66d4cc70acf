"""
Table provider backed by an Excel workbook.

excel_smart_matcher/core/workbook_provider.py

Each worksheet is one table, identified by its sheet name. Reads use the
cached cell values (formula results); writes go into the formula-preserving
workbook so saving never strips formulas from untouched cells.
"""

import logging

import openpyxl

from pathlib import Path

from excel_smart_matcher.core.table import Table, TableRef
from excel_smart_matcher.core.table_provider import TableProvider, TableProviderError
from excel_smart_matcher.readers.workbook_reader import WorkbookReader, WorkbookReaderError
from excel_smart_matcher.writers.workbook_writer import WorkbookWriter, WorkbookWriterError


logger = logging.getLogger(__name__)


class WorkbookTableProvider(TableProvider):
    """Serves worksheets of one workbook as tables."""

    def __init__(self, workbook: openpyxl.Workbook, values_workbook: openpyxl.Workbook = None,
                 file_path=None, header_flags: dict = None):
        """
        Initialize the provider.

        Args:
            workbook: Workbook that receives writes and is saved
            values_workbook: Optional data_only twin used for reads
            file_path: Where the workbook came from (default save target)
            header_flags: Optional {sheet_name: bool} header overrides
        """
        if not isinstance(workbook, openpyxl.Workbook):
            raise TableProviderError("WorkbookTableProvider requires an openpyxl Workbook")

        self.workbook = workbook
        self.values_workbook = values_workbook or workbook
        self.file_path = Path(file_path) if file_path else None
        self.header_flags = dict(header_flags or {})
        self.writer = WorkbookWriter()

    @classmethod
    def open(cls, file_path, header_flags: dict = None) -> 'WorkbookTableProvider':
        """
        Open a workbook file for matching.

        Raises:
            TableProviderError: If the workbook cannot be opened
        """
        try:
            workbook = WorkbookReader.load_workbook(file_path, data_only=False)
            values_workbook = WorkbookReader.load_workbook(file_path, data_only=True)
        except WorkbookReaderError as e:
            raise TableProviderError(str(e)) from e

        return cls(workbook, values_workbook, file_path=file_path, header_flags=header_flags)

    def read_table(self, table_id: str) -> Table:
        try:
            worksheet = WorkbookReader.get_worksheet(self.values_workbook, table_id)
        except WorkbookReaderError as e:
            raise TableProviderError(str(e)) from e

        return WorkbookReader.read_sheet(worksheet, self.header_flags.get(table_id))

    def write_region(self, target_id: str, top_row: int, left_col: int, values: list) -> None:
        try:
            books = [self.workbook]
            if self.values_workbook is not self.workbook:
                books.append(self.values_workbook)

            for book in books:
                worksheet = WorkbookReader.get_worksheet(book, target_id)
                self.writer.write_region(worksheet, top_row, left_col, values)
        except (WorkbookReaderError, WorkbookWriterError) as e:
            raise TableProviderError(f"Cannot write region into '{target_id}': {e}") from e

        logger.info(f"Wrote {len(values)} row(s) into sheet '{target_id}'")

    def list_candidate_tables(self, excluding_id: str = None) -> list:
        return [
            TableRef(table_id=worksheet.title, name=worksheet.title)
            for worksheet in self.values_workbook.worksheets
            if worksheet.title != excluding_id
        ]

    def save(self, output_path=None, create_backup: bool = False) -> Path:
        """
        Save the workbook, by default back to the file it was opened from.

        Raises:
            TableProviderError: If there is no target path or saving fails
        """
        output_path = output_path or self.file_path
        if output_path is None:
            raise TableProviderError("No output path given and workbook was not opened from a file")

        try:
            return self.writer.save_workbook(self.workbook, output_path, create_backup=create_backup)
        except WorkbookWriterError as e:
            raise TableProviderError(str(e)) from e

    def close(self) -> None:
        self.workbook.close()
        if self.values_workbook is not self.workbook:
            self.values_workbook.close()


# End of file #
