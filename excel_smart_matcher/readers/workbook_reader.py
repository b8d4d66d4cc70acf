"""
Workbook reader that materializes worksheets into Table snapshots.

excel_smart_matcher/readers/workbook_reader.py

Uses openpyxl directly so cell values arrive as Excel stored them (numbers
stay numbers, dates stay datetimes, text IDs keep leading zeros) instead of
going through pandas type inference.
"""

import logging

import openpyxl

from pathlib import Path

from excel_smart_matcher.core.table import Table


logger = logging.getLogger(__name__)

EXCEL_EXTENSIONS = {'.xlsx', '.xlsm', '.xltx', '.xltm'}


class WorkbookReaderError(Exception):
    """Raised when a workbook or worksheet cannot be read."""
    pass


class WorkbookReader:
    """
    Reads openpyxl worksheets into tables.

    Only the used range counts: trailing blank rows and columns are trimmed
    so stray formatting far below the data does not create empty rows.
    """

    @staticmethod
    def load_workbook(file_path, data_only: bool = True) -> openpyxl.Workbook:
        """
        Open an Excel workbook.

        Args:
            file_path: Path to the .xlsx/.xlsm file
            data_only: Read cached formula results instead of formula text

        Returns:
            openpyxl Workbook

        Raises:
            WorkbookReaderError: If the file is missing or unreadable
        """
        # Guard clause
        if not file_path:
            raise WorkbookReaderError("File path cannot be empty")

        file_path = Path(file_path)

        if not file_path.exists():
            raise WorkbookReaderError(f"Excel file not found: {file_path}")

        if file_path.suffix.lower() not in EXCEL_EXTENSIONS:
            raise WorkbookReaderError(
                f"Not a supported Excel file: {file_path}. "
                f"Expected one of: {', '.join(sorted(EXCEL_EXTENSIONS))}"
            )

        try:
            workbook = openpyxl.load_workbook(file_path, data_only=data_only)
        except PermissionError as e:
            raise WorkbookReaderError(f"Permission denied reading file: {file_path}") from e
        except Exception as e:
            raise WorkbookReaderError(f"Failed to open workbook {file_path}: {e}") from e

        logger.info(f"Opened workbook '{file_path}' with {len(workbook.sheetnames)} sheets")
        return workbook

    @staticmethod
    def get_worksheet(workbook: openpyxl.Workbook, sheet_name=None):
        """
        Find a worksheet by name or 1-based index (like the Excel UI).

        Args:
            workbook: Open workbook
            sheet_name: Sheet name, 1-based index, or None for the active sheet

        Raises:
            WorkbookReaderError: If the sheet does not exist
        """
        if sheet_name is None:
            return workbook.active

        # Chart sheets have no cells, so only worksheets count
        worksheet_names = [ws.title for ws in workbook.worksheets]

        if isinstance(sheet_name, int):
            if sheet_name < 1 or sheet_name > len(worksheet_names):
                raise WorkbookReaderError(
                    f"Sheet index {sheet_name} out of range. "
                    f"Available sheets (1-{len(worksheet_names)}): {worksheet_names}"
                )
            return workbook.worksheets[sheet_name - 1]

        if sheet_name in workbook.sheetnames and sheet_name not in worksheet_names:
            raise WorkbookReaderError(f"Sheet '{sheet_name}' is a chart sheet, not a worksheet")

        if sheet_name not in worksheet_names:
            raise WorkbookReaderError(
                f"Sheet '{sheet_name}' not found. Available sheets: {worksheet_names}"
            )
        return workbook[sheet_name]

    @staticmethod
    def read_sheet(worksheet, has_header: bool = None) -> Table:
        """
        Materialize a worksheet's used range into a Table.

        Args:
            worksheet: openpyxl worksheet
            has_header: Header flag stored on the table (None = detect later)

        Returns:
            Table named after the sheet
        """
        rows = [list(row) for row in worksheet.iter_rows(values_only=True)]

        last_row = 0
        last_col = 0
        for row_number, row in enumerate(rows, start=1):
            for col_number, value in enumerate(row, start=1):
                if value is not None and str(value).strip():
                    last_row = max(last_row, row_number)
                    last_col = max(last_col, col_number)

        trimmed = [row[:last_col] for row in rows[:last_row]]
        table = Table(trimmed, name=worksheet.title, has_header=has_header)

        logger.debug(f"Read sheet '{worksheet.title}': {table.row_count} rows, {table.column_count} columns")
        return table

    @classmethod
    def read_file(cls, file_path, sheet_name=None, has_header: bool = None) -> Table:
        """Open a workbook and read one sheet in a single call."""
        workbook = cls.load_workbook(file_path)
        try:
            return cls.read_sheet(cls.get_worksheet(workbook, sheet_name), has_header)
        finally:
            workbook.close()


# End of file #
