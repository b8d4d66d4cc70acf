"""
Workbook writer for match results.

excel_smart_matcher/writers/workbook_writer.py

Writes one rectangular block of values into a worksheet and saves the
workbook, optionally keeping a numbered backup of the previous file.
"""

import shutil
import logging

import openpyxl

from openpyxl.utils import get_column_letter

from pathlib import Path


logger = logging.getLogger(__name__)


class WorkbookWriterError(Exception):
    """Raised when writing or saving a workbook fails."""
    pass


class WorkbookWriter:
    """Block writes and saves for openpyxl workbooks."""

    def __init__(self):
        """Initialize the workbook writer."""
        self.last_output_path = None

    def write_region(self, worksheet, top_row: int, left_col: int, values) -> int:
        """
        Write a 2-D block of values into a worksheet.

        Args:
            worksheet: openpyxl worksheet
            top_row: 0-based row of the block's top-left cell
            left_col: 0-based column of the block's top-left cell
            values: Rows of values, written verbatim

        Returns:
            Number of cells written

        Raises:
            WorkbookWriterError: If the origin is invalid or a value is rejected
        """
        # Guard clauses
        if top_row < 0 or left_col < 0:
            raise WorkbookWriterError(f"Region origin must be non-negative, got ({top_row}, {left_col})")

        if values is None:
            raise WorkbookWriterError("Values to write cannot be None")

        written = 0
        try:
            for row_offset, row in enumerate(values):
                for col_offset, value in enumerate(row):
                    worksheet.cell(row=top_row + row_offset + 1,
                                   column=left_col + col_offset + 1,
                                   value=value)
                    written += 1
        except (ValueError, TypeError) as e:
            raise WorkbookWriterError(f"Cannot write value into sheet '{worksheet.title}': {e}") from e

        logger.debug(f"Wrote {written} cells into '{worksheet.title}' at "
                     f"{get_column_letter(left_col + 1)}{top_row + 1}")
        return written

    def save_workbook(self, workbook: openpyxl.Workbook, output_path, create_backup: bool = False) -> Path:
        """
        Save a workbook to disk.

        Args:
            workbook: Workbook to save
            output_path: Destination path (.xlsx added when missing)
            create_backup: Copy an existing file aside before overwriting it

        Returns:
            Path written

        Raises:
            WorkbookWriterError: If saving fails
        """
        if not output_path:
            raise WorkbookWriterError("Output path cannot be empty")

        output_path = Path(output_path)
        if not output_path.suffix:
            output_path = output_path.with_suffix('.xlsx')

        output_path.parent.mkdir(parents=True, exist_ok=True)

        if create_backup and output_path.exists():
            self.create_backup(output_path)

        try:
            workbook.save(output_path)
        except PermissionError as e:
            raise WorkbookWriterError(
                f"Permission denied writing to: {output_path}. "
                "File may be open in another application."
            ) from e
        except Exception as e:
            raise WorkbookWriterError(f"Error saving workbook: {e}") from e

        self.last_output_path = output_path
        logger.info(f"Saved workbook: {output_path}")
        return output_path

    def create_backup(self, file_path) -> Path:
        """
        Create a backup copy of a workbook file.

        Args:
            file_path: Path to file to backup

        Returns:
            Path to the backup file

        Raises:
            WorkbookWriterError: If backup creation fails
        """
        if not file_path:
            raise WorkbookWriterError("File path cannot be empty")

        file_path = Path(file_path)

        if not file_path.exists():
            raise WorkbookWriterError(f"File not found: {file_path}")

        backup_path = file_path.with_suffix(f'{file_path.suffix}.backup')

        # If backup already exists, add a number
        counter = 1
        while backup_path.exists():
            backup_path = file_path.with_suffix(f'{file_path.suffix}.backup{counter}')
            counter += 1

        try:
            shutil.copy2(file_path, backup_path)
        except OSError as e:
            raise WorkbookWriterError(f"Error creating backup: {e}") from e

        logger.info(f"Created backup: {backup_path}")
        return backup_path


# End of file #
