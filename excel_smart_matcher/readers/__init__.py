"""
Readers that materialize workbook sheets into tables.
"""
