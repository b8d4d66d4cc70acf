"""
Error taxonomy for the smart matcher.

ColumnIndexOutOfRange and BuildFailed signal caller misuse. The others
describe expected data conditions; the orchestrator reports those as a
MatchOutcome status and only raises them on request.
"""


class MatcherError(Exception):
    """Base class for all matcher errors."""
    pass


class ColumnIndexOutOfRange(MatcherError):
    """Raised when a column index does not exist in the table."""

    def __init__(self, column_index, column_count: int, table_name: str = ''):
        self.column_index = column_index
        self.column_count = column_count
        self.table_name = table_name
        where = f" in table '{table_name}'" if table_name else ''
        super().__init__(
            f"Column index {column_index!r} out of range{where}; "
            f"valid indices are 0-{column_count - 1}" if column_count > 0
            else f"Column index {column_index!r} out of range{where}; table has no columns"
        )


class NoDataRows(MatcherError):
    """Raised when a table has no data rows to profile."""
    pass


class NoKeyFound(MatcherError):
    """Raised when no column is a viable join key."""
    pass


class NoSourceFound(MatcherError):
    """Raised when no candidate table holds a compatible key column."""
    pass


class AmbiguousSources(MatcherError):
    """Raised when the top candidate sources cannot be told apart."""

    def __init__(self, message: str, candidates=None):
        super().__init__(message)
        self.candidates = list(candidates or [])


class BuildFailed(MatcherError):
    """Raised when a match index cannot be built from malformed input."""
    pass


class JoinCancelled(MatcherError):
    """Raised when a join is cancelled; no partial result exists."""
    pass


# End of file #
