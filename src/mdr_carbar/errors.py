"""
Error types raised by the classification and association layers.
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence


class MDRCarbarError(Exception):
    """Base class for all package errors."""


class SchemaError(MDRCarbarError, ValueError):
    """Required columns are absent from the isolate table."""

    def __init__(self, missing_columns: Iterable[str], context: str = "isolate table"):
        self.missing_columns: List[str] = list(missing_columns)
        self.context = context
        super().__init__(
            f"{context} is missing required column(s): {', '.join(self.missing_columns)}"
        )


class MissingColumnError(SchemaError):
    """A drug column referenced by the category configuration is absent."""

    def __init__(self, missing_columns: Iterable[str]):
        super().__init__(missing_columns, context="susceptibility data")


class InterpretationCodeError(MDRCarbarError, ValueError):
    """An interpretation code outside {S, I, R, missing} was found."""

    def __init__(self, column: str, values: Sequence[object]):
        self.column = column
        self.values = list(values)
        shown = ", ".join(repr(v) for v in self.values[:10])
        more = "" if len(self.values) <= 10 else f" (+{len(self.values) - 10} more)"
        super().__init__(
            f"Column '{column}' contains interpretation codes outside {{S, I, R}}: {shown}{more}"
        )


class DegenerateTableError(MDRCarbarError, ValueError):
    """
    The MDR x carbapenem contingency table has an empty row or column.

    The offending table is attached so callers can inspect it without
    re-running classification.
    """

    def __init__(
        self,
        table,
        empty_rows: Sequence[str] = (),
        empty_cols: Sequence[str] = (),
        message: Optional[str] = None,
    ):
        self.table = table
        self.empty_rows = list(empty_rows)
        self.empty_cols = list(empty_cols)
        if message is None:
            parts = []
            if self.empty_rows:
                parts.append(f"empty row(s): {', '.join(self.empty_rows)}")
            if self.empty_cols:
                parts.append(f"empty column(s): {', '.join(self.empty_cols)}")
            message = (
                "Contingency table is degenerate ("
                + "; ".join(parts)
                + "); exact test and odds ratio are undefined"
            )
        super().__init__(message)
