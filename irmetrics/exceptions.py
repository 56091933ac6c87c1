"""
Error taxonomy for irmetrics.

- ConfigurationError: bad metric names or parameters, raised before any
  query is evaluated.
- DataIntegrityError: duplicate judgments, duplicate ranked documents or
  malformed grades. Scoped to one query where possible so callers can skip
  that query and continue the batch.
- TrecFormatError: a TREC qrels/run line that cannot be parsed.

An undefined metric value is not an error; see irmetrics.models.common.Undefined.
"""
from __future__ import annotations

from typing import Any, Optional


class IRMetricsError(Exception):
    """Base exception for irmetrics."""


class ConfigurationError(IRMetricsError, ValueError):
    """Invalid metric specification or unknown metric name."""


class DataIntegrityError(IRMetricsError, ValueError):
    """Input data violates an invariant of the judgment or ranking model."""

    def __init__(
        self,
        message: str,
        query_id: Optional[Any] = None,
        document_id: Optional[Any] = None
    ):
        self.message = message
        self.query_id = query_id
        self.document_id = document_id
        super().__init__(message)


class TrecFormatError(DataIntegrityError):
    """Line in a TREC qrels or run file could not be parsed."""

    def __init__(self, message: str, line_number: Optional[int] = None):
        self.line_number = line_number
        if line_number is not None:
            message = f"Error reading TREC format (line {line_number}): {message}"
        else:
            message = f"Error reading TREC format: {message}"
        super().__init__(message)


__all__ = [
    "IRMetricsError",
    "ConfigurationError",
    "DataIntegrityError",
    "TrecFormatError",
]
