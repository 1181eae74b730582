"""Custom exception hierarchy for statcore.

This module provides the exception types raised by the resolver and
catalog index services. "No data" outcomes (filters that exclude every
series, a date with no value, a search token with no match) are never
exceptions: they surface as empty results.

Exception Hierarchy:
    StatCoreError (base)
    ├── ConfigurationError
    ├── ValidationError
    └── CatalogError
        ├── MalformedCatalogNodeError
        └── CyclicCatalogGraphError
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional


class StatCoreError(Exception):
    """Base exception for all statcore errors.

    Attributes:
        message: Human-readable error message
        code: Error code for programmatic handling
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class ConfigurationError(StatCoreError):
    """Raised when there's a configuration problem.

    Examples:
        - Ranking table override file missing or unparsable
        - Ranking entry with a non-integer priority
    """
    pass


class ValidationError(StatCoreError):
    """Raised when input validation fails.

    Examples:
        - Catalog payload that is not a mapping
        - Missing required field
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.field = field
        details = details or {}
        if field:
            details["field"] = field
        super().__init__(message, code, details)


# Catalog Errors
class CatalogError(StatCoreError):
    """Base class for catalog graph errors."""
    pass


class MalformedCatalogNodeError(CatalogError):
    """Raised when a catalog node lacks the text fields needed for indexing.

    The indexer catches this per node, logs it and keeps building.

    Attributes:
        node_id: Id of the offending node
    """

    def __init__(
        self,
        message: str,
        node_id: Optional[str] = None,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.node_id = node_id
        details = details or {}
        if node_id:
            details["node_id"] = node_id
        super().__init__(message, code, details)


class CyclicCatalogGraphError(CatalogError):
    """Raised when the group hierarchy is not a DAG.

    Fatal for the build that detected it.

    Attributes:
        cycle: Group ids along the detected cycle, first id repeated last
    """

    def __init__(
        self,
        message: str,
        cycle: Optional[List[str]] = None,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.cycle = list(cycle or [])
        details = details or {}
        if self.cycle:
            details["cycle"] = self.cycle
        super().__init__(message, code, details)


def get_error_response(error: Exception) -> Dict[str, Any]:
    """Convert any exception to an API error response.

    Args:
        error: The exception to convert

    Returns:
        Dictionary suitable for API error response
    """
    if isinstance(error, StatCoreError):
        return error.to_dict()

    # For non-statcore exceptions, create a generic response
    return {
        "error": "InternalError",
        "message": str(error),
        "details": {},
    }
