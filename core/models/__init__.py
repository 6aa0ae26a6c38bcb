"""Pydantic data models shared across all components."""

from core.models.tasks import (
    EXECUTION_TYPES,
    TYPE_ALWAYS,
    TYPE_ONCE,
    ExecutionLog,
    ExecutionRecord,
    ExecutionType,
    RunError,
    RunSummary,
)

__all__ = [
    "EXECUTION_TYPES",
    "TYPE_ALWAYS",
    "TYPE_ONCE",
    "ExecutionLog",
    "ExecutionRecord",
    "ExecutionType",
    "RunError",
    "RunSummary",
]
