"""Persistence of review executions."""

from pullwise.store.executions import ExecutionRecord, ExecutionStore

__all__ = ["ExecutionRecord", "ExecutionStore"]
