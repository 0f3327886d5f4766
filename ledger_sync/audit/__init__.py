"""Structured logging package."""

from ledger_sync.audit.logger import create_correlation_id, get_logger

__all__ = ["create_correlation_id", "get_logger"]
