"""Utilities shared across services to standardise observability."""

from .logging import RequestContextMiddleware, configure_logging, get_correlation_id, get_request_id
from .metrics import record_ledger_mutation, record_oauth_outcome, setup_metrics

__all__ = [
    "RequestContextMiddleware",
    "configure_logging",
    "get_correlation_id",
    "get_request_id",
    "record_ledger_mutation",
    "record_oauth_outcome",
    "setup_metrics",
]
