"""Resilience helpers (retry policies) for RPC reads."""

from linklot.resilience.retry import execute_with_retry, is_transient_error

__all__ = ["execute_with_retry", "is_transient_error"]
