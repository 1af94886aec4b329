"""
Resilience Layer for CrossPay.

Bounded retries for transient chain reads.
"""

from .retry import chain_read_retrying, execute_with_retry

__all__ = [
    "chain_read_retrying",
    "execute_with_retry",
]
