"""Payment request store."""

from crosspay.requests.service import PaymentRequestService

__all__ = ["PaymentRequestService"]
