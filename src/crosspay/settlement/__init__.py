"""Settlement provider access, route resolution and plan building."""

from crosspay.settlement.plan import (
    SettlementPlanBuilder,
    validate_destination,
    validate_settlement_transaction,
)
from crosspay.settlement.provider import (
    ProviderQuote,
    SettlementBuildRequest,
    SettlementBuildResponse,
    SettlementProviderClient,
)
from crosspay.settlement.quote import QuoteResolver

__all__ = [
    "ProviderQuote",
    "QuoteResolver",
    "SettlementBuildRequest",
    "SettlementBuildResponse",
    "SettlementPlanBuilder",
    "SettlementProviderClient",
    "validate_destination",
    "validate_settlement_transaction",
]
