"""Social identity lookups."""

from crosspay.identity.resolver import IdentityResolver, NeynarIdentityResolver
from crosspay.identity.types import SocialUser, VerifiedAddresses

__all__ = [
    "IdentityResolver",
    "NeynarIdentityResolver",
    "SocialUser",
    "VerifiedAddresses",
]
