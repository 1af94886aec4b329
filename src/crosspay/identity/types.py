"""Identity types."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class SocialUser:
    """A social-platform user returned by search."""

    identity: str
    username: str
    display_name: str
    address: str | None = None
    avatar_url: str | None = None


@dataclass(frozen=True)
class VerifiedAddresses:
    """Wallet addresses an identity has verified, primary first."""

    identity: str
    evm_addresses: list[str] = field(default_factory=list)
    solana_addresses: list[str] = field(default_factory=list)
    primary_evm: str | None = None
    primary_solana: str | None = None

    @property
    def is_empty(self) -> bool:
        return not self.evm_addresses and not self.solana_addresses
