"""On-chain reads: JSON-RPC access, ERC-20 encoding and allowance checks."""

from crosspay.chain.allowance import AllowanceChecker
from crosspay.chain.rpc import ChainReader, JsonRpcChainReader

__all__ = ["AllowanceChecker", "ChainReader", "JsonRpcChainReader"]
