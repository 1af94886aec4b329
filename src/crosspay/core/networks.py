"""
Static network registry data.

Gateway contract addresses are the settlement provider's deposit gateways.
Networks the provider settles natively carry the NATIVE_INTEGRATION
sentinel instead of a contract address.
"""

from crosspay.core.types import NATIVE_INTEGRATION, AddressModel, Asset, NativeCurrency, Network

# Chain ids
ETHEREUM_CHAIN_ID = 1
BASE_CHAIN_ID = 8453
BNB_CHAIN_ID = 56
ARBITRUM_CHAIN_ID = 42161
HYPERLIQUID_CHAIN_ID = 42162
MOVEMENT_CHAIN_ID = 30732
SOLANA_CHAIN_ID = 1329
SEI_CHAIN_ID = 1330
POLYGON_CHAIN_ID = 137

# Settlement gateway contracts
GATEWAY_MAINNET = "0x6a2A5B7D0434CC5b77e304bc9D68C20Dee805152"
GATEWAY_SEI = "0x852512A601EB3Bb0973f35b1c1d77966F0EDe676"
GATEWAY_POLYGON = "0x57B74794abE88E9Ce04A927a79A56504D289A818"

# Price feed ids
USDC_PRICE_FEED = "usd-coin"
USDT_PRICE_FEED = "tether"
BSC_USD_PRICE_FEED = "busd"

ETH = NativeCurrency(name="Ether", symbol="ETH", decimals=18)

_ARBITRUM_USDC = "0xaf88d065e77c8cC2239327C5EDb3A432268e5831"
_MOVEMENT_STABLE = "0x176211869cA2b568f2A7D4EE941E073a821EE1ff"


def _usdc(network_id: int, address: str, decimals: int = 6) -> Asset:
    return Asset(
        network_id=network_id,
        symbol="USDC",
        display_name="USD Coin",
        decimals=decimals,
        contract_address=address,
        price_feed_id=USDC_PRICE_FEED,
    )


def _usdt(network_id: int, address: str, decimals: int = 6) -> Asset:
    return Asset(
        network_id=network_id,
        symbol="USDT",
        display_name="Tether USD",
        decimals=decimals,
        contract_address=address,
        price_feed_id=USDT_PRICE_FEED,
    )


NETWORKS: tuple[Network, ...] = (
    Network(
        id=ETHEREUM_CHAIN_ID,
        display_name="Ethereum",
        code="ETHEREUM",
        native_currency=ETH,
        gateway_contract=GATEWAY_MAINNET,
        rpc_endpoints=("https://eth-mainnet.g.alchemy.com/v2/",),
        explorer_urls=("https://etherscan.io",),
        assets=(
            _usdc(ETHEREUM_CHAIN_ID, "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48"),
            _usdt(ETHEREUM_CHAIN_ID, "0xdAC17F958D2ee523a2206206994597C13D831ec7"),
        ),
        provider_id=1,
        aliases=("ethereum", "mainnet"),
    ),
    Network(
        id=BASE_CHAIN_ID,
        display_name="Base",
        code="BASE",
        native_currency=ETH,
        gateway_contract=GATEWAY_MAINNET,
        rpc_endpoints=("https://mainnet.base.org",),
        explorer_urls=("https://basescan.org",),
        assets=(_usdc(BASE_CHAIN_ID, "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913"),),
        provider_id=2,
        aliases=("base",),
    ),
    Network(
        id=BNB_CHAIN_ID,
        display_name="BNB Chain",
        code="BNB",
        native_currency=NativeCurrency(name="BNB", symbol="BNB", decimals=18),
        gateway_contract=GATEWAY_MAINNET,
        rpc_endpoints=("https://bsc-dataseed.binance.org",),
        explorer_urls=("https://bscscan.com",),
        assets=(
            Asset(
                network_id=BNB_CHAIN_ID,
                symbol="BSC-USD",
                display_name="Binance-Peg BSC-USD",
                decimals=18,
                contract_address="0x55d398326f99059fF775485246999027B3197955",
                price_feed_id=BSC_USD_PRICE_FEED,
                code="BSC_USD",
            ),
        ),
        provider_id=3,
        aliases=("bsc", "bnb", "bnb chain"),
    ),
    Network(
        id=ARBITRUM_CHAIN_ID,
        display_name="Arbitrum",
        code="ARBITRUM",
        native_currency=ETH,
        gateway_contract=GATEWAY_MAINNET,
        rpc_endpoints=("https://arb1.arbitrum.io/rpc",),
        explorer_urls=("https://arbiscan.io",),
        assets=(_usdc(ARBITRUM_CHAIN_ID, _ARBITRUM_USDC),),
        provider_id=4,
        aliases=("arbitrum",),
    ),
    Network(
        id=HYPERLIQUID_CHAIN_ID,
        display_name="Hyperliquid",
        code="HYPERLIQUID",
        native_currency=ETH,
        gateway_contract=GATEWAY_MAINNET,
        rpc_endpoints=("https://arb1.arbitrum.io/rpc",),
        explorer_urls=("https://arbiscan.io",),
        assets=(_usdc(HYPERLIQUID_CHAIN_ID, _ARBITRUM_USDC),),
        provider_id=5,
    ),
    Network(
        id=MOVEMENT_CHAIN_ID,
        display_name="Movement",
        code="MOVEMENT",
        native_currency=NativeCurrency(name="Move", symbol="MOVE", decimals=18),
        gateway_contract=NATIVE_INTEGRATION,
        rpc_endpoints=("https://mevm.movementnetwork.xyz",),
        explorer_urls=("https://explorer.movementnetwork.xyz",),
        assets=(
            _usdc(MOVEMENT_CHAIN_ID, _MOVEMENT_STABLE),
            _usdt(MOVEMENT_CHAIN_ID, _MOVEMENT_STABLE),
        ),
        provider_id=6,
    ),
    Network(
        id=SOLANA_CHAIN_ID,
        display_name="Solana",
        code="SOLANA",
        native_currency=NativeCurrency(name="Solana", symbol="SOL", decimals=9),
        gateway_contract=NATIVE_INTEGRATION,
        address_model=AddressModel.PUBLIC_KEY,
        rpc_endpoints=("https://api.mainnet-beta.solana.com",),
        explorer_urls=("https://explorer.solana.com",),
        assets=(
            _usdc(SOLANA_CHAIN_ID, "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"),
            _usdt(SOLANA_CHAIN_ID, "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB"),
        ),
        provider_id=7,
    ),
    Network(
        id=SEI_CHAIN_ID,
        display_name="Sei",
        code="SEI",
        native_currency=NativeCurrency(name="Sei", symbol="SEI", decimals=6),
        gateway_contract=GATEWAY_SEI,
        rpc_endpoints=("https://rpc.wallet.sei.io",),
        explorer_urls=("https://sei.explorers.guru",),
        assets=(_usdc(SEI_CHAIN_ID, _MOVEMENT_STABLE),),
        provider_id=9,
    ),
    Network(
        id=POLYGON_CHAIN_ID,
        display_name="Polygon",
        code="POLYGON",
        native_currency=NativeCurrency(name="Polygon Ecosystem Token", symbol="POL", decimals=18),
        gateway_contract=GATEWAY_POLYGON,
        rpc_endpoints=("https://polygon-rpc.com",),
        explorer_urls=("https://polygonscan.com",),
        assets=(_usdc(POLYGON_CHAIN_ID, "0x3c499c542cEF5E3811e1192ce70d8cC03d5c3359"),),
        provider_id=10,
        aliases=("polygon", "matic"),
    ),
)

# Per-network confirmation wait defaults (seconds)
DEFAULT_CONFIRMATION_TIMEOUTS: dict[int, float] = {
    ETHEREUM_CHAIN_ID: 300.0,
    POLYGON_CHAIN_ID: 180.0,
}
