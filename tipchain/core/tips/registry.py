"""Supported chains and token contracts for tip transactions."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional

from ..errors import NoSupportedChainError, UnsupportedTokenError

NATIVE_DECIMALS = 18

CHAIN_METADATA: Dict[int, Dict[str, Any]] = {
    1: {
        'name': 'Ethereum',
        'native_symbol': 'ETH',
        'native_decimals': NATIVE_DECIMALS,
        'explorer_url': 'https://etherscan.io',
    },
    8453: {
        'name': 'Base',
        'native_symbol': 'ETH',
        'native_decimals': NATIVE_DECIMALS,
        'explorer_url': 'https://basescan.org',
    },
    10: {
        'name': 'Optimism',
        'native_symbol': 'ETH',
        'native_decimals': NATIVE_DECIMALS,
        'explorer_url': 'https://optimistic.etherscan.io',
    },
}

# Token contract addresses by chain. DAI is tippable in principle but has no
# contract configured anywhere yet.
TOKEN_ADDRESSES: Dict[int, Dict[str, str]] = {
    1: {
        'USDC': '0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48',
        'USDT': '0xdAC17F958D2ee523a2206206994597C13D831ec7',
        'WETH': '0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2',
    },
    8453: {
        'USDC': '0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913',
        'WETH': '0x4200000000000000000000000000000000000006',
    },
    10: {
        'USDC': '0x7F5c764cBc14f9669B88837ca1490cCa17c31607',
        'USDT': '0x94b008aA00579c1307B0EF2c499aD98a8ce58e58',
        'WETH': '0x4200000000000000000000000000000000000006',
    },
}

TOKEN_DECIMALS: Dict[str, int] = {
    'ETH': 18,
    'WETH': 18,
    'USDC': 6,
    'USDT': 6,
    'DAI': 18,
}

SUPPORTED_TOKENS = tuple(TOKEN_DECIMALS.keys())
SUPPORTED_CHAIN_IDS = tuple(CHAIN_METADATA.keys())

# Base first: lowest fees for small tips
DEFAULT_PREFERRED_CHAIN_ID = 8453


@dataclass(frozen=True)
class ChainInfo:
    chain_id: int
    name: str
    native_symbol: str
    native_decimals: int
    explorer_url: str

    def tx_url(self, tx_hash: str) -> str:
        return f"{self.explorer_url}/tx/{tx_hash}"


@dataclass(frozen=True)
class TokenContract:
    symbol: str
    chain_id: int
    address: str
    decimals: int


@dataclass
class AssetRegistry:
    """Read-only view over chain metadata and token contracts.

    Injected into the transaction preparer so tests and deployments can swap
    the tables without touching module globals.
    """

    chains: Mapping[int, Mapping[str, Any]] = field(default_factory=lambda: CHAIN_METADATA)
    token_addresses: Mapping[int, Mapping[str, str]] = field(default_factory=lambda: TOKEN_ADDRESSES)
    token_decimals: Mapping[str, int] = field(default_factory=lambda: TOKEN_DECIMALS)
    preferred_chain_id: int = DEFAULT_PREFERRED_CHAIN_ID

    def supported_chain_ids(self) -> List[int]:
        return list(self.chains.keys())

    def is_supported_chain(self, chain_id: int) -> bool:
        return chain_id in self.chains

    def get_chain(self, chain_id: int) -> Optional[ChainInfo]:
        meta = self.chains.get(chain_id)
        if meta is None:
            return None
        return ChainInfo(
            chain_id=chain_id,
            name=meta['name'],
            native_symbol=meta.get('native_symbol', 'ETH'),
            native_decimals=meta.get('native_decimals', NATIVE_DECIMALS),
            explorer_url=meta.get('explorer_url', ''),
        )

    def preferred_chain(self) -> ChainInfo:
        """Return the chain used when a tip does not name one."""

        chain = self.get_chain(self.preferred_chain_id)
        if chain is not None:
            return chain
        for chain_id in self.chains:
            return self.get_chain(chain_id)  # type: ignore[return-value]
        raise NoSupportedChainError()

    def resolve_chain(self, chain_id: Optional[int]) -> ChainInfo:
        if chain_id is None:
            return self.preferred_chain()
        chain = self.get_chain(chain_id)
        if chain is None:
            raise NoSupportedChainError(f"Chain ID {chain_id} is not configured")
        return chain

    def is_native(self, symbol: str, chain: ChainInfo) -> bool:
        return symbol.upper() == chain.native_symbol.upper()

    def token_contract(self, symbol: str, chain: ChainInfo) -> TokenContract:
        symbol = symbol.upper()
        address = self.token_addresses.get(chain.chain_id, {}).get(symbol)
        decimals = self.token_decimals.get(symbol)
        if not address or decimals is None:
            raise UnsupportedTokenError(symbol, chain.chain_id, chain.name)
        return TokenContract(symbol=symbol, chain_id=chain.chain_id, address=address, decimals=decimals)

    def tokens_on_chain(self, chain_id: int) -> Iterable[str]:
        chain = self.get_chain(chain_id)
        if chain is None:
            return []
        return [chain.native_symbol, *self.token_addresses.get(chain_id, {}).keys()]


__all__ = [
    'CHAIN_METADATA',
    'TOKEN_ADDRESSES',
    'TOKEN_DECIMALS',
    'SUPPORTED_TOKENS',
    'SUPPORTED_CHAIN_IDS',
    'AssetRegistry',
    'ChainInfo',
    'TokenContract',
]
