"""
Tip Module

Tip validation, chain/token registry and unsigned transaction preparation.
"""

from .models import TipRequest, UnsignedTransaction
from .registry import AssetRegistry, ChainInfo, TokenContract
from .tx_builder import (
    ERC20_TRANSFER_SELECTOR,
    NameResolver,
    TransactionPreparer,
    decode_erc20_transfer,
    encode_erc20_transfer,
    format_units,
    parse_units,
)
from .validation import validate_tip_request, validate_tx_hash

__all__ = [
    # Models
    "TipRequest",
    "UnsignedTransaction",
    # Registry
    "AssetRegistry",
    "ChainInfo",
    "TokenContract",
    # Preparation
    "TransactionPreparer",
    "NameResolver",
    "ERC20_TRANSFER_SELECTOR",
    "encode_erc20_transfer",
    "decode_erc20_transfer",
    "parse_units",
    "format_units",
    # Validation
    "validate_tip_request",
    "validate_tx_hash",
]
