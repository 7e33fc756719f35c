"""
Transaction preparation for tips.

Builds unsigned native transfers and ERC-20 ``transfer`` calls. Signing and
broadcast happen in the user's wallet.
"""

import logging
from typing import Callable, Optional, Tuple

from eth_utils import to_checksum_address

from ..errors import TipValidationError, UnsupportedTokenError, UpstreamFailureError
from .models import TipRequest, UnsignedTransaction
from .registry import SUPPORTED_CHAIN_IDS, AssetRegistry, ChainInfo
from .validation import is_evm_address, validate_tip_request

logger = logging.getLogger(__name__)

ERC20_TRANSFER_SELECTOR = "0xa9059cbb"  # transfer(address,uint256)

MAX_UINT256 = 2**256 - 1

# ENS name -> 0x address, or None when the name has no address record
NameResolver = Callable[[str], Optional[str]]


def _encode_uint256(value: int) -> str:
    """Encode a uint256 as a 32-byte hex string (without 0x prefix)."""
    if value < 0 or value > MAX_UINT256:
        raise ValueError("Value out of uint256 range")
    return format(value, "064x")


def _encode_address(address: str) -> str:
    """Encode an address as a 32-byte hex string (without 0x prefix)."""
    addr = address[2:] if address.startswith("0x") else address
    if len(addr) != 40:
        raise ValueError(f"Invalid address length: {address}")
    return addr.lower().zfill(64)


def parse_units(amount: str, decimals: int) -> int:
    """Scale a decimal string to integer smallest units without floats.

    ``parse_units("0.05", 18) == 50_000_000_000_000_000``. Raises
    ``TipValidationError`` when the amount has more significant fractional
    digits than the token can represent.
    """
    whole, _, fraction = amount.strip().partition(".")
    if not whole.isdigit() or (fraction and not fraction.isdigit()):
        raise TipValidationError("amount", "Amount must be a valid number")
    if len(fraction) > decimals:
        if fraction[decimals:].strip("0"):
            raise TipValidationError(
                "amount",
                f"Too many decimal places (max {decimals} for this token)",
            )
        fraction = fraction[:decimals]
    return int(whole) * 10**decimals + int(fraction.ljust(decimals, "0") or "0")


def format_units(value: int, decimals: int) -> str:
    """Inverse of ``parse_units``; trailing zeros are dropped."""
    whole, remainder = divmod(value, 10**decimals)
    if not remainder:
        return str(whole)
    fraction = str(remainder).rjust(decimals, "0").rstrip("0")
    return f"{whole}.{fraction}"


def encode_erc20_transfer(to_address: str, amount: int) -> str:
    """Calldata for ``transfer(address to, uint256 amount)``."""
    return ERC20_TRANSFER_SELECTOR + _encode_address(to_address) + _encode_uint256(amount)


def decode_erc20_transfer(data: str) -> Tuple[str, int]:
    """Recover ``(recipient, amount)`` from ERC-20 transfer calldata."""
    if not data.lower().startswith(ERC20_TRANSFER_SELECTOR):
        raise ValueError("Calldata is not an ERC-20 transfer")
    body = data[len(ERC20_TRANSFER_SELECTOR):]
    if len(body) != 128:
        raise ValueError("Transfer calldata must hold exactly two 32-byte words")
    address_word, amount_word = body[:64], body[64:]
    if address_word[:24].strip("0"):
        raise ValueError("Address word has non-zero padding")
    return to_checksum_address("0x" + address_word[24:]), int(amount_word, 16)


class TransactionPreparer:
    """
    Builds an UnsignedTransaction for a validated tip.

    Handles:
    - Native transfers (value in wei, empty calldata)
    - ERC-20 transfers (token contract as ``to``, encoded transfer call)
    - Chain selection (explicit chain, else the registry's preferred chain)
    """

    def __init__(
        self,
        registry: Optional[AssetRegistry] = None,
        resolver: Optional[NameResolver] = None,
    ):
        self.registry = registry or AssetRegistry()
        self.resolver = resolver
        # Built-in chains stay valid ids even when the registry omits them
        self.chain_ids = frozenset(SUPPORTED_CHAIN_IDS) | frozenset(self.registry.supported_chain_ids())

    def prepare(
        self,
        amount: str,
        token: str,
        recipient: str,
        chain_id: Optional[int] = None,
    ) -> UnsignedTransaction:
        """
        Prepare an unsigned tip transaction.

        Raises:
            TipValidationError: amount, token, recipient or chain is invalid
            UnsupportedTokenError: token has no contract on the resolved chain
            NoSupportedChainError: no chain is configured
            UpstreamFailureError: the ENS resolver failed
        """
        tip = validate_tip_request(
            {"amount": amount, "token": token, "recipient": recipient, "chain_id": chain_id},
            self.chain_ids,
        )
        return self.prepare_request(tip)

    def prepare_request(self, tip: TipRequest) -> UnsignedTransaction:
        tip = validate_tip_request(tip, self.chain_ids)
        chain = self.registry.resolve_chain(tip.chain_id)

        if self.registry.is_native(tip.token, chain):
            to_address = self._resolve_recipient(tip.recipient)
            value = parse_units(tip.amount, chain.native_decimals)
            return UnsignedTransaction(
                to=to_checksum_address(to_address),
                value=str(value),
                data="0x",
                chain_id=chain.chain_id,
            )

        return self._prepare_token_transfer(tip, chain)

    def _prepare_token_transfer(self, tip: TipRequest, chain: ChainInfo) -> UnsignedTransaction:
        try:
            contract = self.registry.token_contract(tip.token, chain)
        except UnsupportedTokenError:
            logger.warning(
                "Token %s has no contract configured on %s (%s)",
                tip.token,
                chain.name,
                chain.chain_id,
            )
            raise

        to_address = self._resolve_recipient(tip.recipient)
        units = parse_units(tip.amount, contract.decimals)
        return UnsignedTransaction(
            to=to_checksum_address(contract.address),
            value="0",
            data=encode_erc20_transfer(to_address, units),
            chain_id=chain.chain_id,
        )

    def _resolve_recipient(self, recipient: str) -> str:
        if is_evm_address(recipient):
            return recipient
        if self.resolver is None:
            raise TipValidationError(
                "recipient",
                "ENS names are not supported here; use a 0x address",
            )
        try:
            resolved = self.resolver(recipient)
        except Exception as exc:
            raise UpstreamFailureError(f"Could not resolve {recipient}: {exc}") from exc
        if not resolved or not is_evm_address(resolved):
            raise TipValidationError("recipient", f"{recipient} does not resolve to an address")
        return resolved


__all__ = [
    "ERC20_TRANSFER_SELECTOR",
    "NameResolver",
    "TransactionPreparer",
    "decode_erc20_transfer",
    "encode_erc20_transfer",
    "format_units",
    "parse_units",
]
