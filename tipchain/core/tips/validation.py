"""Validation rules for tip parameters.

All amount checks operate on the decimal string with ``Decimal`` so that
18-decimal values are compared exactly.
"""

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation
from typing import Any, Collection, Mapping, Optional, Union

from ..errors import TipValidationError
from .models import TipRequest
from .registry import SUPPORTED_CHAIN_IDS, SUPPORTED_TOKENS

MAX_TIP_AMOUNT = Decimal("1000000")
MAX_FRACTION_DIGITS = 18
MAX_MESSAGE_LENGTH = 280

_AMOUNT_RE = re.compile(r"^[0-9]+(\.[0-9]+)?$")
_EVM_ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")
_ENS_NAME_RE = re.compile(r"^[a-zA-Z0-9-]+\.eth$")
_TX_HASH_RE = re.compile(r"^0x[a-fA-F0-9]{64}$")


def is_evm_address(value: str) -> bool:
    return bool(_EVM_ADDRESS_RE.fullmatch(value))


def is_ens_name(value: str) -> bool:
    return bool(_ENS_NAME_RE.fullmatch(value))


def validate_amount(amount: Any) -> str:
    """Return the normalised amount string or raise ``TipValidationError``."""

    if not isinstance(amount, str):
        raise TipValidationError("amount", "Amount must be a decimal string")
    amount = amount.strip()
    if not _AMOUNT_RE.fullmatch(amount):
        raise TipValidationError("amount", "Amount must be a valid number")
    try:
        value = Decimal(amount)
    except InvalidOperation as exc:
        raise TipValidationError("amount", "Amount must be a valid number") from exc
    if value <= 0:
        raise TipValidationError("amount", "Amount must be greater than 0")
    if value > MAX_TIP_AMOUNT:
        raise TipValidationError("amount", "Amount is too large")
    _, _, fraction = amount.partition(".")
    if len(fraction) > MAX_FRACTION_DIGITS:
        raise TipValidationError("amount", "Too many decimal places")
    return amount


def validate_token(token: Any) -> str:
    if not isinstance(token, str) or not token.strip():
        raise TipValidationError("token", "Token is required")
    symbol = token.strip().upper()
    if symbol not in SUPPORTED_TOKENS:
        raise TipValidationError(
            "token",
            f"Token {token} is not supported. Allowed tokens: {', '.join(SUPPORTED_TOKENS)}",
        )
    return symbol


def validate_recipient(recipient: Any) -> str:
    if not isinstance(recipient, str) or not recipient.strip():
        raise TipValidationError("recipient", "Recipient is required")
    recipient = recipient.strip()
    if not (is_evm_address(recipient) or is_ens_name(recipient)):
        raise TipValidationError("recipient", "Invalid recipient address or ENS name")
    return recipient


def validate_chain_id(chain_id: Any, supported: Collection[int] = SUPPORTED_CHAIN_IDS) -> Optional[int]:
    """Check an explicit chain id against ``supported`` (the built-in chains by default)."""
    if chain_id is None:
        return None
    if isinstance(chain_id, bool) or not isinstance(chain_id, int):
        raise TipValidationError("chainId", "Chain ID must be an integer")
    if chain_id not in supported:
        raise TipValidationError("chainId", f"Chain ID {chain_id} is not supported")
    return chain_id


def validate_message(message: Any) -> Optional[str]:
    if message is None:
        return None
    if not isinstance(message, str):
        raise TipValidationError("message", "Message must be a string")
    if len(message) > MAX_MESSAGE_LENGTH:
        raise TipValidationError("message", "Message is too long")
    return message


def validate_tip_request(
    request: Union[TipRequest, Mapping[str, Any]],
    supported_chain_ids: Collection[int] = SUPPORTED_CHAIN_IDS,
) -> TipRequest:
    """Validate every TipRequest field and return a normalised copy.

    ``supported_chain_ids`` lets a preparer with a custom registry accept
    the chains it was configured with.
    """

    if isinstance(request, TipRequest):
        data = request.model_dump()
    else:
        data = dict(request)
        if "chainId" in data and "chain_id" not in data:
            data["chain_id"] = data.pop("chainId")

    return TipRequest(
        amount=validate_amount(data.get("amount")),
        token=validate_token(data.get("token")),
        recipient=validate_recipient(data.get("recipient")),
        chain_id=validate_chain_id(data.get("chain_id"), supported_chain_ids),
        message=validate_message(data.get("message")),
    )


def validate_tx_hash(tx_hash: Any) -> str:
    if not isinstance(tx_hash, str) or not _TX_HASH_RE.fullmatch(tx_hash.strip()):
        raise TipValidationError("txHash", "Invalid transaction hash format")
    return tx_hash.strip()


__all__ = [
    "MAX_TIP_AMOUNT",
    "MAX_FRACTION_DIGITS",
    "is_evm_address",
    "is_ens_name",
    "validate_amount",
    "validate_token",
    "validate_recipient",
    "validate_chain_id",
    "validate_message",
    "validate_tip_request",
    "validate_tx_hash",
]
