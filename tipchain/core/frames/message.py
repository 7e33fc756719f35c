"""Structural validation of inbound frame interaction messages.

Checks shape only. Authenticity (the hub signature over ``trustedData``) is
not verified here; the service trusts the transport in front of it.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Tuple
from urllib.parse import urlsplit

from ..errors import MessageValidationError
from .models import CastReference, InteractionMessage

logger = logging.getLogger(__name__)

MIN_MESSAGE_HASH_LENGTH = 10
MAX_INPUT_TEXT_LENGTH = 256
MIN_BUTTON_INDEX = 1
MAX_BUTTON_INDEX = 4

_MISSING = object()

# canonical name -> accepted wire names, canonical first
_FIELD_ALIASES = {
    "actorId": ("actorId", "fid"),
    "sourceUrl": ("sourceUrl", "url"),
    "messageHash": ("messageHash",),
    "timestamp": ("timestamp",),
    "networkId": ("networkId", "network"),
    "buttonIndex": ("buttonIndex",),
    "inputText": ("inputText",),
    "castReference": ("castReference", "castId"),
}


def _lookup(raw: Mapping[str, Any], names: Tuple[str, ...]) -> Any:
    for name in names:
        if name in raw:
            return raw[name]
    return _MISSING


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_valid_url(value: str) -> bool:
    try:
        parts = urlsplit(value)
    except ValueError:
        return False
    return bool(parts.scheme) and bool(parts.netloc)


def _reject(field: str, reason: str) -> MessageValidationError:
    return MessageValidationError(field, reason)


def _unwrap_envelope(raw: Mapping[str, Any]) -> Mapping[str, Any]:
    # Protocol clients POST {"untrustedData": {...}, "trustedData": {...}}
    untrusted = raw.get("untrustedData")
    if isinstance(untrusted, Mapping):
        return untrusted
    return raw


def validate_interaction_message(raw: Any) -> InteractionMessage:
    """Validate ``raw`` and return a typed message.

    Raises ``MessageValidationError`` on the first failing check. Nothing is
    returned for a partially valid message.
    """
    if raw is None or not isinstance(raw, Mapping):
        raise _reject("message", "Message must be an object")
    raw = _unwrap_envelope(raw)

    actor_id = _lookup(raw, _FIELD_ALIASES["actorId"])
    source_url = _lookup(raw, _FIELD_ALIASES["sourceUrl"])
    message_hash = _lookup(raw, _FIELD_ALIASES["messageHash"])
    timestamp = _lookup(raw, _FIELD_ALIASES["timestamp"])
    network_id = _lookup(raw, _FIELD_ALIASES["networkId"])

    for name, value in (
        ("actorId", actor_id),
        ("sourceUrl", source_url),
        ("messageHash", message_hash),
        ("timestamp", timestamp),
        ("networkId", network_id),
    ):
        if value is _MISSING:
            raise _reject(name, "Field is required")

    if not _is_int(actor_id) or actor_id <= 0:
        raise _reject("actorId", "Must be a positive integer")
    if not isinstance(source_url, str):
        raise _reject("sourceUrl", "Must be a string")
    if not isinstance(message_hash, str):
        raise _reject("messageHash", "Must be a string")
    if not _is_int(timestamp) or timestamp <= 0:
        raise _reject("timestamp", "Must be a positive integer")
    if not _is_int(network_id):
        raise _reject("networkId", "Must be an integer")

    if not _is_valid_url(source_url):
        raise _reject("sourceUrl", "Must be a well-formed URL")
    if len(message_hash) < MIN_MESSAGE_HASH_LENGTH:
        raise _reject("messageHash", f"Must be at least {MIN_MESSAGE_HASH_LENGTH} characters")

    button_index = _lookup(raw, _FIELD_ALIASES["buttonIndex"])
    if button_index is _MISSING:
        button_index = MIN_BUTTON_INDEX
    elif not _is_int(button_index) or not MIN_BUTTON_INDEX <= button_index <= MAX_BUTTON_INDEX:
        raise _reject("buttonIndex", f"Must be an integer between {MIN_BUTTON_INDEX} and {MAX_BUTTON_INDEX}")

    input_text = _lookup(raw, _FIELD_ALIASES["inputText"])
    if input_text is _MISSING:
        input_text = None
    elif not isinstance(input_text, str) or len(input_text) > MAX_INPUT_TEXT_LENGTH:
        raise _reject("inputText", f"Must be a string of at most {MAX_INPUT_TEXT_LENGTH} characters")

    cast_reference: Optional[CastReference] = None
    cast = _lookup(raw, _FIELD_ALIASES["castReference"])
    if cast is not _MISSING:
        if not isinstance(cast, Mapping):
            raise _reject("castReference", "Must be an object")
        cast_actor = _lookup(cast, _FIELD_ALIASES["actorId"])
        cast_hash = cast.get("hash", _MISSING)
        if not _is_int(cast_actor):
            raise _reject("castReference.actorId", "Must be an integer")
        if not isinstance(cast_hash, str):
            raise _reject("castReference.hash", "Must be a string")
        cast_reference = CastReference(actor_id=cast_actor, hash=cast_hash)

    transaction_id = raw.get("transactionId")
    if transaction_id is not None and not isinstance(transaction_id, str):
        raise _reject("transactionId", "Must be a string")

    return InteractionMessage(
        actor_id=actor_id,
        source_url=source_url,
        message_hash=message_hash,
        timestamp=timestamp,
        network_id=network_id,
        button_index=button_index,
        input_text=input_text,
        cast_reference=cast_reference,
        transaction_id=transaction_id or None,
    )


def parse_interaction_message(raw: Any) -> Optional[InteractionMessage]:
    """Like ``validate_interaction_message`` but returns ``None`` on rejection."""
    try:
        return validate_interaction_message(raw)
    except MessageValidationError as exc:
        logger.debug("Rejected interaction message: %s", exc)
        return None


__all__ = [
    "MAX_INPUT_TEXT_LENGTH",
    "MIN_MESSAGE_HASH_LENGTH",
    "parse_interaction_message",
    "validate_interaction_message",
]
