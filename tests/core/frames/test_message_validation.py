"""
Tests for inbound frame message validation
"""

import pytest

from tipchain.core.errors import MessageValidationError
from tipchain.core.frames import parse_interaction_message, validate_interaction_message


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def raw_message() -> dict:
    """A well-formed button press."""
    return {
        "fid": 1234,
        "url": "https://tip-chain.vercel.app/frame",
        "messageHash": "0xabcdef0123456789",
        "timestamp": 1_700_000_000,
        "network": 1,
        "buttonIndex": 2,
    }


# =============================================================================
# Accepted messages
# =============================================================================

class TestAcceptedMessages:

    def test_minimal_message(self, raw_message: dict):
        message = validate_interaction_message(raw_message)
        assert message.actor_id == 1234
        assert message.source_url == "https://tip-chain.vercel.app/frame"
        assert message.button_index == 2
        assert message.input_text is None
        assert message.cast_reference is None

    def test_untrusted_data_envelope_is_unwrapped(self, raw_message: dict):
        message = validate_interaction_message({"untrustedData": raw_message, "trustedData": {"messageBytes": "00"}})
        assert message.actor_id == 1234

    def test_canonical_field_names(self):
        message = validate_interaction_message({
            "actorId": 7,
            "sourceUrl": "https://example.com/cast",
            "messageHash": "0x1111111111",
            "timestamp": 1,
            "networkId": 1,
        })
        assert message.actor_id == 7
        assert message.network_id == 1

    def test_button_index_defaults_to_one(self, raw_message: dict):
        del raw_message["buttonIndex"]
        assert validate_interaction_message(raw_message).button_index == 1

    def test_input_text_and_cast(self, raw_message: dict):
        raw_message["inputText"] = "vitalik.eth"
        raw_message["castId"] = {"fid": 99, "hash": "0xdeadbeef"}
        message = validate_interaction_message(raw_message)
        assert message.input_text == "vitalik.eth"
        assert message.cast_reference.actor_id == 99
        assert message.cast_reference.hash == "0xdeadbeef"

    def test_transaction_id_is_carried(self, raw_message: dict):
        raw_message["transactionId"] = "0x" + "ab" * 32
        assert validate_interaction_message(raw_message).transaction_id == "0x" + "ab" * 32


# =============================================================================
# Rejected messages
# =============================================================================

class TestRejectedMessages:

    def test_button_index_five_rejected(self, raw_message: dict):
        raw_message["buttonIndex"] = 5
        with pytest.raises(MessageValidationError) as exc_info:
            validate_interaction_message(raw_message)
        assert exc_info.value.field == "buttonIndex"

    @pytest.mark.parametrize("value", [0, -1, "2", 2.0, True])
    def test_bad_button_index(self, raw_message: dict, value):
        raw_message["buttonIndex"] = value
        with pytest.raises(MessageValidationError):
            validate_interaction_message(raw_message)

    @pytest.mark.parametrize("field", ["fid", "url", "messageHash", "timestamp", "network"])
    def test_required_fields(self, raw_message: dict, field: str):
        del raw_message[field]
        with pytest.raises(MessageValidationError) as exc_info:
            validate_interaction_message(raw_message)
        assert exc_info.value.reason == "Field is required"

    def test_first_failure_wins(self, raw_message: dict):
        del raw_message["fid"]
        raw_message["buttonIndex"] = 9
        with pytest.raises(MessageValidationError) as exc_info:
            validate_interaction_message(raw_message)
        assert exc_info.value.field == "actorId"

    @pytest.mark.parametrize("fid", [0, -5, "1234", True])
    def test_actor_id_must_be_positive_int(self, raw_message: dict, fid):
        raw_message["fid"] = fid
        with pytest.raises(MessageValidationError):
            validate_interaction_message(raw_message)

    @pytest.mark.parametrize("url", ["not a url", "/frame", "https://"])
    def test_malformed_url(self, raw_message: dict, url: str):
        raw_message["url"] = url
        with pytest.raises(MessageValidationError) as exc_info:
            validate_interaction_message(raw_message)
        assert exc_info.value.field == "sourceUrl"

    def test_short_message_hash(self, raw_message: dict):
        raw_message["messageHash"] = "0x123"
        with pytest.raises(MessageValidationError) as exc_info:
            validate_interaction_message(raw_message)
        assert exc_info.value.field == "messageHash"

    def test_input_text_too_long(self, raw_message: dict):
        raw_message["inputText"] = "x" * 257
        with pytest.raises(MessageValidationError):
            validate_interaction_message(raw_message)

    def test_cast_must_be_object(self, raw_message: dict):
        raw_message["castId"] = "0xdeadbeef"
        with pytest.raises(MessageValidationError):
            validate_interaction_message(raw_message)

    @pytest.mark.parametrize("raw", [None, [], "message", 42])
    def test_non_object(self, raw):
        with pytest.raises(MessageValidationError):
            validate_interaction_message(raw)

    def test_parse_returns_none_on_rejection(self, raw_message: dict):
        raw_message["buttonIndex"] = 5
        assert parse_interaction_message(raw_message) is None
        raw_message["buttonIndex"] = 4
        assert parse_interaction_message(raw_message) is not None
