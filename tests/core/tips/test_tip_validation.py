"""
Tests for tip parameter validation
"""

import pytest

from tipchain.core.errors import TipValidationError
from tipchain.core.tips import TipRequest, validate_tip_request, validate_tx_hash
from tipchain.core.tips.validation import (
    is_ens_name,
    is_evm_address,
    validate_amount,
    validate_chain_id,
    validate_message,
    validate_token,
)

RECIPIENT = "0x1234567890123456789012345678901234567890"


# =============================================================================
# Amounts
# =============================================================================

class TestAmount:

    @pytest.mark.parametrize("amount", ["1000000", "0.01", "1", "0.000000000000000001", " 0.5 "])
    def test_accepted(self, amount: str):
        assert validate_amount(amount) == amount.strip()

    def test_just_above_max_rejected(self):
        with pytest.raises(TipValidationError) as exc_info:
            validate_amount("1000000.000000000000000001")
        assert exc_info.value.reason == "Amount is too large"

    @pytest.mark.parametrize("amount", ["0", "0.0", "000"])
    def test_zero_rejected(self, amount: str):
        with pytest.raises(TipValidationError) as exc_info:
            validate_amount(amount)
        assert exc_info.value.reason == "Amount must be greater than 0"

    @pytest.mark.parametrize("amount", ["", "abc", "-1", "1e3", ".5", "1.", "1,5", "١٢", "NaN", "Infinity"])
    def test_malformed_rejected(self, amount: str):
        with pytest.raises(TipValidationError):
            validate_amount(amount)

    def test_too_many_decimals(self):
        with pytest.raises(TipValidationError) as exc_info:
            validate_amount("0." + "1" * 19)
        assert exc_info.value.reason == "Too many decimal places"

    @pytest.mark.parametrize("amount", [1, 0.5, None])
    def test_non_string_rejected(self, amount):
        with pytest.raises(TipValidationError):
            validate_amount(amount)


# =============================================================================
# Token, chain, recipient, message
# =============================================================================

class TestFields:

    @pytest.mark.parametrize("token", ["ETH", "usdc", "UsDt", "WETH", "DAI"])
    def test_tokens_upper_cased(self, token: str):
        assert validate_token(token) == token.upper()

    @pytest.mark.parametrize("token", ["", "BTC", None])
    def test_unknown_token(self, token):
        with pytest.raises(TipValidationError):
            validate_token(token)

    @pytest.mark.parametrize("chain_id", [1, 8453, 10, None])
    def test_supported_chains(self, chain_id):
        assert validate_chain_id(chain_id) == chain_id

    @pytest.mark.parametrize("chain_id", [137, 0, "8453", True])
    def test_unsupported_chains(self, chain_id):
        with pytest.raises(TipValidationError):
            validate_chain_id(chain_id)

    def test_custom_supported_chains(self):
        assert validate_chain_id(84532, supported={84532}) == 84532
        with pytest.raises(TipValidationError):
            validate_chain_id(8453, supported={84532})

    def test_address_and_ens(self):
        assert is_evm_address(RECIPIENT)
        assert not is_evm_address(RECIPIENT[:-1])
        assert is_ens_name("vitalik.eth")
        assert not is_ens_name("vitalik.xyz")
        assert not is_ens_name("sub.vitalik.eth")

    def test_message_length(self):
        assert validate_message("x" * 280) == "x" * 280
        with pytest.raises(TipValidationError):
            validate_message("x" * 281)

    def test_tx_hash(self):
        tx_hash = "0x" + "aB" * 32
        assert validate_tx_hash(tx_hash) == tx_hash
        for bad in ("0x" + "a" * 63, "a" * 64, None, "0x" + "g" * 64):
            with pytest.raises(TipValidationError):
                validate_tx_hash(bad)


# =============================================================================
# Whole request
# =============================================================================

class TestTipRequest:

    def test_mapping_with_camel_case_chain(self):
        tip = validate_tip_request({"amount": "0.05", "token": "usdc", "recipient": f" {RECIPIENT} ", "chainId": 10})
        assert tip == TipRequest(amount="0.05", token="USDC", recipient=RECIPIENT, chain_id=10)

    def test_model_is_normalised(self):
        tip = validate_tip_request(TipRequest(amount=" 1 ", token="eth", recipient=RECIPIENT))
        assert tip.amount == "1"
        assert tip.token == "ETH"
        assert tip.chain_id is None

    def test_first_bad_field_reported(self):
        with pytest.raises(TipValidationError) as exc_info:
            validate_tip_request({"amount": "1", "token": "BTC", "recipient": "nobody"})
        assert exc_info.value.field == "token"
