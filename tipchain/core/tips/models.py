"""
Tip request and unsigned transaction models.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

# transfer(address,uint256) for the transaction frame's abi field
ERC20_TRANSFER_ABI: List[Dict[str, Any]] = [
    {
        "type": "function",
        "name": "transfer",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "to", "type": "address"},
            {"name": "amount", "type": "uint256"},
        ],
        "outputs": [{"name": "", "type": "bool"}],
    }
]


class TipRequest(BaseModel):
    """A candidate tip as submitted by the web UI.

    Field-level checks live in ``validation.validate_tip_request`` so the
    frame flow and the JSON API apply the exact same rules.
    """

    amount: str = Field(description="Decimal amount in whole token units, e.g. '0.05'")
    token: str = Field(description="Token symbol (ETH, USDC, USDT, WETH, DAI)")
    recipient: str = Field(description="0x address or ENS name")
    chain_id: Optional[int] = Field(default=None, alias="chainId", description="Target chain")
    message: Optional[str] = Field(default=None, description="Optional note, max 280 chars")

    model_config = {"populate_by_name": True}


@dataclass(frozen=True)
class UnsignedTransaction:
    """A transaction payload ready for the user's wallet to sign."""

    to: str
    value: str      # smallest unit, base 10
    data: str       # "0x" for native transfers
    chain_id: int

    @property
    def is_native_transfer(self) -> bool:
        return self.data == "0x"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "to": self.to,
            "value": self.value,
            "data": self.data,
            "chainId": self.chain_id,
        }

    def to_frame_tx(self) -> Dict[str, Any]:
        """Transaction-frame response body (eth_sendTransaction)."""
        params: Dict[str, Any] = {
            "abi": [] if self.is_native_transfer else ERC20_TRANSFER_ABI,
            "to": self.to,
            "value": self.value,
            "data": self.data,
        }
        return {
            "chainId": f"eip155:{self.chain_id}",
            "method": "eth_sendTransaction",
            "params": params,
        }
