from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field

from ..core.tips.models import TipRequest
from ..core.tips.tx_builder import TransactionPreparer


router = APIRouter(prefix="/tips")


class PreparedTipResponse(BaseModel):
    to: str = Field(description="Recipient for native transfers, token contract otherwise")
    value: str = Field(description="Native value in wei, base 10")
    data: str = Field(description="Call data, '0x' for native transfers")
    chainId: int


def get_preparer(request: Request) -> TransactionPreparer:
    return request.app.state.flow.preparer


@router.post("/prepare")
async def post_prepare_tip(
    req: TipRequest,
    preparer: TransactionPreparer = Depends(get_preparer),
) -> PreparedTipResponse:
    """Unsigned transaction for the web UI to hand to the user's wallet."""
    tx = preparer.prepare_request(req)
    return PreparedTipResponse(**tx.to_dict())
