"""
Frame protocol endpoints.

Every step of the tip wizard is a separate request. The current screen
travels in the query string of the button target, so these handlers are
stateless apart from rate-limit accounting.
"""

import json
import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import HTMLResponse, JSONResponse, Response

from ..core.errors import MessageValidationError, TipValidationError
from ..core.frames.flow import FlowResult, FrameFlow
from ..core.frames.html import render_frame_html
from ..core.frames.image import render_frame_image
from ..core.frames.message import validate_interaction_message
from ..core.frames.models import AspectRatio, InteractionMessage, LeaderboardKind
from ..core.frames.templates import screen_from_query
from ..core.tips.tx_builder import TransactionPreparer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/frame")


# =============================================================================
# Dependencies
# =============================================================================


def get_flow(request: Request) -> FrameFlow:
    return request.app.state.flow


def get_preparer(request: Request) -> TransactionPreparer:
    return request.app.state.flow.preparer


# =============================================================================
# Helpers
# =============================================================================


def _frame_response(result: FlowResult, flow: FrameFlow) -> HTMLResponse:
    return HTMLResponse(
        content=render_frame_html(result.document, app_url=flow.templates.base_url),
        status_code=result.status_code,
        headers={"Cache-Control": result.cache_control},
    )


async def _read_message(request: Request) -> InteractionMessage:
    try:
        body: Any = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise MessageValidationError(None, "Request body must be JSON") from exc
    return validate_interaction_message(body)


def _chain_id_param(value: Optional[str]) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except ValueError as exc:
        raise TipValidationError("chainId", "Chain ID must be an integer") from exc


# =============================================================================
# Endpoints
# =============================================================================


@router.get("", response_class=HTMLResponse)
async def get_frame(
    recipient: str = Query("", description="0x address or ENS name"),
    amount: Optional[str] = Query(None, description="Suggested amount"),
    token: Optional[str] = Query(None, description="Token symbol"),
    flow: FrameFlow = Depends(get_flow),
):
    """Entry screen of the tip frame."""
    return _frame_response(flow.initial(recipient=recipient, amount=amount, token=token), flow)


@router.post("", response_class=HTMLResponse)
async def post_frame(request: Request, flow: FrameFlow = Depends(get_flow)):
    """Advance the wizard from the screen encoded in the URL."""
    message = await _read_message(request)
    screen = screen_from_query(
        request.query_params,
        default_amount=flow.templates.presets[0],
        default_token=flow.templates.default_token,
    )
    result = flow.advance(screen, message)
    logger.debug(
        "Frame %s -> %s (button %d, fid %d)",
        screen.screen_id.value,
        result.transition.to_screen.value if result.transition else "?",
        message.button_index,
        message.actor_id,
    )
    return _frame_response(result, flow)


@router.post("/prepare-tip", response_class=HTMLResponse)
async def post_prepare_tip(
    request: Request,
    amount: str = Query(""),
    token: Optional[str] = Query(None),
    recipient: str = Query(""),
    chain_id: Optional[str] = Query(None, alias="chainId"),
    flow: FrameFlow = Depends(get_flow),
):
    """Confirm step: build the unsigned transaction and show the send screen."""
    message = await _read_message(request)
    result = flow.prepare(
        recipient=recipient.strip() or (message.input_text or "").strip(),
        amount=amount,
        token=token or flow.templates.default_token,
        chain_id=_chain_id_param(chain_id),
    )
    return _frame_response(result, flow)


@router.get("/prepare-tip", response_class=HTMLResponse)
async def get_prepare_tip(
    tx_hash: Optional[str] = Query(None, alias="txHash"),
    chain_id: Optional[str] = Query(None, alias="chainId"),
    flow: FrameFlow = Depends(get_flow),
):
    """Success screen for a submitted transaction."""
    return _frame_response(flow.success(tx_hash, chain_id=_chain_id_param(chain_id)), flow)


@router.post("/tx")
async def post_transaction(
    request: Request,
    amount: str = Query(""),
    token: Optional[str] = Query(None),
    recipient: str = Query(""),
    chain_id: Optional[str] = Query(None, alias="chainId"),
    preparer: TransactionPreparer = Depends(get_preparer),
    flow: FrameFlow = Depends(get_flow),
):
    """Transaction target of the send button, returns the wallet payload."""
    await _read_message(request)
    tx = preparer.prepare(
        amount=amount,
        token=token or flow.templates.default_token,
        recipient=recipient,
        chain_id=_chain_id_param(chain_id),
    )
    return JSONResponse(content=tx.to_frame_tx(), headers={"Cache-Control": "no-cache"})


@router.get("/image")
def get_frame_image(
    request: Request,
    aspect_ratio: str = Query(AspectRatio.WIDE.value, alias="aspectRatio"),
    flow: FrameFlow = Depends(get_flow),
):
    """PNG still for the screen described by the query string."""
    screen = screen_from_query(
        request.query_params,
        default_amount=flow.templates.presets[0],
        default_token=flow.templates.default_token,
    )
    try:
        ratio = AspectRatio(aspect_ratio)
    except ValueError:
        ratio = AspectRatio.WIDE
    png = render_frame_image(screen, ratio)
    max_age = request.app.state.settings.image_cache_seconds
    return Response(
        content=png,
        media_type="image/png",
        headers={"Cache-Control": f"public, max-age={max_age}"},
    )


@router.get("/leaderboard", response_class=HTMLResponse)
async def get_leaderboard(
    kind: str = Query(LeaderboardKind.TIPPERS.value),
    flow: FrameFlow = Depends(get_flow),
):
    try:
        board = LeaderboardKind(kind)
    except ValueError as exc:
        raise TipValidationError("kind", "Leaderboard kind must be 'tippers' or 'recipients'") from exc
    return _frame_response(flow.leaderboard(board), flow)
