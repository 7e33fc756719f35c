"""
Frame Templates

Pure functions from a screen to the frame document that renders it. Every
document goes through ``build_frame`` so a template that breaks the frame
constraints yields a failed ``TemplateResult`` instead of an exception.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence
from urllib.parse import urlencode

from ...config import Settings, settings as default_settings
from ..errors import TipValidationError
from ..tips.models import UnsignedTransaction
from ..tips.registry import AssetRegistry
from ..tips.validation import validate_amount
from .models import (
    MAX_BUTTON_LABEL_LENGTH,
    MAX_BUTTONS,
    MAX_INPUT_PLACEHOLDER_LENGTH,
    AspectRatio,
    ButtonKind,
    ErrorScreen,
    FrameButton,
    FrameDocument,
    InitialScreen,
    LeaderboardKind,
    LeaderboardScreen,
    Screen,
    ScreenId,
    SelectedScreen,
    SuccessScreen,
    TemplateResult,
    TransactionReadyScreen,
)

PRESET_ICONS = ("💰", "💎", "🚀")
RECIPIENT_PLACEHOLDER = "Recipient address or ENS"

SCREEN_PARAM = "screen"


# =============================================================================
# Validated construction
# =============================================================================

def build_frame(
    image_url: str,
    buttons: Sequence[FrameButton] = (),
    aspect_ratio: AspectRatio = AspectRatio.WIDE,
    input_placeholder: Optional[str] = None,
    opaque_state: Optional[str] = None,
    post_url: Optional[str] = None,
    transaction: Optional[UnsignedTransaction] = None,
    title: str = "Tip Chain",
) -> TemplateResult:
    """Check the frame constraints and return the document or the errors."""
    errors: List[str] = []

    if not image_url:
        errors.append("Image URL is required")

    if len(buttons) > MAX_BUTTONS:
        errors.append(f"Maximum {MAX_BUTTONS} buttons allowed")

    for index, button in enumerate(buttons, start=1):
        if not button.label:
            errors.append(f"Button {index} label is required")
        elif len(button.label) > MAX_BUTTON_LABEL_LENGTH:
            errors.append(f"Button {index} label too long (max {MAX_BUTTON_LABEL_LENGTH} characters)")
        if not isinstance(button.kind, ButtonKind):
            errors.append(f"Button {index} has invalid action")
        if button.kind in (ButtonKind.LINK, ButtonKind.TRANSACTION) and not button.target:
            errors.append(f"Button {index} needs a target")

    if input_placeholder and len(input_placeholder) > MAX_INPUT_PLACEHOLDER_LENGTH:
        errors.append(f"Input text too long (max {MAX_INPUT_PLACEHOLDER_LENGTH} characters)")

    if errors:
        return TemplateResult(errors=errors)

    return TemplateResult(
        document=FrameDocument(
            image_url=image_url,
            buttons=tuple(buttons),
            aspect_ratio=aspect_ratio,
            input_placeholder=input_placeholder,
            opaque_state=opaque_state,
            post_url=post_url,
            transaction=transaction,
            title=title,
        )
    )


# =============================================================================
# URL state codec
# =============================================================================

def screen_to_query(screen: Screen) -> Dict[str, str]:
    """Encode a screen as ordered query parameters."""
    if isinstance(screen, (InitialScreen, SelectedScreen)):
        params = {"recipient": screen.recipient, "amount": screen.amount, "token": screen.token}
    elif isinstance(screen, TransactionReadyScreen):
        params = {"recipient": screen.recipient, "amount": screen.amount, "token": screen.token}
        if screen.chain_id is not None:
            params["chainId"] = str(screen.chain_id)
    elif isinstance(screen, SuccessScreen):
        params = {"txHash": screen.tx_hash}
        if screen.chain_id is not None:
            params["chainId"] = str(screen.chain_id)
    elif isinstance(screen, ErrorScreen):
        params = {"message": screen.message}
    elif isinstance(screen, LeaderboardScreen):
        params = {"kind": screen.kind.value}
    else:
        raise TypeError(f"Unknown screen type: {type(screen).__name__}")
    params[SCREEN_PARAM] = screen.screen_id.value
    return params


def _parse_chain_id(value: Optional[str]) -> Optional[int]:
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def screen_from_query(
    params: Mapping[str, str],
    default_amount: str = "0.01",
    default_token: str = "ETH",
) -> Screen:
    """Decode the screen carried in a URL. Unusable state restarts the flow."""
    raw_screen = (params.get(SCREEN_PARAM) or params.get("status") or ScreenId.INITIAL.value).lower()
    try:
        screen_id = ScreenId(raw_screen)
    except ValueError:
        screen_id = ScreenId.INITIAL

    recipient = (params.get("recipient") or "").strip()
    amount = (params.get("amount") or default_amount).strip()
    token = (params.get("token") or default_token).strip().upper()

    if screen_id is ScreenId.SELECTED:
        return SelectedScreen(recipient=recipient, amount=amount, token=token)
    if screen_id is ScreenId.TRANSACTION_READY:
        return TransactionReadyScreen(
            recipient=recipient,
            amount=amount,
            token=token,
            chain_id=_parse_chain_id(params.get("chainId")),
        )
    if screen_id is ScreenId.SUCCESS and params.get("txHash"):
        return SuccessScreen(tx_hash=params["txHash"], chain_id=_parse_chain_id(params.get("chainId")))
    if screen_id is ScreenId.ERROR:
        return ErrorScreen(message=params.get("message") or ErrorScreen.message)
    if screen_id is ScreenId.LEADERBOARD:
        try:
            kind = LeaderboardKind(params.get("kind") or LeaderboardKind.TIPPERS.value)
        except ValueError:
            kind = LeaderboardKind.TIPPERS
        return LeaderboardScreen(kind=kind)
    return InitialScreen(recipient=recipient, amount=amount, token=token)


def _sorted_presets(amounts: Iterable[str]) -> List[str]:
    presets = []
    for amount in amounts:
        try:
            presets.append(validate_amount(amount))
        except TipValidationError as exc:
            raise ValueError(f"Invalid preset amount {amount!r}: {exc.reason}") from exc
    if len(presets) != 3:
        raise ValueError(f"Exactly three preset amounts are required, got {len(presets)}")
    return sorted(presets, key=Decimal)


# =============================================================================
# Templates
# =============================================================================

class FrameTemplates:
    """
    Renders each screen of the tip flow.

    Buttons that advance the flow post back to ``/frame`` with the current
    screen encoded in the query string; there is no server-side session.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        registry: Optional[AssetRegistry] = None,
    ):
        self.settings = settings or default_settings
        self.registry = registry or AssetRegistry(preferred_chain_id=self.settings.preferred_chain_id)
        self.base_url = self.settings.base_url
        self.presets = _sorted_presets(self.settings.preset_amount_list)
        self.default_token = self.settings.default_token.upper()
        self.title = self.settings.frame_title

        self._renderers: Dict[type, Callable[..., TemplateResult]] = {
            InitialScreen: self._initial,
            SelectedScreen: self._selected,
            TransactionReadyScreen: self._transaction_ready,
            SuccessScreen: self._success,
            ErrorScreen: self._error,
            LeaderboardScreen: self._leaderboard,
        }

    # ------------------------------------------------------------------
    # URLs
    # ------------------------------------------------------------------

    def image_url(self, screen: Screen) -> str:
        return f"{self.base_url}/frame/image?{urlencode(screen_to_query(screen))}"

    def frame_url(self, screen: Optional[Screen] = None) -> str:
        if screen is None:
            return f"{self.base_url}/frame"
        return f"{self.base_url}/frame?{urlencode(screen_to_query(screen))}"

    def prepare_url(self, recipient: str, amount: str, token: str) -> str:
        query = urlencode({"amount": amount, "token": token, "recipient": recipient})
        return f"{self.base_url}/frame/prepare-tip?{query}"

    def transaction_url(self, screen: TransactionReadyScreen) -> str:
        params = {"amount": screen.amount, "token": screen.token, "recipient": screen.recipient}
        if screen.chain_id is not None:
            params["chainId"] = str(screen.chain_id)
        return f"{self.base_url}/frame/tx?{urlencode(params)}"

    def explorer_url(self, tx_hash: str, chain_id: Optional[int] = None) -> str:
        chain = self.registry.get_chain(chain_id) if chain_id is not None else None
        if chain is None:
            chain = self.registry.preferred_chain()
        return chain.tx_url(tx_hash)

    def _visit_app(self) -> FrameButton:
        return FrameButton(label="🔗 Visit App", kind=ButtonKind.LINK, target=self.base_url)

    def _title(self, suffix: str) -> str:
        return f"{self.title} - {suffix}"

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def initial_screen(self, recipient: str = "", amount: Optional[str] = None, token: Optional[str] = None) -> InitialScreen:
        return InitialScreen(
            recipient=recipient,
            amount=amount or self.presets[0],
            token=(token or self.default_token).upper(),
        )

    def render(self, screen: Screen) -> TemplateResult:
        renderer = self._renderers.get(type(screen))
        if renderer is None:
            return TemplateResult(errors=[f"No template for screen {type(screen).__name__}"])
        return renderer(screen)

    def _initial(self, screen: InitialScreen) -> TemplateResult:
        buttons = [
            FrameButton(
                label=f"{icon} Tip {amount} {screen.token}",
                kind=ButtonKind.POST,
                target=self.frame_url(screen),
            )
            for icon, amount in zip(PRESET_ICONS, self.presets)
        ]
        buttons.append(self._visit_app())
        return build_frame(
            image_url=self.image_url(screen),
            buttons=buttons,
            input_placeholder=None if screen.recipient else RECIPIENT_PLACEHOLDER,
            opaque_state=screen.screen_id.value,
            post_url=self.frame_url(screen),
            title=self._title("Send a Tip"),
        )

    def _selected(self, screen: SelectedScreen) -> TemplateResult:
        buttons = [
            FrameButton(
                label="✅ Confirm Tip",
                kind=ButtonKind.POST,
                target=self.prepare_url(screen.recipient, screen.amount, screen.token),
            ),
            FrameButton(label="🔄 Change Amount", kind=ButtonKind.POST, target=self.frame_url(screen)),
            self._visit_app(),
        ]
        return build_frame(
            image_url=self.image_url(screen),
            buttons=buttons,
            opaque_state=screen.screen_id.value,
            post_url=self.frame_url(screen),
            title=self._title("Tip Selected"),
        )

    def _transaction_ready(self, screen: TransactionReadyScreen) -> TemplateResult:
        callback = self.frame_url(screen)
        buttons = [
            FrameButton(
                label="💸 Send Tip",
                kind=ButtonKind.TRANSACTION,
                target=self.transaction_url(screen),
                post_url=callback,
            ),
        ]
        return build_frame(
            image_url=self.image_url(screen),
            buttons=buttons,
            opaque_state=screen.screen_id.value,
            post_url=callback,
            transaction=screen.transaction,
            title=self._title("Execute Transaction"),
        )

    def _success(self, screen: SuccessScreen) -> TemplateResult:
        buttons = [
            FrameButton(label="🎉 Send Another", kind=ButtonKind.POST, target=self.frame_url(screen)),
            FrameButton(
                label="🔗 View on Explorer",
                kind=ButtonKind.LINK,
                target=self.explorer_url(screen.tx_hash, screen.chain_id),
            ),
        ]
        return build_frame(
            image_url=self.image_url(screen),
            buttons=buttons,
            opaque_state=screen.screen_id.value,
            post_url=self.frame_url(screen),
            title=self._title("Success"),
        )

    def _error(self, screen: ErrorScreen) -> TemplateResult:
        buttons = [
            FrameButton(label="🔄 Try Again", kind=ButtonKind.POST, target=self.frame_url(screen)),
            self._visit_app(),
        ]
        return build_frame(
            image_url=self.image_url(screen),
            buttons=buttons,
            opaque_state=screen.screen_id.value,
            post_url=self.frame_url(screen),
            title=self._title("Error"),
        )

    def _leaderboard(self, screen: LeaderboardScreen) -> TemplateResult:
        toggle = "👑 Top Recipients" if screen.kind is LeaderboardKind.TIPPERS else "🏆 Top Tippers"
        buttons = [
            FrameButton(label=toggle, kind=ButtonKind.POST, target=self.frame_url(screen)),
            FrameButton(label="💰 Send Tip", kind=ButtonKind.POST, target=self.frame_url(screen)),
            self._visit_app(),
        ]
        return build_frame(
            image_url=self.image_url(screen),
            buttons=buttons,
            opaque_state=screen.screen_id.value,
            post_url=self.frame_url(screen),
            title=self._title("Leaderboard"),
        )


__all__ = [
    "FrameTemplates",
    "build_frame",
    "screen_from_query",
    "screen_to_query",
]
