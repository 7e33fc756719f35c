"""
Frame Models

Screens of the tip wizard, the rendered frame document, and the inbound
interaction message.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional, Tuple, Union

from ..errors import TemplateConstructionError
from ..tips.models import UnsignedTransaction

MAX_BUTTONS = 4
MAX_BUTTON_LABEL_LENGTH = 32
MAX_INPUT_PLACEHOLDER_LENGTH = 32


class ScreenId(str, Enum):
    """Steps of the frame flow. The value is what travels in the URL."""

    INITIAL = "initial"
    SELECTED = "selected"
    TRANSACTION_READY = "transaction"
    SUCCESS = "success"
    ERROR = "error"
    LEADERBOARD = "leaderboard"


class AspectRatio(str, Enum):
    WIDE = "1.91:1"
    SQUARE = "1:1"


class ButtonKind(str, Enum):
    POST = "post"
    LINK = "link"
    TRANSACTION = "tx"


class LeaderboardKind(str, Enum):
    TIPPERS = "tippers"
    RECIPIENTS = "recipients"

    @property
    def other(self) -> "LeaderboardKind":
        if self is LeaderboardKind.TIPPERS:
            return LeaderboardKind.RECIPIENTS
        return LeaderboardKind.TIPPERS


# =============================================================================
# Screens
# =============================================================================

@dataclass(frozen=True)
class InitialScreen:
    screen_id: ClassVar[ScreenId] = ScreenId.INITIAL

    recipient: str = ""
    amount: str = "0.01"
    token: str = "ETH"


@dataclass(frozen=True)
class SelectedScreen:
    screen_id: ClassVar[ScreenId] = ScreenId.SELECTED

    recipient: str
    amount: str
    token: str


@dataclass(frozen=True)
class TransactionReadyScreen:
    screen_id: ClassVar[ScreenId] = ScreenId.TRANSACTION_READY

    recipient: str
    amount: str
    token: str
    chain_id: Optional[int] = None
    # Filled in by the preparer; absent while the screen only travels in a URL
    transaction: Optional[UnsignedTransaction] = None


@dataclass(frozen=True)
class SuccessScreen:
    screen_id: ClassVar[ScreenId] = ScreenId.SUCCESS

    tx_hash: str
    chain_id: Optional[int] = None


@dataclass(frozen=True)
class ErrorScreen:
    screen_id: ClassVar[ScreenId] = ScreenId.ERROR

    message: str = "Something went wrong"


@dataclass(frozen=True)
class LeaderboardScreen:
    screen_id: ClassVar[ScreenId] = ScreenId.LEADERBOARD

    kind: LeaderboardKind = LeaderboardKind.TIPPERS


Screen = Union[
    InitialScreen,
    SelectedScreen,
    TransactionReadyScreen,
    SuccessScreen,
    ErrorScreen,
    LeaderboardScreen,
]


# =============================================================================
# Documents
# =============================================================================

@dataclass(frozen=True)
class FrameButton:
    label: str
    kind: ButtonKind = ButtonKind.POST
    target: Optional[str] = None
    post_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "label": self.label,
            "kind": self.kind.value,
            "target": self.target,
            "postUrl": self.post_url,
        }


@dataclass(frozen=True)
class FrameDocument:
    """Rendered response for one step of the flow."""

    image_url: str
    buttons: Tuple[FrameButton, ...] = ()
    aspect_ratio: AspectRatio = AspectRatio.WIDE
    input_placeholder: Optional[str] = None
    opaque_state: Optional[str] = None
    post_url: Optional[str] = None
    transaction: Optional[UnsignedTransaction] = None
    title: str = "Tip Chain"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "imageUrl": self.image_url,
            "aspectRatio": self.aspect_ratio.value,
            "buttons": [b.to_dict() for b in self.buttons],
            "inputPlaceholder": self.input_placeholder,
            "opaqueState": self.opaque_state,
            "postUrl": self.post_url,
            "transaction": self.transaction.to_dict() if self.transaction else None,
            "title": self.title,
        }


@dataclass
class TemplateResult:
    """Outcome of validated frame construction: a document or the errors."""

    document: Optional[FrameDocument] = None
    errors: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.document is not None and not self.errors

    def unwrap(self) -> FrameDocument:
        if not self.ok:
            raise TemplateConstructionError(self.errors)
        return self.document  # type: ignore[return-value]


# =============================================================================
# Inbound messages
# =============================================================================

@dataclass(frozen=True)
class CastReference:
    actor_id: int
    hash: str


@dataclass(frozen=True)
class InteractionMessage:
    """One validated user action on a frame."""

    actor_id: int
    source_url: str
    message_hash: str
    timestamp: int
    network_id: int
    button_index: int = 1
    input_text: Optional[str] = None
    cast_reference: Optional[CastReference] = None
    # Set by the client on the callback after a wallet-executed tx button
    transaction_id: Optional[str] = None
