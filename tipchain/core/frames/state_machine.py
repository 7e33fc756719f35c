"""
Frame State Machine

Decides the next screen for an inbound button press. Pure: the current
screen arrives from the URL and the result is handed back to the caller,
which renders it and, for PREPARE_TRANSACTION, runs the preparer.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

from ..errors import TipValidationError
from ..tips.validation import validate_recipient, validate_tx_hash
from .models import (
    ErrorScreen,
    InitialScreen,
    InteractionMessage,
    LeaderboardScreen,
    Screen,
    ScreenId,
    SelectedScreen,
    SuccessScreen,
    TransactionReadyScreen,
)


class FrameAction(str, Enum):
    """Side effect requested by a transition."""

    NONE = "none"
    PREPARE_TRANSACTION = "prepare_transaction"
    LINK_OUT = "link_out"           # handled client-side, screen unchanged


class ButtonAction(str, Enum):
    """What a button does on a given screen."""

    SELECT_PRESET = "select_preset"
    CONFIRM = "confirm"
    CHANGE_AMOUNT = "change_amount"
    SEND_TRANSACTION = "send_transaction"
    RESTART = "restart"
    TOGGLE_LEADERBOARD = "toggle_leaderboard"
    LINK_OUT = "link_out"


@dataclass(frozen=True)
class Transition:
    from_screen: ScreenId
    screen: Screen
    action: FrameAction = FrameAction.NONE
    button_index: int = 1

    @property
    def to_screen(self) -> ScreenId:
        return self.screen.screen_id


class FrameStateMachine:
    """
    Interprets button presses against the current screen.

    Features:
    - Fixed per-screen button layout (index -> action)
    - Out-of-range button indexes fall back to the screen's first button
    - Recipient taken from the URL state, else from the typed input text
    """

    # Button layout per screen, 1-based index = position + 1
    BUTTONS: Dict[ScreenId, Tuple[ButtonAction, ...]] = {
        ScreenId.INITIAL: (
            ButtonAction.SELECT_PRESET,
            ButtonAction.SELECT_PRESET,
            ButtonAction.SELECT_PRESET,
            ButtonAction.LINK_OUT,
        ),
        ScreenId.SELECTED: (
            ButtonAction.CONFIRM,
            ButtonAction.CHANGE_AMOUNT,
            ButtonAction.LINK_OUT,
        ),
        ScreenId.TRANSACTION_READY: (
            ButtonAction.SEND_TRANSACTION,
        ),
        ScreenId.SUCCESS: (
            ButtonAction.RESTART,
            ButtonAction.LINK_OUT,
        ),
        ScreenId.ERROR: (
            ButtonAction.RESTART,
            ButtonAction.LINK_OUT,
        ),
        ScreenId.LEADERBOARD: (
            ButtonAction.TOGGLE_LEADERBOARD,
            ButtonAction.RESTART,
            ButtonAction.LINK_OUT,
        ),
    }

    # Screens each screen can lead to
    TRANSITIONS: Dict[ScreenId, set] = {
        ScreenId.INITIAL: {ScreenId.SELECTED, ScreenId.INITIAL, ScreenId.ERROR},
        ScreenId.SELECTED: {ScreenId.TRANSACTION_READY, ScreenId.INITIAL, ScreenId.SELECTED},
        ScreenId.TRANSACTION_READY: {ScreenId.TRANSACTION_READY, ScreenId.SUCCESS, ScreenId.ERROR},
        ScreenId.SUCCESS: {ScreenId.INITIAL, ScreenId.SUCCESS},
        ScreenId.ERROR: {ScreenId.INITIAL, ScreenId.ERROR},
        ScreenId.LEADERBOARD: {ScreenId.LEADERBOARD, ScreenId.INITIAL},
    }

    def __init__(
        self,
        presets: Sequence[str],
        default_token: str = "ETH",
        logger: Optional[logging.Logger] = None,
    ):
        """
        Args:
            presets: Preset amounts, smallest first (buttons 1, 2, 3)
            default_token: Token used when a restart carries none
            logger: Optional logger
        """
        if len(presets) != 3:
            raise ValueError("Exactly three preset amounts are required")
        self.presets = list(presets)
        self.default_token = default_token
        self.logger = logger or logging.getLogger(__name__)

    def button_count(self, screen_id: ScreenId) -> int:
        return len(self.BUTTONS[screen_id])

    def get_allowed_transitions(self, screen_id: ScreenId) -> set:
        return self.TRANSITIONS.get(screen_id, set())

    def resolve_button(self, screen_id: ScreenId, button_index: int) -> int:
        """Clamp a pressed index onto the screen's layout."""
        if 1 <= button_index <= self.button_count(screen_id):
            return button_index
        self.logger.info(
            "Button %s out of range on %s screen, using button 1",
            button_index,
            screen_id.value,
        )
        return 1

    def actions_for(self, screen_id: ScreenId) -> List[ButtonAction]:
        return list(self.BUTTONS[screen_id])

    def next(self, screen: Screen, message: InteractionMessage) -> Transition:
        """Compute the transition for ``message`` on ``screen``."""
        screen_id = screen.screen_id

        # Callback after the wallet executed the tx button
        if isinstance(screen, TransactionReadyScreen) and message.transaction_id:
            try:
                tx_hash = validate_tx_hash(message.transaction_id)
            except TipValidationError as exc:
                return self._transition(screen_id, ErrorScreen(message=exc.reason), FrameAction.NONE, 1)
            return self._transition(
                screen_id,
                SuccessScreen(tx_hash=tx_hash, chain_id=screen.chain_id),
                FrameAction.NONE,
                1,
            )

        index = self.resolve_button(screen_id, message.button_index)
        button = self.BUTTONS[screen_id][index - 1]

        if button is ButtonAction.LINK_OUT:
            return self._transition(screen_id, screen, FrameAction.LINK_OUT, index)

        if isinstance(screen, InitialScreen):
            return self._from_initial(screen, message, index)

        if isinstance(screen, SelectedScreen):
            if button is ButtonAction.CONFIRM:
                ready = TransactionReadyScreen(
                    recipient=screen.recipient,
                    amount=screen.amount,
                    token=screen.token,
                )
                return self._transition(screen_id, ready, FrameAction.PREPARE_TRANSACTION, index)
            restart = InitialScreen(recipient=screen.recipient, amount=screen.amount, token=screen.token)
            return self._transition(screen_id, restart, FrameAction.NONE, index)

        if isinstance(screen, TransactionReadyScreen):
            # Re-prepare from URL state; the transaction itself is never trusted from the client
            ready = TransactionReadyScreen(
                recipient=screen.recipient,
                amount=screen.amount,
                token=screen.token,
                chain_id=screen.chain_id,
            )
            return self._transition(screen_id, ready, FrameAction.PREPARE_TRANSACTION, index)

        if isinstance(screen, LeaderboardScreen) and button is ButtonAction.TOGGLE_LEADERBOARD:
            return self._transition(screen_id, LeaderboardScreen(kind=screen.kind.other), FrameAction.NONE, index)

        # Success, Error, Leaderboard "send tip": back to the start
        restart = InitialScreen(amount=self.presets[0], token=self.default_token)
        return self._transition(screen_id, restart, FrameAction.NONE, index)

    def _from_initial(self, screen: InitialScreen, message: InteractionMessage, index: int) -> Transition:
        recipient = screen.recipient or (message.input_text or "").strip()
        if not recipient:
            return self._transition(
                ScreenId.INITIAL,
                ErrorScreen(message="Enter a recipient address or ENS name"),
                FrameAction.NONE,
                index,
            )
        try:
            recipient = validate_recipient(recipient)
        except TipValidationError as exc:
            return self._transition(ScreenId.INITIAL, ErrorScreen(message=exc.reason), FrameAction.NONE, index)
        selected = SelectedScreen(
            recipient=recipient,
            amount=self.presets[index - 1],
            token=screen.token,
        )
        return self._transition(ScreenId.INITIAL, selected, FrameAction.NONE, index)

    def _transition(
        self,
        from_screen: ScreenId,
        to: Screen,
        action: FrameAction,
        index: int,
    ) -> Transition:
        if to.screen_id not in self.get_allowed_transitions(from_screen):
            # Table and handlers disagree; surface it rather than render an impossible screen
            raise RuntimeError(
                f"Invalid frame transition from {from_screen.value} to {to.screen_id.value}"
            )
        self.logger.debug(
            "Frame transition %s -> %s (button %s, action %s)",
            from_screen.value,
            to.screen_id.value,
            index,
            action.value,
        )
        return Transition(from_screen=from_screen, screen=to, action=action, button_index=index)


__all__ = [
    "ButtonAction",
    "FrameAction",
    "FrameStateMachine",
    "Transition",
]
