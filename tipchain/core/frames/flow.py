"""
Frame flow: ties the state machine, templates and preparer together.

Every method returns a renderable document. Preparer failures become the
Error screen instead of propagating to the transport layer.
"""

import logging
from dataclasses import dataclass, replace
from typing import Optional

from ..errors import (
    NoSupportedChainError,
    TipValidationError,
    UnsupportedConfigurationError,
    UpstreamFailureError,
)
from ..tips.tx_builder import TransactionPreparer
from ..tips.validation import validate_tx_hash
from .models import (
    ErrorScreen,
    FrameDocument,
    InteractionMessage,
    LeaderboardKind,
    LeaderboardScreen,
    Screen,
    SuccessScreen,
    TransactionReadyScreen,
)
from .state_machine import FrameAction, FrameStateMachine, Transition
from .templates import FrameTemplates

logger = logging.getLogger(__name__)

CACHE_SHORT = "public, s-maxage=60, stale-while-revalidate=30"
CACHE_LONG = "public, s-maxage=3600"
NO_CACHE = "no-cache"


@dataclass(frozen=True)
class FlowResult:
    document: FrameDocument
    status_code: int = 200
    cache_control: str = NO_CACHE
    transition: Optional[Transition] = None


class FrameFlow:
    """Entry points used by the frame routes."""

    def __init__(
        self,
        templates: FrameTemplates,
        state_machine: Optional[FrameStateMachine] = None,
        preparer: Optional[TransactionPreparer] = None,
    ):
        self.templates = templates
        self.state_machine = state_machine or FrameStateMachine(
            presets=templates.presets,
            default_token=templates.default_token,
        )
        self.preparer = preparer or TransactionPreparer(registry=templates.registry)

    def initial(
        self,
        recipient: str = "",
        amount: Optional[str] = None,
        token: Optional[str] = None,
    ) -> FlowResult:
        screen = self.templates.initial_screen(recipient=recipient.strip(), amount=amount, token=token)
        return self._render(screen, cache_control=CACHE_SHORT)

    def advance(self, screen: Screen, message: InteractionMessage) -> FlowResult:
        transition = self.state_machine.next(screen, message)
        if transition.action is FrameAction.PREPARE_TRANSACTION:
            result = self._prepare_screen(transition.screen)  # type: ignore[arg-type]
        else:
            result = self._render(transition.screen)
        return replace(result, transition=transition)

    def prepare(
        self,
        recipient: str,
        amount: str,
        token: str,
        chain_id: Optional[int] = None,
    ) -> FlowResult:
        screen = TransactionReadyScreen(recipient=recipient, amount=amount, token=token, chain_id=chain_id)
        return self._prepare_screen(screen)

    def success(self, tx_hash: str, chain_id: Optional[int] = None) -> FlowResult:
        """Raises ``TipValidationError`` for a malformed hash."""
        screen = SuccessScreen(tx_hash=validate_tx_hash(tx_hash), chain_id=chain_id)
        return self._render(screen, cache_control=CACHE_LONG)

    def leaderboard(self, kind: LeaderboardKind = LeaderboardKind.TIPPERS) -> FlowResult:
        return self._render(LeaderboardScreen(kind=kind), cache_control=CACHE_SHORT)

    def error(self, message: str, status_code: int = 200) -> FlowResult:
        return self._render(ErrorScreen(message=message), status_code=status_code)

    def _prepare_screen(self, screen: TransactionReadyScreen) -> FlowResult:
        try:
            tx = self.preparer.prepare(
                amount=screen.amount,
                token=screen.token,
                recipient=screen.recipient,
                chain_id=screen.chain_id,
            )
        except TipValidationError as exc:
            return self.error(exc.reason)
        except NoSupportedChainError as exc:
            logger.error("Configuration issue: %s", exc)
            return self.error("Tipping is temporarily unavailable", status_code=500)
        except UnsupportedConfigurationError as exc:
            logger.warning("Configuration issue: %s", exc)
            return self.error(str(exc))
        except UpstreamFailureError as exc:
            logger.warning("Upstream failure while preparing tip: %s", exc)
            return self.error("Could not prepare your tip. Please try again.")

        ready = replace(screen, chain_id=tx.chain_id, transaction=tx)
        return self._render(ready)

    def _render(
        self,
        screen: Screen,
        status_code: int = 200,
        cache_control: str = NO_CACHE,
    ) -> FlowResult:
        result = self.templates.render(screen)
        if result.ok:
            return FlowResult(document=result.unwrap(), status_code=status_code, cache_control=cache_control)

        logger.error(
            "Frame template for %s failed: %s",
            screen.screen_id.value,
            "; ".join(result.errors),
        )
        fallback = self.templates.render(ErrorScreen())
        return FlowResult(document=fallback.unwrap(), status_code=status_code, cache_control=NO_CACHE)


__all__ = [
    "CACHE_LONG",
    "CACHE_SHORT",
    "NO_CACHE",
    "FlowResult",
    "FrameFlow",
]
