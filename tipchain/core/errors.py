"""
Error taxonomy shared by the frame and tip modules.

Validation and rate-limit errors end the current request. Configuration and
upstream errors are turned into an Error frame by the frame flow so the
protocol client always gets something it can render.
"""

from typing import Optional


class TipChainError(Exception):
    """Base class for all service errors."""


class InputValidationError(TipChainError):
    """Malformed user input. Recoverable by re-prompting the user."""

    def __init__(self, field: Optional[str], reason: str):
        self.field = field
        self.reason = reason
        prefix = f"{field}: " if field else ""
        super().__init__(f"{prefix}{reason}")


class MessageValidationError(InputValidationError):
    """Inbound frame interaction message failed structural validation."""


class TipValidationError(InputValidationError):
    """Tip amount, token, recipient or chain failed validation."""


class UnsupportedConfigurationError(TipChainError):
    """Server-side data gap: the request was valid but we cannot serve it."""


class UnsupportedTokenError(UnsupportedConfigurationError):
    """Token has no contract configured on the resolved chain."""

    def __init__(self, token: str, chain_id: int, chain_name: Optional[str] = None):
        self.token = token
        self.chain_id = chain_id
        self.chain_name = chain_name or str(chain_id)
        super().__init__(f"Token {token} not supported on {self.chain_name}")


class NoSupportedChainError(UnsupportedConfigurationError):
    """No chain is configured, so no transaction can be built at all."""

    def __init__(self, message: str = "No supported chains available"):
        super().__init__(message)


class UpstreamFailureError(TipChainError):
    """A collaborator outside this service failed (name resolution, RPC...)."""


class TemplateConstructionError(TipChainError):
    """A frame template violated the document constraints."""

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "Invalid frame document")
