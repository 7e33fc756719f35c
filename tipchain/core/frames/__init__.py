"""
Frame Module

Message validation, screen templates and the state machine that drive the
tip frame.
"""

from .flow import FlowResult, FrameFlow
from .html import render_frame_html
from .image import render_frame_image
from .message import parse_interaction_message, validate_interaction_message
from .models import (
    AspectRatio,
    ButtonKind,
    CastReference,
    ErrorScreen,
    FrameButton,
    FrameDocument,
    InitialScreen,
    InteractionMessage,
    LeaderboardKind,
    LeaderboardScreen,
    Screen,
    ScreenId,
    SelectedScreen,
    SuccessScreen,
    TemplateResult,
    TransactionReadyScreen,
)
from .state_machine import ButtonAction, FrameAction, FrameStateMachine, Transition
from .templates import FrameTemplates, build_frame, screen_from_query, screen_to_query

__all__ = [
    # Flow
    "FrameFlow",
    "FlowResult",
    # State Machine
    "FrameStateMachine",
    "FrameAction",
    "ButtonAction",
    "Transition",
    # Templates
    "FrameTemplates",
    "build_frame",
    "screen_from_query",
    "screen_to_query",
    "render_frame_html",
    "render_frame_image",
    # Messages
    "validate_interaction_message",
    "parse_interaction_message",
    # Models
    "ScreenId",
    "Screen",
    "InitialScreen",
    "SelectedScreen",
    "TransactionReadyScreen",
    "SuccessScreen",
    "ErrorScreen",
    "LeaderboardScreen",
    "LeaderboardKind",
    "AspectRatio",
    "ButtonKind",
    "FrameButton",
    "FrameDocument",
    "TemplateResult",
    "InteractionMessage",
    "CastReference",
]
