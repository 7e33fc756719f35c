"""
Still images for frame screens, rendered with Pillow.

Images are a pure function of the screen in the query string, so responses
can be cached publicly.
"""

from io import BytesIO
from typing import List, Tuple

from PIL import Image, ImageDraw, ImageFont

from .models import (
    AspectRatio,
    ErrorScreen,
    InitialScreen,
    LeaderboardKind,
    LeaderboardScreen,
    Screen,
    SelectedScreen,
    SuccessScreen,
    TransactionReadyScreen,
)

IMAGE_SIZES = {
    AspectRatio.WIDE: (1146, 600),
    AspectRatio.SQUARE: (600, 600),
}

BACKGROUNDS = {
    "default": ((59, 130, 246), (139, 92, 246)),
    "success": ((16, 185, 129), (5, 150, 105)),
    "error": ((239, 68, 68), (220, 38, 38)),
}

WHITE = (255, 255, 255)


def _shorten(value: str, limit: int = 20) -> str:
    return value if len(value) <= limit else f"{value[:limit]}..."


def _lines_for(screen: Screen) -> Tuple[str, List[str]]:
    """Background key and text lines (title first) for a screen."""
    if isinstance(screen, SelectedScreen):
        return "default", ["Tip Selected!", f"{screen.amount} {screen.token}", f"to {_shorten(screen.recipient)}"]
    if isinstance(screen, TransactionReadyScreen):
        return "default", ["Ready to Send!", f"{screen.amount} {screen.token}", f"to {_shorten(screen.recipient)}"]
    if isinstance(screen, SuccessScreen):
        tx = screen.tx_hash
        return "success", ["Tip Sent!", f"Transaction: {tx[:10]}...{tx[-8:]}"]
    if isinstance(screen, ErrorScreen):
        return "error", ["Error", _shorten(screen.message, 60)]
    if isinstance(screen, LeaderboardScreen):
        title = "Top Tippers" if screen.kind is LeaderboardKind.TIPPERS else "Top Recipients"
        return "default", ["Tip Chain Leaderboard", title]
    if isinstance(screen, InitialScreen):
        recipient = _shorten(screen.recipient) if screen.recipient else "someone special"
        return "default", ["Tip Chain", f"Send a tip to {recipient}", f"Suggested: {screen.amount} {screen.token}"]
    return "default", ["Tip Chain"]


def _font(size: int) -> ImageFont.ImageFont:
    return ImageFont.load_default(size=size)


def _gradient(size: Tuple[int, int], start: Tuple[int, int, int], end: Tuple[int, int, int]) -> Image.Image:
    width, height = size
    img = Image.new("RGB", size, start)
    draw = ImageDraw.Draw(img)
    for x in range(width):
        t = x / max(width - 1, 1)
        color = tuple(int(s + (e - s) * t) for s, e in zip(start, end))
        draw.line([(x, 0), (x, height)], fill=color)
    return img


def render_frame_image(screen: Screen, aspect_ratio: AspectRatio = AspectRatio.WIDE) -> bytes:
    """Render the PNG shown for ``screen``."""
    size = IMAGE_SIZES[aspect_ratio]
    background, lines = _lines_for(screen)
    img = _gradient(size, *BACKGROUNDS[background])
    draw = ImageDraw.Draw(img)

    width, height = size
    fonts = [_font(72)] + [_font(40)] * (len(lines) - 1)
    spacing = 30
    heights = []
    for text, font in zip(lines, fonts):
        left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
        heights.append(bottom - top)
    y = (height - (sum(heights) + spacing * (len(lines) - 1))) // 2

    for text, font, line_height in zip(lines, fonts, heights):
        left, _, right, _ = draw.textbbox((0, 0), text, font=font)
        x = (width - (right - left)) // 2
        draw.text((x, y), text, fill=WHITE, font=font)
        y += line_height + spacing

    buffer = BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()
