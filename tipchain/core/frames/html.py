"""Wire form of a frame document: an HTML page carrying fc:frame meta tags."""

import json
from html import escape
from typing import List

from .models import FrameDocument

FRAME_VERSION = "vNext"
DESCRIPTION = "Send cryptocurrency tips seamlessly through Farcaster frames"


def _meta(prop: str, content: str, attr: str = "property") -> str:
    return f'<meta {attr}="{escape(prop)}" content="{escape(content, quote=True)}">'


def frame_meta_tags(document: FrameDocument) -> List[str]:
    tags = [
        _meta("fc:frame", FRAME_VERSION),
        _meta("fc:frame:image", document.image_url),
        _meta("fc:frame:image:aspect_ratio", document.aspect_ratio.value),
    ]

    if document.post_url:
        tags.append(_meta("fc:frame:post_url", document.post_url))

    for index, button in enumerate(document.buttons, start=1):
        prefix = f"fc:frame:button:{index}"
        tags.append(_meta(prefix, button.label))
        tags.append(_meta(f"{prefix}:action", button.kind.value))
        if button.target:
            tags.append(_meta(f"{prefix}:target", button.target))
        if button.post_url:
            tags.append(_meta(f"{prefix}:post_url", button.post_url))

    if document.input_placeholder:
        tags.append(_meta("fc:frame:input:text", document.input_placeholder))

    if document.opaque_state:
        tags.append(_meta("fc:frame:state", document.opaque_state))

    if document.transaction is not None:
        tx = document.transaction.to_frame_tx()
        tags.append(_meta("fc:frame:tx:chain_id", str(document.transaction.chain_id)))
        tags.append(_meta("fc:frame:tx:method", tx["method"]))
        params = {k: v for k, v in tx["params"].items() if k != "abi"}
        tags.append(_meta("fc:frame:tx:params", json.dumps([params], separators=(",", ":"))))

    return tags


def render_frame_html(document: FrameDocument, app_url: str = "") -> str:
    """Render the full HTML page for ``document``."""
    title = escape(document.title)
    meta = "\n    ".join(
        frame_meta_tags(document)
        + [
            _meta("og:title", document.title),
            _meta("og:description", DESCRIPTION),
            _meta("og:image", document.image_url),
            _meta("og:url", app_url),
            _meta("og:type", "website"),
            _meta("twitter:card", "summary_large_image", attr="name"),
            _meta("twitter:title", document.title, attr="name"),
            _meta("twitter:image", document.image_url, attr="name"),
        ]
    )
    return f"""<!DOCTYPE html>
<html>
  <head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1">
    <title>{title}</title>
    {meta}
  </head>
  <body>
    <h1>{title}</h1>
    <p>{escape(DESCRIPTION)}</p>
    <img src="{escape(document.image_url, quote=True)}" alt="{title}">
  </body>
</html>
"""
