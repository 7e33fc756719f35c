"""
Tests for frame templates, the URL state codec and the HTML wire form
"""

from urllib.parse import parse_qs, urlsplit

import pytest

from tipchain.config import Settings
from tipchain.core.errors import TemplateConstructionError
from tipchain.core.frames import (
    ButtonKind,
    ErrorScreen,
    FrameButton,
    FrameTemplates,
    InitialScreen,
    LeaderboardKind,
    LeaderboardScreen,
    SelectedScreen,
    SuccessScreen,
    TransactionReadyScreen,
    build_frame,
    render_frame_html,
    screen_from_query,
    screen_to_query,
)
from tipchain.core.tips import UnsignedTransaction

RECIPIENT = "0xABCDabcdABCDabcdABCDabcdABCDabcdABCDabcd"
TX_HASH = "0x" + "1f" * 32


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def settings() -> Settings:
    return Settings(app_url="https://tips.example/")


@pytest.fixture
def templates(settings: Settings) -> FrameTemplates:
    return FrameTemplates(settings=settings)


# =============================================================================
# Validated construction
# =============================================================================

class TestBuildFrame:

    def test_valid_document(self):
        result = build_frame(
            image_url="https://tips.example/frame/image",
            buttons=[FrameButton(label="Go", target="https://tips.example/frame")],
        )
        assert result.ok
        assert result.unwrap().buttons[0].label == "Go"

    def test_image_url_required(self):
        result = build_frame(image_url="")
        assert not result.ok
        assert "Image URL is required" in result.errors

    def test_more_than_four_buttons(self):
        buttons = [FrameButton(label=str(i)) for i in range(5)]
        result = build_frame(image_url="https://x.example/i.png", buttons=buttons)
        assert result.errors == ["Maximum 4 buttons allowed"]

    def test_label_length(self):
        ok = build_frame(image_url="https://x.example/i.png", buttons=[FrameButton(label="x" * 32)])
        too_long = build_frame(image_url="https://x.example/i.png", buttons=[FrameButton(label="x" * 33)])
        assert ok.ok
        assert not too_long.ok

    def test_empty_label(self):
        assert not build_frame(image_url="https://x.example/i.png", buttons=[FrameButton(label="")]).ok

    def test_link_needs_target(self):
        result = build_frame(
            image_url="https://x.example/i.png",
            buttons=[FrameButton(label="Open", kind=ButtonKind.LINK)],
        )
        assert result.errors == ["Button 1 needs a target"]

    def test_placeholder_length(self):
        result = build_frame(image_url="https://x.example/i.png", input_placeholder="y" * 33)
        assert not result.ok

    def test_errors_are_collected(self):
        result = build_frame(image_url="", input_placeholder="y" * 33)
        assert len(result.errors) == 2

    def test_unwrap_raises(self):
        with pytest.raises(TemplateConstructionError) as exc_info:
            build_frame(image_url="").unwrap()
        assert exc_info.value.errors == ["Image URL is required"]


# =============================================================================
# URL state codec
# =============================================================================

class TestScreenQuery:

    @pytest.mark.parametrize(
        "screen",
        [
            InitialScreen(recipient=RECIPIENT, amount="0.05", token="ETH"),
            SelectedScreen(recipient=RECIPIENT, amount="0.1", token="USDC"),
            TransactionReadyScreen(recipient=RECIPIENT, amount="0.1", token="USDC", chain_id=10),
            SuccessScreen(tx_hash=TX_HASH, chain_id=8453),
            ErrorScreen(message="Token DAI not supported on Base"),
            LeaderboardScreen(kind=LeaderboardKind.RECIPIENTS),
        ],
    )
    def test_round_trip(self, screen):
        assert screen_from_query(screen_to_query(screen)) == screen

    def test_tip_screen_parameter_order(self):
        params = screen_to_query(InitialScreen(recipient=RECIPIENT, amount="0.05", token="ETH"))
        assert list(params) == ["recipient", "amount", "token", "screen"]

    def test_unknown_screen_restarts(self):
        screen = screen_from_query({"screen": "bogus", "recipient": RECIPIENT})
        assert screen == InitialScreen(recipient=RECIPIENT, amount="0.01", token="ETH")

    def test_missing_screen_is_initial(self):
        assert isinstance(screen_from_query({}), InitialScreen)

    def test_success_without_hash_restarts(self):
        assert isinstance(screen_from_query({"screen": "success"}), InitialScreen)

    def test_legacy_status_parameter(self):
        screen = screen_from_query({"status": "selected", "recipient": RECIPIENT, "amount": "0.05", "token": "eth"})
        assert screen == SelectedScreen(recipient=RECIPIENT, amount="0.05", token="ETH")

    def test_bad_chain_id_is_dropped(self):
        screen = screen_from_query({"screen": "transaction", "recipient": RECIPIENT, "chainId": "base"})
        assert screen.chain_id is None


# =============================================================================
# Screen templates
# =============================================================================

class TestFrameTemplates:

    def test_presets_sorted(self):
        templates = FrameTemplates(settings=Settings(preset_amounts="0.1,0.01,0.05"))
        assert templates.presets == ["0.01", "0.05", "0.1"]

    @pytest.mark.parametrize("presets", ["0.01,0.05", "0.01,0.05,0.1,1", "0.01,abc,0.1", "0,0.05,0.1"])
    def test_bad_presets(self, presets: str):
        with pytest.raises(ValueError):
            FrameTemplates(settings=Settings(preset_amounts=presets))

    def test_initial_screen(self, templates: FrameTemplates):
        screen = templates.initial_screen(recipient=RECIPIENT, amount="0.05", token="eth")
        document = templates.render(screen).unwrap()

        labels = [b.label for b in document.buttons]
        assert labels == ["💰 Tip 0.01 ETH", "💎 Tip 0.05 ETH", "🚀 Tip 0.1 ETH", "🔗 Visit App"]
        assert document.buttons[3].kind is ButtonKind.LINK
        assert document.buttons[3].target == "https://tips.example"
        assert document.image_url.startswith("https://tips.example/frame/image?")
        assert f"recipient={RECIPIENT}&amount=0.05&token=ETH" in document.image_url
        assert document.input_placeholder is None
        assert document.opaque_state == "initial"

    def test_initial_without_recipient_asks_for_one(self, templates: FrameTemplates):
        document = templates.render(templates.initial_screen()).unwrap()
        assert document.input_placeholder == "Recipient address or ENS"

    def test_preset_buttons_post_back_to_frame(self, templates: FrameTemplates):
        document = templates.render(templates.initial_screen(recipient=RECIPIENT)).unwrap()
        target = urlsplit(document.buttons[0].target)
        assert target.path == "/frame"
        assert parse_qs(target.query)["screen"] == ["initial"]

    def test_selected_confirm_targets_prepare(self, templates: FrameTemplates):
        document = templates.render(SelectedScreen(recipient=RECIPIENT, amount="0.05", token="ETH")).unwrap()
        confirm = urlsplit(document.buttons[0].target)
        assert confirm.path == "/frame/prepare-tip"
        assert parse_qs(confirm.query) == {"amount": ["0.05"], "token": ["ETH"], "recipient": [RECIPIENT]}
        assert [b.label for b in document.buttons] == ["✅ Confirm Tip", "🔄 Change Amount", "🔗 Visit App"]

    def test_transaction_ready(self, templates: FrameTemplates):
        tx = UnsignedTransaction(to=RECIPIENT, value="50000000000000000", data="0x", chain_id=8453)
        screen = TransactionReadyScreen(recipient=RECIPIENT, amount="0.05", token="ETH", chain_id=8453, transaction=tx)
        document = templates.render(screen).unwrap()

        assert len(document.buttons) == 1
        button = document.buttons[0]
        assert button.kind is ButtonKind.TRANSACTION
        assert urlsplit(button.target).path == "/frame/tx"
        assert parse_qs(urlsplit(button.post_url).query)["screen"] == ["transaction"]
        assert document.transaction == tx

    def test_success_links_to_explorer(self, templates: FrameTemplates):
        document = templates.render(SuccessScreen(tx_hash=TX_HASH, chain_id=10)).unwrap()
        assert document.buttons[1].target == f"https://optimistic.etherscan.io/tx/{TX_HASH}"

    def test_success_unknown_chain_uses_preferred(self, templates: FrameTemplates):
        document = templates.render(SuccessScreen(tx_hash=TX_HASH)).unwrap()
        assert document.buttons[1].target == f"https://basescan.org/tx/{TX_HASH}"

    def test_error_screen(self, templates: FrameTemplates):
        document = templates.render(ErrorScreen(message="Amount is too large")).unwrap()
        assert [b.label for b in document.buttons] == ["🔄 Try Again", "🔗 Visit App"]
        assert "message=Amount+is+too+large" in document.image_url

    def test_leaderboard_toggle_label(self, templates: FrameTemplates):
        tippers = templates.render(LeaderboardScreen()).unwrap()
        recipients = templates.render(LeaderboardScreen(kind=LeaderboardKind.RECIPIENTS)).unwrap()
        assert tippers.buttons[0].label == "👑 Top Recipients"
        assert recipients.buttons[0].label == "🏆 Top Tippers"

    def test_render_is_deterministic(self, templates: FrameTemplates):
        screen = SelectedScreen(recipient=RECIPIENT, amount="0.05", token="ETH")
        assert templates.render(screen).unwrap() == templates.render(screen).unwrap()


# =============================================================================
# HTML
# =============================================================================

class TestFrameHtml:

    def test_meta_tags(self, templates: FrameTemplates):
        document = templates.render(templates.initial_screen(recipient=RECIPIENT)).unwrap()
        html = render_frame_html(document, app_url="https://tips.example")

        assert '<meta property="fc:frame" content="vNext">' in html
        assert '<meta property="fc:frame:image:aspect_ratio" content="1.91:1">' in html
        assert '<meta property="fc:frame:button:4:action" content="link">' in html
        assert 'property="og:title"' in html
        assert 'name="twitter:card" content="summary_large_image"' in html

    def test_values_are_escaped(self, templates: FrameTemplates):
        document = templates.render(ErrorScreen(message='<script>"x"</script>')).unwrap()
        html = render_frame_html(document)
        assert "<script>" not in html
        assert "&amp;" in html

    def test_transaction_tags(self, templates: FrameTemplates):
        tx = UnsignedTransaction(to=RECIPIENT, value="1", data="0x", chain_id=8453)
        screen = TransactionReadyScreen(recipient=RECIPIENT, amount="0.05", token="ETH", chain_id=8453, transaction=tx)
        html = render_frame_html(templates.render(screen).unwrap())
        assert '<meta property="fc:frame:tx:chain_id" content="8453">' in html
        assert '<meta property="fc:frame:tx:method" content="eth_sendTransaction">' in html
