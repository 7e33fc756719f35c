from pathlib import Path
from typing import Any, Dict, List

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Server Settings
    host: str = Field(default="127.0.0.1", description="Server host")
    port: int = Field(default=8000, description="Server port")
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="auto", description="Log output: json, console or auto (JSON unless DEBUG)")

    # Public URL used for frame targets and image URLs
    app_url: str = Field(
        default="https://tip-chain.vercel.app",
        validation_alias=AliasChoices("app_url", "next_public_app_url"),
        description="Public base URL of the app (no trailing slash)",
    )
    frame_title: str = Field(default="Tip Chain", description="Title used in frame HTML documents")

    # Tip defaults
    preset_amounts: str = Field(
        default="0.01,0.05,0.1",
        description="Comma separated preset tip amounts, smallest first",
    )
    default_token: str = Field(default="ETH", description="Token used when none is given")
    preferred_chain_id: int = Field(
        default=8453,
        description="Chain used when a tip does not name one (Base has the lowest fees)",
    )

    # Rate Limiting
    rate_limit_enabled: bool = Field(default=True, description="Enable per-IP rate limiting")
    trusted_ips: str = Field(default="", description="Comma separated IPs that bypass rate limiting")
    trusted_proxies: str = Field(
        default="",
        description="Comma separated proxy IPs whose X-Forwarded-For / X-Real-IP headers are believed",
    )
    rate_limit_api_max_requests: int = Field(default=100, ge=1, description="General API requests per window")
    rate_limit_api_window_ms: int = Field(default=60_000, ge=1, description="General API window")
    rate_limit_frames_max_requests: int = Field(default=50, ge=1, description="Frame interactions per window")
    rate_limit_frames_window_ms: int = Field(default=60_000, ge=1, description="Frame interaction window")
    rate_limit_tips_max_requests: int = Field(default=10, ge=1, description="Tip preparations per window")
    rate_limit_tips_window_ms: int = Field(default=60_000, ge=1, description="Tip preparation window")
    rate_limit_images_max_requests: int = Field(default=200, ge=1, description="Image renders per window")
    rate_limit_images_window_ms: int = Field(default=60_000, ge=1, description="Image render window")

    # Cache Settings
    image_cache_seconds: int = Field(default=300, description="max-age for rendered frame images")

    @property
    def base_url(self) -> str:
        return self.app_url.rstrip("/")

    @property
    def preset_amount_list(self) -> List[str]:
        return [a.strip() for a in self.preset_amounts.split(",") if a.strip()]

    @property
    def trusted_ip_list(self) -> List[str]:
        return [ip.strip() for ip in self.trusted_ips.split(",") if ip.strip()]

    @property
    def trusted_proxy_list(self) -> List[str]:
        return [ip.strip() for ip in self.trusted_proxies.split(",") if ip.strip()]

    def rate_limit_configs(self) -> Dict[str, Dict[str, Any]]:
        """Limits per endpoint class, keyed the way the limiter registry expects."""
        return {
            "api": {
                "max_requests": self.rate_limit_api_max_requests,
                "window_ms": self.rate_limit_api_window_ms,
            },
            "frames": {
                "max_requests": self.rate_limit_frames_max_requests,
                "window_ms": self.rate_limit_frames_window_ms,
            },
            "tips": {
                "max_requests": self.rate_limit_tips_max_requests,
                "window_ms": self.rate_limit_tips_window_ms,
            },
            "images": {
                "max_requests": self.rate_limit_images_max_requests,
                "window_ms": self.rate_limit_images_window_ms,
            },
        }


# Global settings instance
settings = Settings()
