"""
Application configuration loaded from environment variables.

Uses pydantic-settings for type-safe env var parsing with automatic
.env file loading. Every knob the service needs (upstream stats server
address, push endpoint, dashboard bootstrap values) lives here.

To extend: add new fields here and document them in .env.example.
See https://docs.pydantic.dev/latest/concepts/pydantic_settings/
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


def _split_csv(raw: str) -> list[str]:
    return [part.strip() for part in raw.split(",") if part.strip()]


class Settings(BaseSettings):
    # ─── Core ──────────────────────────────────────────────────────
    environment: str = "development"
    debug: bool = False

    # ─── CORS ──────────────────────────────────────────────────────
    # Dashboards are served from other origins; computed JSON must be
    # readable cross-origin. Comma-separated, "*" allows everyone.
    cors_origins_str: str = "*"

    @property
    def cors_origins(self) -> list[str]:
        return _split_csv(self.cors_origins_str)

    # ─── Upstream stats HTTP server ────────────────────────────────
    # Source of truth for discovery and historical series.
    stats_http_host: str = "localhost"
    stats_http_port: int = 8080
    upstream_timeout_seconds: float = 10.0

    @property
    def stats_server_base_url(self) -> str:
        return f"http://{self.stats_http_host}:{self.stats_http_port}"

    # ─── Live push endpoint ────────────────────────────────────────
    # Published to dashboard clients; must be reachable from the browser,
    # so host/port can differ from the bind address behind a proxy.
    stream_scheme: str = "ws"
    stream_host: str = "localhost"
    stream_port: int = 8000
    stream_path: str = "/api/v1/stream"
    subscriber_queue_size: int = 100

    # ─── Snapshot cache ────────────────────────────────────────────
    # When True, each channel ingest rebuilds the "overview" scope from
    # all channel snapshots. Leave False when upstream pushes overview.
    derive_overview: bool = False
    broadcaster_tokens_str: str = "bbc"

    @property
    def broadcaster_tokens(self) -> tuple[str, ...]:
        return tuple(_split_csv(self.broadcaster_tokens_str))

    # ─── Rate limiting ─────────────────────────────────────────────
    # Applies to routes that forward to the upstream stats server.
    proxy_rate_limit: str = "60/minute"

    # ─── Dashboard bootstrap ───────────────────────────────────────
    dashboard_logo_template: str = "/img/logos/{channel}.png"
    dashboard_logo_missing: str = "/img/logos/missing.png"
    dashboard_programme_uri: str = "https://www.bbc.co.uk/programmes/{id}"
    dashboard_programme_picture_uri: str = "https://ichef.bbci.co.uk/images/ic/304x171/{id}.jpg"
    dashboard_initial_services_str: str = "bbc_one,bbc_two,radio_one,radio_two"

    @property
    def dashboard_initial_services(self) -> list[str]:
        return _split_csv(self.dashboard_initial_services_str)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Don't fail on unknown env vars
    )


# Module-level singleton — import this everywhere instead of instantiating Settings()
settings = Settings()
