"""Application configuration loaded from environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable loading and sensible defaults."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    app_name: str = "commit-relay"
    debug: bool = False
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 3000
    public_base_url: str = "http://localhost:3000"

    # Inbound GitHub webhooks
    github_webhook_secret: str = "dev-secret"
    supported_events: str = "push"

    # Commit enrichment via the GitHub REST API
    github_token: str = ""
    github_api_base: str = "https://api.github.com"
    enrich_commits: bool = True
    enrichment_timeout_seconds: float = 10.0
    enrichment_concurrency: int = 4

    # Discord delivery: an incoming-webhook URL wins over bot token + channel
    discord_webhook_url: str = ""
    discord_token: str = ""
    discord_channel_id: str = ""
    discord_api_base: str = "https://discord.com/api/v10"
    discord_username: str = ""
    delivery_delay_seconds: float = 1.0
    delivery_timeout_seconds: float = 15.0

    # Embed presentation
    embed_title: str = ""
    embed_color: int = 0x0099FF
    language_icon_template: str = (
        "https://cdn.jsdelivr.net/gh/devicons/devicon/icons/{slug}/{slug}-original.svg"
    )
    language_icon_fallback: str = ""

    @property
    def allowed_events(self) -> frozenset[str]:
        """Event types accepted by the classifier, parsed from ``supported_events``."""
        return frozenset(e.strip() for e in self.supported_events.split(",") if e.strip())

    @property
    def delivery_mode(self) -> str:
        """Which Discord transport is configured: ``webhook``, ``bot`` or ``disabled``."""
        if self.discord_webhook_url:
            return "webhook"
        if self.discord_token and self.discord_channel_id:
            return "bot"
        return "disabled"

    @property
    def icon_fallback_url(self) -> str:
        """Placeholder thumbnail used when no language icon can be resolved."""
        if self.language_icon_fallback:
            return self.language_icon_fallback
        return f"{self.public_base_url.rstrip('/')}/static/icons/unknown.png"


settings = Settings()
