import json
from pathlib import Path

from pydantic import AliasChoices, Field, computed_field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # API
    app_name: str = "pushwire"
    app_version: str = "0.1.0"

    # VAPID identity (base64url, raw P-256 scalar / uncompressed point)
    vapid_public_key: str = ""
    vapid_private_key: str = ""
    vapid_subject: str = "mailto:noreply@deentracker.app"

    # Delivery
    push_ttl_s: int = Field(default=86_400, ge=0)
    push_timeout_s: float = Field(default=10.0, gt=0)
    push_max_concurrency: int = Field(default=8, ge=1)
    default_icon: str = "/pwa-192x192.png"

    # Paths
    state_dir: str = Field(
        default=str(Path.home() / ".pushwire"),
        validation_alias=AliasChoices("state_dir", "PUSHWIRE_STATE"),
        description="Directory for state files (config.json, subscriptions)",
    )

    @computed_field  # type: ignore[prop-decorator]
    @property
    def push_subs_path(self) -> Path:
        """JSON file for push subscriptions."""
        return Path(self.state_dir) / "push_subscriptions.json"

    model_config = {
        "env_file": ".env",
        "extra": "ignore",
    }


_override: Settings | None = None


def get_settings() -> Settings:
    """Return the active settings instance."""
    if _override:
        return _override
    settings = Settings()
    return _load_config_file(settings)


def _load_config_file(settings: Settings) -> Settings:
    """Load and merge config.json if it exists."""
    config_path = Path(settings.state_dir) / "config.json"
    if not config_path.exists():
        return settings

    try:
        data = json.loads(config_path.read_text())
        if not isinstance(data, dict):
            return settings

        if "state_dir" in data and isinstance(data["state_dir"], str):
            data["state_dir"] = str(Path(data["state_dir"]).expanduser())

        merged = settings.model_dump(exclude={"push_subs_path"}) | data
        return Settings.model_validate(merged)
    except (json.JSONDecodeError, OSError):
        return settings


def override_settings(s: Settings | None) -> None:
    """Swap in a custom Settings (use None to reset)."""
    global _override  # noqa: PLW0603
    _override = s
