"""Application settings for wpp-live."""

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings for the WPP backend and refresh loop."""

    model_config = SettingsConfigDict(
        env_prefix="WPP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    base_url: str = Field(
        default="http://localhost:8000",
        validation_alias=AliasChoices("WPP_BASE", "WPP_BASE_URL", "NEXT_PUBLIC_WPP_BASE"),
    )
    timeout_s: float = 10.0
    garbage_n: int = 25
    debounce_s: float = 0.25
    refresh_interval_s: float = 60.0
    auto_refresh: bool = True
    default_metric: str = "spread"
    default_target_prob: float = 0.65
