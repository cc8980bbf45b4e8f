from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="TIMELINE_", env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # Application
    app_name: str = "Timeline Engine"
    app_version: str = "0.1.0"
    environment: Literal["development", "staging", "production"] = "development"

    # Remote persistence API
    api_base_url: str = "http://localhost:8000"
    api_token: str = ""
    request_timeout: float = 30.0

    # Local durable store (crash-safety floor)
    local_store_url: str = "sqlite:///timeline_local.db"
    local_store_echo: bool = False
    enable_local_backup: bool = True

    # Autosave: local write every tick, remote write every Nth tick
    autosave_interval_s: float = 10.0
    remote_save_every_n_ticks: int = 6

    # Retry queue
    retry_sweep_interval_s: float = 5.0
    retry_base_delay_s: float = 5.0
    retry_max_delay_s: float = 60.0
    retry_max_attempts: int = 10

    # Timeline defaults
    default_frame_rate: Literal[24, 30, 60] = 30
    default_duration_s: float = 60.0
    min_timeline_duration_s: float = 60.0
    default_video_tracks: int = 8
    default_audio_tracks: int = 8
    legacy_clip_tracks: int = 4
    duplicate_gap_s: float = 0.5
    skip_seconds: float = 5.0

    # Manual export (user-owned GitHub repository)
    export_github_api_url: str = "https://api.github.com"
    export_github_token: str = ""
    export_github_owner: str = ""
    export_github_repo: str = ""
    export_github_branch: str = "main"
    export_timeout: float = 60.0


@lru_cache
def get_settings() -> Settings:
    return Settings()
