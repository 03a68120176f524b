from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="DOTSTRAP_", case_sensitive=False)

    home: Path | None = None
    staging_dir: Path = Path(".dotstrap/generated")
    backup_dir_name: str = ".dotstrap-backups"
    workers: int = Field(default=1, ge=1)
    clone_attempts: int = Field(default=3, ge=1)

    def staging_root(self, home: Path) -> Path:
        if self.staging_dir.is_absolute():
            return self.staging_dir
        return home / self.staging_dir
