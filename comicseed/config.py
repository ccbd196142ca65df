from typing import ClassVar
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from pathlib import Path


def _split_comma_list(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseSettings):
    app_name: ClassVar[str] = "ComicSeed"
    version: ClassVar[str] = "0.2.0"

    database_url: str = "sqlite:///./storage/database/comics.db"

    # --- SOURCE DATA ---
    # JSON files are looked up relative to data_dir.
    # Comma-separated list of file names or wildcard patterns (e.g. "comics*.json")
    data_dir: Path = Path(".")
    users_sources_raw: str = Field(default="users.json", alias="USERS_SOURCES")
    comics_sources_raw: str = Field(default="comics.json,comicsdata*.json", alias="COMICS_SOURCES")
    chapters_sources_raw: str = Field(default="chapters.json,chaptersdata*.json", alias="CHAPTERS_SOURCES")

    @property
    def users_sources(self) -> list[str]:
        return _split_comma_list(self.users_sources_raw)

    @property
    def comics_sources(self) -> list[str]:
        return _split_comma_list(self.comics_sources_raw)

    @property
    def chapters_sources(self) -> list[str]:
        return _split_comma_list(self.chapters_sources_raw)

    # --- UPLOADS ---
    # One of: local, cloudinary, imagekit
    upload_provider: str = "local"

    cloudinary_cloud_name: str | None = None
    cloudinary_api_key: str | None = None
    cloudinary_api_secret: str | None = None

    imagekit_public_key: str | None = None
    imagekit_private_key: str | None = None
    imagekit_url_endpoint: str | None = None

    # Image download behaviour
    image_download_timeout: float = 30.0
    image_download_retries: int = 3

    # Placeholders used when an image cannot be resolved
    fallback_comic_image: str = "/placeholder-comic.jpg"
    fallback_chapter_image: str = "/shadcn.jpg"
    fallback_user_image: str = "/shadcn.jpg"

    # --- SEEDED USERS ---
    seed_default_password: str = Field(default="password", alias="CUSTOM_PASSWORD")
    seed_bcrypt_rounds: int = 10

    # Storage paths
    public_dir: Path = Path("public")
    log_dir: Path = Path("storage/logs")
    cache_dir: Path = Path("storage/cache")
    status_file: Path = Path("storage/cache/seed-progress.json")

    model_config = SettingsConfigDict(env_file=".env",
                                      extra="ignore",
                                      env_ignore_empty=True,
                                      case_sensitive=False,
                                      populate_by_name=True,
                                      )

    @property
    def lock_file(self) -> Path:
        return self.cache_dir / "seed.lock"


settings = Settings()
