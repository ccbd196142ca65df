from dataclasses import dataclass
from typing import Literal

SeedMode = Literal["seed", "clear", "reset"]


@dataclass(frozen=True)
class SeedConfig:
    """Options for one seed invocation. Read-only once built."""
    users: bool = False
    comics: bool = False
    chapters: bool = False
    all: bool = False
    mode: SeedMode = "seed"
    batch_size: int = 100
    image_concurrency: int = 5
    skip_images: bool = False
    verbose: bool = False
    dry_run: bool = False
    force_overwrite: bool = False

    def __post_init__(self):
        if self.batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        if self.image_concurrency < 1:
            raise ValueError("image_concurrency must be at least 1")
        if self.mode not in ("seed", "clear", "reset"):
            raise ValueError(f"Unknown seed mode: {self.mode}")

    @property
    def seed_all(self) -> bool:
        # No entity flag means everything
        return self.all or not (self.users or self.comics or self.chapters)

    @property
    def seed_users(self) -> bool:
        return self.seed_all or self.users

    @property
    def seed_comics(self) -> bool:
        return self.seed_all or self.comics

    @property
    def seed_chapters(self) -> bool:
        return self.seed_all or self.chapters
