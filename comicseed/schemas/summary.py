from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class RecordFailure(CamelModel):
    """One record that did not make it into the database"""
    index: Optional[int] = None
    key: Optional[str] = None
    error: str
    fields: Dict[str, List[str]] = Field(default_factory=dict)


class EntityStats(CamelModel):
    total: int = 0
    created: int = 0
    updated: int = 0
    skipped: int = 0
    errors: int = 0
    images_downloaded: int = 0
    images_cached: int = 0

    # Not part of the counters; kept for reporting
    failures: List[RecordFailure] = Field(default_factory=list, exclude=True)

    @property
    def processed(self) -> int:
        return self.created + self.updated + self.skipped + self.errors

    def summary_line(self) -> str:
        return (f"{self.total} total, {self.created} created, {self.updated} updated, "
                f"{self.skipped} skipped, {self.errors} errors")


class SeedSummary(CamelModel):
    users: EntityStats = Field(default_factory=EntityStats)
    comics: EntityStats = Field(default_factory=EntityStats)
    chapters: EntityStats = Field(default_factory=EntityStats)
    message: str = ""
    duration: float = 0.0
    dry_run: bool = False

    @property
    def total_errors(self) -> int:
        return self.users.errors + self.comics.errors + self.chapters.errors
