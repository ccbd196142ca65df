"""
Seed record schemas.

Each entity type has one strict model: unknown keys are rejected, loosely typed
JSON values are coerced (numeric strings to numbers, date strings to datetimes).
Validation never raises for bad data; callers get ``Valid`` or ``Invalid`` back.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Type, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    ValidationError,
    field_validator,
)
from pydantic.alias_generators import to_camel

from comicseed.core.image_path import is_absolute_url

EntityType = Literal["user", "comic", "chapter"]


class SeedModel(BaseModel):
    model_config = ConfigDict(
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        str_strip_whitespace=True,
    )


def _check_image_reference(value: str) -> str:
    if not value:
        raise ValueError("Image reference is empty")
    if is_absolute_url(value) or value.startswith("/"):
        return value
    raise ValueError("Invalid image URL")


class ImageRef(SeedModel):
    url: str

    @field_validator("url")
    @classmethod
    def check_url(cls, v: str) -> str:
        return _check_image_reference(v)


class NamedRef(SeedModel):
    """Author, artist, type and genre references are reduced to {name}"""
    name: str = Field(min_length=1)


def _to_named(value: Any) -> Any:
    if isinstance(value, str):
        return {"name": value}
    return value


# ==========================================
# USER
# ==========================================

class UserSeed(SeedModel):
    id: Optional[str] = Field(default=None, pattern=r"^[0-9a-fA-F-]{36}$")
    name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    image: Optional[str] = None
    password: Optional[str] = Field(default=None, min_length=1)
    role: Literal["user", "admin", "moderator"] = "user"
    email_verified: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("image")
    @classmethod
    def check_image(cls, v: Optional[str]) -> Optional[str]:
        return _check_image_reference(v) if v is not None else v


# ==========================================
# COMIC
# ==========================================

class ComicSeed(SeedModel):
    title: str = Field(min_length=1, max_length=255)
    slug: str = Field(min_length=1, max_length=512)
    description: str = Field(min_length=1, max_length=5000)
    url: Optional[str] = None
    images: List[ImageRef] = Field(default_factory=list)
    cover_image: Optional[str] = None
    rating: Optional[float] = None
    status: str = "Ongoing"
    serialization: Optional[str] = None
    updated_at: Optional[datetime] = None
    type: Optional[NamedRef] = None
    author: Optional[NamedRef] = None
    artist: Optional[NamedRef] = None
    genres: List[NamedRef] = Field(default_factory=list)

    @field_validator("type", "author", "artist", mode="before")
    @classmethod
    def reduce_to_name(cls, v: Any) -> Any:
        return _to_named(v)

    @field_validator("genres", mode="before")
    @classmethod
    def reduce_genres(cls, v: Any) -> Any:
        if isinstance(v, list):
            return [_to_named(g) for g in v]
        return v

    @field_validator("rating")
    @classmethod
    def clamp_rating(cls, v: Optional[float]) -> Optional[float]:
        if v is None:
            return v
        return min(10.0, max(0.0, v))

    @field_validator("cover_image")
    @classmethod
    def check_cover(cls, v: Optional[str]) -> Optional[str]:
        return _check_image_reference(v) if v is not None else v


# ==========================================
# CHAPTER
# ==========================================

class ChapterComicRef(SeedModel):
    title: str = Field(min_length=1)
    slug: str = Field(min_length=1)


class ChapterSeed(SeedModel):
    title: str = Field(min_length=1, max_length=255)
    chapter_number: int = Field(gt=0)
    comic: ChapterComicRef
    url: Optional[str] = None
    release_date: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    views: int = Field(default=0, ge=0)
    images: List[ImageRef] = Field(default_factory=list)


SeedRecord = Union[UserSeed, ComicSeed, ChapterSeed]

SCHEMAS: Dict[str, Type[SeedModel]] = {
    "user": UserSeed,
    "comic": ComicSeed,
    "chapter": ChapterSeed,
}


# ==========================================
# RESULTS
# ==========================================

FieldErrors = Dict[str, List[str]]


@dataclass(frozen=True)
class Valid:
    record: SeedRecord
    ok: bool = True


@dataclass(frozen=True)
class Invalid:
    errors: FieldErrors
    ok: bool = False


@dataclass
class ValidationReport:
    entity: str
    valid: List[SeedRecord] = field(default_factory=list)
    # Source index -> field -> messages
    errors: Dict[int, FieldErrors] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return len(self.valid) + len(self.errors)


def _field_errors(exc: ValidationError) -> FieldErrors:
    errors: FieldErrors = {}
    for err in exc.errors():
        key = ".".join(str(part) for part in err["loc"]) or "record"
        errors.setdefault(key, []).append(err["msg"])
    return errors


def get_schema(entity: EntityType) -> Type[SeedModel]:
    try:
        return SCHEMAS[entity]
    except KeyError:
        raise ValueError(f"Unknown seed entity type: {entity!r}") from None


def validate_record(entity: EntityType, data: Any) -> Union[Valid, Invalid]:
    schema = get_schema(entity)
    try:
        return Valid(schema.model_validate(data))
    except ValidationError as exc:
        return Invalid(_field_errors(exc))


def validate_records(entity: EntityType, items: List[Any]) -> ValidationReport:
    """Partition raw records into canonical records and per-index field errors"""
    report = ValidationReport(entity=entity)
    for index, item in enumerate(items):
        outcome = validate_record(entity, item)
        if outcome.ok:
            report.valid.append(outcome.record)
        else:
            report.errors[index] = outcome.errors
    return report
