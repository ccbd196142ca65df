import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Generic, List, Optional, Sequence, Tuple, TypeVar

from sqlalchemy.exc import SQLAlchemyError

from comicseed.config import Settings
from comicseed.core.errors import RecordValidationError, UpstreamIOError
from comicseed.core.seed_config import SeedConfig
from comicseed.schemas.seed import validate_records
from comicseed.schemas.summary import EntityStats, RecordFailure
from comicseed.services.batch_processor import BatchProcessor
from comicseed.services.file_loader import FileLoader
from comicseed.services.image_resolver import ImageResolver, ResolvedImage
from comicseed.services.repository import SeedRepository
from comicseed.services.status import SeedStatusWriter

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT")

CREATED = "created"
UPDATED = "updated"
SKIPPED = "skipped"


@dataclass
class SeedContext:
    """Everything one seeder needs for one run"""
    settings: Settings
    config: SeedConfig
    repository: SeedRepository
    resolver: ImageResolver
    loader: FileLoader
    status: Optional[SeedStatusWriter] = None
    # Comic slugs a dry run would have created, so chapters can find their parent
    planned_comics: set = field(default_factory=set)


class BaseSeeder(Generic[RecordT]):
    """
    load -> validate -> batch upsert.

    Subclasses provide the natural-key lookup and the create/update writes.
    Image resolution happens in ``prepare`` (may suspend); everything after it
    runs without awaiting, so one record's database work is never interleaved
    with another's.
    """

    entity: str = ""
    label: str = ""

    def __init__(self, context: SeedContext):
        self.context = context
        self.settings = context.settings
        self.config = context.config
        self.repository = context.repository
        self.resolver = context.resolver
        self.stats = EntityStats()
        # Natural keys a dry run would have created so far
        self._planned: set = set()

    # ------------------------------------------
    # Hooks
    # ------------------------------------------

    def record_key(self, record: RecordT) -> str:
        raise NotImplementedError

    async def prepare(self, record: RecordT) -> Any:
        return None

    def find_existing(self, record: RecordT, prepared: Any):
        raise NotImplementedError

    def create(self, record: RecordT, prepared: Any) -> None:
        raise NotImplementedError

    def update(self, existing, record: RecordT, prepared: Any) -> None:
        raise NotImplementedError

    def on_planned_create(self, record: RecordT) -> None:
        """Dry-run bookkeeping for records that would have been created"""

    # ------------------------------------------
    # Run
    # ------------------------------------------

    async def seed(self, patterns: Sequence[str]) -> EntityStats:
        self.stats = EntityStats()
        self._planned = set()

        raw_records = self.context.loader.read_multiple_json_files(patterns)
        report = validate_records(self.entity, raw_records)
        self.stats.total = len(raw_records)

        logger.info(f"Validated {len(report.valid)}/{len(raw_records)} {self.label}")

        for index, errors in report.errors.items():
            error = RecordValidationError(self.entity, errors, index)
            self.stats.errors += 1
            self.stats.failures.append(RecordFailure(index=index, error=str(error), fields=error.errors))
            detail = "; ".join(f"{k}: {', '.join(v)}" for k, v in errors.items())
            logger.warning(f"{error} ({detail})")

        if not report.valid:
            self._write_status()
            return self.stats

        processor = BatchProcessor(
            batch_size=self.config.batch_size,
            concurrency=self.config.image_concurrency,
            on_batch_complete=self._on_batch_complete,
            on_error=self._on_error,
        )
        await processor.process(report.valid, self._seed_one)

        logger.info(f"{self.label.capitalize()}: {self.stats.summary_line()}")
        return self.stats

    async def _seed_one(self, record: RecordT, index: int) -> str:
        prepared = await self.prepare(record)

        try:
            action = self._upsert(record, prepared)
            if not self.config.dry_run:
                self.repository.commit()
        except SQLAlchemyError as e:
            self.repository.rollback()
            raise UpstreamIOError(f"Database write failed for {self.entity} {self.record_key(record)}: {e}") from e
        except Exception:
            self.repository.rollback()
            raise

        if action == CREATED:
            self.stats.created += 1
        elif action == UPDATED:
            self.stats.updated += 1
        else:
            self.stats.skipped += 1

        logger.debug(f"{action.capitalize()} {self.entity}: {self.record_key(record)}")
        return action

    def _upsert(self, record: RecordT, prepared: Any) -> str:
        existing = self.find_existing(record, prepared)
        key = self.record_key(record)
        # In a dry run an earlier duplicate in the same input stands in for the row
        planned = self.config.dry_run and key in self._planned

        if existing is None and not planned:
            if self.config.dry_run:
                self._planned.add(key)
                self.on_planned_create(record)
            else:
                self.create(record, prepared)
            return CREATED

        if not self.config.force_overwrite:
            return SKIPPED

        if not self.config.dry_run:
            self.update(existing, record, prepared)
        return UPDATED

    def _on_error(self, error: BaseException, record: RecordT) -> None:
        self.stats.errors += 1
        key = self.record_key(record)
        self.stats.failures.append(RecordFailure(key=key, error=str(error) or type(error).__name__))
        logger.error(f"Failed to seed {self.entity} {key}: {error}")

    def _on_batch_complete(self, results: List[str], batch_index: int) -> None:
        logger.info(f"  Progress: {self.stats.processed}/{self.stats.total} {self.label} processed")
        self._write_status()

    def _write_status(self) -> None:
        if self.context.status:
            self.context.status.write(self.label, **{self.label: self.stats.to_dict()})

    # ------------------------------------------
    # Images
    # ------------------------------------------

    async def resolve_images(self, sources: Sequence[str], folder: str) -> List[Tuple[str, Optional[ResolvedImage], Optional[BaseException]]]:
        """Resolve every source concurrently (bounded by the resolver). Keeps source order."""
        settled = await asyncio.gather(
            *(self.resolver.resolve(source, folder) for source in sources),
            return_exceptions=True,
        )

        outcomes = []
        for source, value in zip(sources, settled):
            if isinstance(value, BaseException):
                if not isinstance(value, Exception):
                    raise value
                outcomes.append((source, None, value))
                continue
            self.count_image(value)
            outcomes.append((source, value, None))
        return outcomes

    def count_image(self, image: ResolvedImage) -> None:
        if self.resolver.skip_images:
            return
        if image.cached:
            self.stats.images_cached += 1
        else:
            self.stats.images_downloaded += 1
