import logging
from datetime import datetime, timezone
from typing import Optional

from comicseed.core.security import get_password_hash
from comicseed.models import User
from comicseed.schemas.seed import UserSeed
from comicseed.services.seeders.base import BaseSeeder

logger = logging.getLogger(__name__)


class UserSeeder(BaseSeeder[UserSeed]):
    entity = "user"
    label = "users"

    def record_key(self, record: UserSeed) -> str:
        return record.email.lower()

    async def prepare(self, record: UserSeed) -> Optional[str]:
        """Resolve the avatar. Falls back to the placeholder when it cannot be fetched."""
        if not record.image:
            return self.settings.fallback_user_image

        [(source, resolved, error)] = await self.resolve_images([record.image], "avatars")
        if error is not None:
            logger.warning(f"Avatar for {record.email} unavailable ({error}), using placeholder")
            return self.settings.fallback_user_image
        return resolved.url

    def find_existing(self, record: UserSeed, prepared) -> Optional[User]:
        return self.repository.get_user_by_email(record.email)

    def _fields(self, record: UserSeed, avatar: str) -> dict:
        password = record.password or self.settings.seed_default_password
        fields = {
            "name": record.name,
            "email": record.email.lower(),
            "image": avatar,
            "role": record.role,
            "hashed_password": get_password_hash(password, rounds=self.settings.seed_bcrypt_rounds),
            "email_verified": record.email_verified or datetime.now(timezone.utc),
        }
        if record.updated_at:
            fields["updated_at"] = record.updated_at
        return fields

    def create(self, record: UserSeed, prepared: str) -> None:
        fields = self._fields(record, prepared)
        if record.id:
            fields["id"] = record.id
        if record.created_at:
            fields["created_at"] = record.created_at
        self.repository.create_user(**fields)

    def update(self, existing: User, record: UserSeed, prepared: str) -> None:
        self.repository.update_user(existing, **self._fields(record, prepared))
