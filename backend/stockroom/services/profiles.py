"""
Import profile storage.

Built-in profiles come from catalog_fields.BUILTIN_PROFILES and are read
only. Operator profiles live in the import_profiles table, keyed by the
lower-cased name with whitespace replaced by underscores, so saving
"My Export" twice replaces the first record.
"""

import re

import structlog
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from stockroom.core.catalog_fields import BUILTIN_PROFILES, CATALOG_FIELDS
from stockroom.models.core import ImportProfileRecord
from stockroom.schemas.imports import ImportProfile
from stockroom.services.errors import CatalogStoreError, MappingError, ProfileError

logger = structlog.get_logger()


def profile_key(name: str) -> str:
    """'Halaxy Export' → 'halaxy_export'"""
    return re.sub(r"\s+", "_", name.strip().lower())


def _from_record(record: ImportProfileRecord) -> ImportProfile:
    return ImportProfile(
        name=record.name,
        source_format=record.source_format,
        field_mappings=dict(record.field_mappings or {}),
        default_item_kind=record.default_item_kind,
        description=record.description or "",
    )


class ProfileStore:
    """Read/write accessors for import profiles."""

    def __init__(self, db: AsyncSession):
        self.db = db

    @staticmethod
    def is_builtin(name: str) -> bool:
        return profile_key(name) in BUILTIN_PROFILES

    async def list_profiles(self) -> dict[str, ImportProfile]:
        """Built-ins first, then saved profiles by name."""
        profiles = {key: ImportProfile(**data) for key, data in BUILTIN_PROFILES.items()}
        result = await self.db.execute(select(ImportProfileRecord).order_by(ImportProfileRecord.name))
        for record in result.scalars().all():
            profiles.setdefault(record.key, _from_record(record))
        return profiles

    async def get_profile(self, name: str) -> ImportProfile | None:
        key = profile_key(name)
        if key in BUILTIN_PROFILES:
            return ImportProfile(**BUILTIN_PROFILES[key])
        result = await self.db.execute(
            select(ImportProfileRecord).where(ImportProfileRecord.key == key)
        )
        record = result.scalar_one_or_none()
        return _from_record(record) if record else None

    async def save_profile(self, profile: ImportProfile) -> str:
        """Insert or replace a profile. Returns its key."""
        key = profile_key(profile.name)
        if not key:
            raise ProfileError("Profile name is required")
        if key in BUILTIN_PROFILES:
            raise ProfileError(f"'{profile.name}' is a built-in profile and cannot be overwritten")

        unknown = sorted(f for f in profile.field_mappings if f not in CATALOG_FIELDS)
        if unknown:
            raise MappingError(
                f"Unknown catalog field(s): {', '.join(unknown)}",
                unknown=unknown,
            )

        result = await self.db.execute(
            select(ImportProfileRecord).where(ImportProfileRecord.key == key)
        )
        record = result.scalar_one_or_none()
        if record is None:
            record = ImportProfileRecord(key=key)
            self.db.add(record)
        record.name = profile.name
        record.source_format = profile.source_format.value
        record.field_mappings = dict(profile.field_mappings)
        record.default_item_kind = profile.default_item_kind.value
        record.description = profile.description

        await self._commit(f"save profile '{profile.name}'")
        logger.info("import_profile_saved", key=key, fields=len(profile.field_mappings))
        return key

    async def delete_profile(self, name: str) -> bool:
        """Delete a saved profile. Returns False when no such profile exists."""
        key = profile_key(name)
        if key in BUILTIN_PROFILES:
            raise ProfileError(f"'{name}' is a built-in profile and cannot be deleted")
        result = await self.db.execute(
            delete(ImportProfileRecord).where(ImportProfileRecord.key == key)
        )
        await self._commit(f"delete profile '{name}'")
        deleted = result.rowcount > 0
        if deleted:
            logger.info("import_profile_deleted", key=key)
        return deleted

    async def _commit(self, action: str) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise CatalogStoreError(f"Failed to {action}") from e
