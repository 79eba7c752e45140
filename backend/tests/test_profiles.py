"""Tests for import profile storage."""

import pytest

from stockroom.core.catalog_fields import ItemKind
from stockroom.schemas.imports import ImportProfile, SourceFormat
from stockroom.services.errors import MappingError, ProfileError
from stockroom.services.profiles import ProfileStore, profile_key
from stockroom.services.session import ImportSession
from tests.fixtures.catalog_factory import HALAXY_MAPPING, make_halaxy_csv


def test_profile_key():
    assert profile_key("  My  Stock Export ") == "my_stock_export"


# ─── Built-ins ────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_builtin_profiles_listed(db_session):
    profiles = await ProfileStore(db_session).list_profiles()
    assert "halaxy" in profiles
    assert profiles["halaxy"].field_mappings == HALAXY_MAPPING
    assert profiles["halaxy"].default_item_kind == ItemKind.CONSUMABLE


@pytest.mark.asyncio
async def test_builtin_cannot_be_overwritten(db_session):
    store = ProfileStore(db_session)
    with pytest.raises(ProfileError):
        await store.save_profile(ImportProfile(name="Halaxy", field_mappings={"name": "Name"}))


@pytest.mark.asyncio
async def test_builtin_cannot_be_deleted(db_session):
    with pytest.raises(ProfileError):
        await ProfileStore(db_session).delete_profile("halaxy")


# ─── Saved Profiles ───────────────────────────────────────────

@pytest.mark.asyncio
async def test_save_and_get(db_session):
    store = ProfileStore(db_session)
    profile = ImportProfile(
        name="Clinic Export",
        source_format=SourceFormat.SPREADSHEET,
        field_mappings={"name": "Product", "quantity": "On Hand"},
        default_item_kind=ItemKind.OFFICE_EQUIPMENT,
        description="Monthly stock take",
    )

    key = await store.save_profile(profile)

    assert key == "clinic_export"
    assert await store.get_profile("clinic export") == profile


@pytest.mark.asyncio
async def test_save_replaces_same_key(db_session):
    store = ProfileStore(db_session)
    await store.save_profile(ImportProfile(name="Clinic Export", field_mappings={"name": "Product"}))
    await store.save_profile(ImportProfile(name="clinic  export", field_mappings={"name": "Item"}))

    profiles = await store.list_profiles()

    saved = [p for key, p in profiles.items() if key == "clinic_export"]
    assert len(saved) == 1
    assert saved[0].field_mappings == {"name": "Item"}


@pytest.mark.asyncio
async def test_list_puts_builtins_first(db_session):
    store = ProfileStore(db_session)
    await store.save_profile(ImportProfile(name="Alpha", field_mappings={"name": "Name"}))
    keys = list(await store.list_profiles())
    assert keys[0] == "halaxy"
    assert "alpha" in keys


@pytest.mark.asyncio
async def test_unknown_fields_rejected(db_session):
    with pytest.raises(MappingError) as exc:
        await ProfileStore(db_session).save_profile(
            ImportProfile(name="Bad", field_mappings={"name": "Name", "colour": "Colour"})
        )
    assert exc.value.unknown == ["colour"]


@pytest.mark.asyncio
async def test_delete(db_session):
    store = ProfileStore(db_session)
    await store.save_profile(ImportProfile(name="Temp", field_mappings={"name": "Name"}))

    assert await store.delete_profile("Temp") is True
    assert await store.get_profile("Temp") is None
    assert await store.delete_profile("Temp") is False


@pytest.mark.asyncio
async def test_missing_profile(db_session):
    assert await ProfileStore(db_session).get_profile("nope") is None


@pytest.mark.asyncio
async def test_session_saves_mapping_as_profile(db_session):
    """A mapping saved during one import is offered by the next."""
    profiles = ProfileStore(db_session)
    first = ImportSession.start(make_halaxy_csv(3), filename="march.csv")
    await first.apply_mapping(HALAXY_MAPPING, save_profile_as="Practice Export", profiles=profiles)

    saved = await profiles.get_profile("Practice Export")
    second = ImportSession.start(make_halaxy_csv(5), filename="april.csv", profile=saved)

    assert second.suggested_mapping == HALAXY_MAPPING
