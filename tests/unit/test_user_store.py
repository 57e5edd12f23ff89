"""Unit tests for the local user document store (src/db/user_store.py)"""
import json
import pytest
from datetime import datetime, timezone

from pydantic import ValidationError as PydanticValidationError

from src.exceptions import StorageError
from src.models.progress import UserDocument


# ============================================================================
# Read / Write Tests
# ============================================================================

@pytest.mark.asyncio
async def test_missing_document_is_none(user_store):
    assert await user_store.get_document("nobody") is None


@pytest.mark.asyncio
async def test_set_and_get_document(user_store, test_user_id):
    synced = datetime(2024, 6, 15, 8, 30, tzinfo=timezone.utc)

    await user_store.set_document(test_user_id, {"total_xp": 750, "steps_today": 5_000, "last_sync": synced})
    document = await user_store.get_document(test_user_id)

    assert document.user_id == test_user_id
    assert document.total_xp == 750
    assert document.steps_today == 5_000
    assert document.last_sync == synced


@pytest.mark.asyncio
async def test_merge_keeps_other_fields(user_store, test_user_id):
    """Test merge writes are shallow merges over the stored document"""
    await user_store.set_document(test_user_id, {"display_name": "Walker", "country": "SE", "total_xp": 100})
    await user_store.set_document(test_user_id, {"total_xp": 250})

    document = await user_store.get_document(test_user_id)
    assert document.display_name == "Walker"
    assert document.country == "SE"
    assert document.total_xp == 250


@pytest.mark.asyncio
async def test_replace_drops_other_fields(user_store, test_user_id):
    await user_store.set_document(test_user_id, {"display_name": "Walker", "total_xp": 100})
    await user_store.set_document(test_user_id, {"total_xp": 5}, merge=False)

    document = await user_store.get_document(test_user_id)
    assert document.display_name == "Anonymous"
    assert document.total_xp == 5


@pytest.mark.asyncio
async def test_unknown_fields_preserved_on_disk(user_store, test_user_id):
    """Test fields the model does not know survive merge writes"""
    await user_store.set_document(test_user_id, {"bio": "10k a day", "prefs": {"push": True}})
    await user_store.set_document(test_user_id, {"total_xp": 1})

    raw = json.loads(user_store.get_document_path(test_user_id).read_text())
    assert raw["bio"] == "10k a day"
    assert raw["prefs"] == {"push": True}


@pytest.mark.asyncio
async def test_invalid_write_never_lands(user_store, test_user_id):
    await user_store.set_document(test_user_id, {"total_xp": 10})

    with pytest.raises(PydanticValidationError):
        await user_store.set_document(test_user_id, {"steps_today": "many"})

    document = await user_store.get_document(test_user_id)
    assert document.steps_today == 0


# ============================================================================
# Defaults / Decoding Tests
# ============================================================================

@pytest.mark.asyncio
async def test_partial_document_gets_defaults(user_store, test_user_id):
    """Test a document with only some fields decodes with documented defaults"""
    path = user_store.get_document_path(test_user_id)
    path.parent.mkdir(parents=True)
    path.write_text(json.dumps({"total_xp": None, "display_name": "", "is_premium": None}))

    document = await user_store.get_document(test_user_id)

    assert document.display_name == "Anonymous"
    assert document.total_xp == 0
    assert document.steps_today == 0
    assert document.is_premium is False
    assert document.daily_bonus_granted is False
    assert document.steps_week is None
    assert document.country is None
    assert document.last_sync is None


def test_negative_counters_decode_as_zero():
    document = UserDocument(user_id="u1", total_xp=-5, steps_today=-100)

    assert document.total_xp == 0
    assert document.steps_today == 0


@pytest.mark.asyncio
async def test_corrupt_document_raises_storage_error(user_store, test_user_id):
    path = user_store.get_document_path(test_user_id)
    path.parent.mkdir(parents=True)
    path.write_text("{not json")

    with pytest.raises(StorageError) as exc_info:
        await user_store.get_document(test_user_id)

    assert exc_info.value.operation == "read_user_document"


@pytest.mark.parametrize("raw_xp", ["Infinity", "NaN"])
def test_non_finite_xp_rejected_by_model(raw_xp):
    with pytest.raises(PydanticValidationError):
        UserDocument.model_validate(json.loads(f'{{"user_id": "u1", "total_xp": {raw_xp}}}'))


@pytest.mark.asyncio
async def test_non_finite_xp_on_disk_raises_storage_error(user_store, test_user_id):
    """Test a stored Infinity total surfaces as a StorageError naming the field"""
    path = user_store.get_document_path(test_user_id)
    path.parent.mkdir(parents=True)
    path.write_text('{"total_xp": Infinity, "steps_today": 1200}')

    with pytest.raises(StorageError) as exc_info:
        await user_store.get_document(test_user_id)

    assert exc_info.value.operation == "read_user_document"
    assert exc_info.value.context["fields"] == ["total_xp"]


# ============================================================================
# Collection Tests
# ============================================================================

@pytest.mark.asyncio
async def test_get_or_create(user_store, test_user_id):
    created = await user_store.get_or_create(test_user_id, display_name="Runner")
    assert created.display_name == "Runner"

    await user_store.set_document(test_user_id, {"total_xp": 42})
    loaded = await user_store.get_or_create(test_user_id, display_name="Ignored")
    assert loaded.display_name == "Runner"
    assert loaded.total_xp == 42


@pytest.mark.asyncio
async def test_list_documents(user_store):
    assert await user_store.list_documents() == []

    await user_store.set_document("b", {"total_xp": 2})
    await user_store.set_document("a", {"total_xp": 1})

    documents = await user_store.list_documents()
    assert [d.user_id for d in documents] == ["a", "b"]


@pytest.mark.asyncio
async def test_delete_document(user_store, test_user_id):
    await user_store.set_document(test_user_id, {"total_xp": 1})

    assert await user_store.delete_document(test_user_id) is True
    assert await user_store.get_document(test_user_id) is None
    assert await user_store.delete_document(test_user_id) is False
