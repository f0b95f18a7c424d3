"""Unit tests for LinkService with a mocked store."""

import datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from shortlinks.config import Settings
from shortlinks.exceptions import (
    AllocationExhausted,
    LinkValidationError,
    RecordNotFound,
    StorageFault,
    UniqueViolation,
)
from shortlinks.link_service import LinkService
from shortlinks.models import Link
from shortlinks.schemas import LinkCreate, LinkUpdate
from shortlinks.store import LinkStore

# ============================================================================
# TEST FIXTURES AND UTILITIES
# ============================================================================


@pytest.fixture
def mock_store() -> AsyncMock:
    store = AsyncMock(spec=LinkStore)
    store.lookup_by_code = AsyncMock(return_value=None)
    return store


@pytest.fixture
def mock_logger() -> MagicMock:
    return MagicMock()


@pytest.fixture
def service(mock_store, mock_logger) -> LinkService:
    return LinkService(mock_store, Settings(CODE_ALLOCATION_MAX_ATTEMPTS=3), mock_logger)


def make_link(**overrides) -> Link:
    fields = {
        "id": 1,
        "caption": "Untitled",
        "target_url": "https://example.com/page",
        "code": "abc123",
        "clicks": 0,
        "created_at": datetime.datetime(2024, 1, 1, tzinfo=datetime.timezone.utc),
    }
    fields.update(overrides)
    return Link(**fields)


async def echo_insert(caption: str, target_url: str, code: str, clicks: int = 0) -> Link:
    return make_link(caption=caption, target_url=target_url, code=code, clicks=clicks)


# ============================================================================
# CREATION
# ============================================================================


class TestCreateLink:
    @pytest.mark.asyncio
    async def test_create_uses_allocated_code_and_default_caption(self, service, mock_store):
        mock_store.insert.side_effect = echo_insert

        link = await service.create_link(LinkCreate(url="https://example.com/page"))

        assert len(link.code) == 6
        assert link.caption == "Untitled"
        assert link.clicks == 0
        mock_store.insert.assert_awaited_once_with("Untitled", "https://example.com/page", link.code)

    @pytest.mark.asyncio
    async def test_title_used_when_caption_missing(self, service, mock_store):
        mock_store.insert.side_effect = echo_insert

        link = await service.create_link(LinkCreate(url="https://example.com", title="From title"))
        assert link.caption == "From title"

        link = await service.create_link(LinkCreate(url="https://example.com", caption="Caption", title="Title"))
        assert link.caption == "Caption"

    @pytest.mark.asyncio
    async def test_insert_collision_is_retried_with_new_code(self, service, mock_store):
        mock_store.insert.side_effect = [UniqueViolation("taken1"), make_link(code="fresh1")]

        link = await service.create_link(LinkCreate(url="https://example.com/page"))

        assert link.code == "fresh1"
        assert mock_store.insert.await_count == 2
        assert mock_store.lookup_by_code.await_count == 2

    @pytest.mark.asyncio
    async def test_persistent_collisions_exhaust_budget(self, service, mock_store):
        mock_store.insert.side_effect = UniqueViolation("taken1")

        with pytest.raises(AllocationExhausted) as exc_info:
            await service.create_link(LinkCreate(url="https://example.com/page"))

        assert exc_info.value.attempts == 3
        assert mock_store.insert.await_count == 3

    @pytest.mark.asyncio
    async def test_saturated_store_raises_allocation_exhausted(self, service, mock_store):
        mock_store.lookup_by_code.return_value = make_link()

        with pytest.raises(AllocationExhausted):
            await service.create_link(LinkCreate(url="https://example.com/page"))

        mock_store.insert.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_taken_codes_and_insert_collisions_share_budget(self, service, mock_store):
        mock_store.lookup_by_code.side_effect = [make_link(), None, None]
        mock_store.insert.side_effect = UniqueViolation("taken1")

        with pytest.raises(AllocationExhausted):
            await service.create_link(LinkCreate(url="https://example.com/page"))

        assert mock_store.lookup_by_code.await_count == 3
        assert mock_store.insert.await_count == 2

    @pytest.mark.asyncio
    async def test_storage_fault_propagates(self, service, mock_store, mock_logger):
        mock_store.insert.side_effect = StorageFault("connection refused")

        with pytest.raises(StorageFault):
            await service.create_link(LinkCreate(url="https://example.com/page"))

        mock_logger.error.assert_called_once()


# ============================================================================
# MANAGEMENT
# ============================================================================


class TestManageLinks:
    @pytest.mark.asyncio
    async def test_get_missing_link(self, service, mock_store):
        mock_store.lookup_by_id.return_value = None

        with pytest.raises(RecordNotFound):
            await service.get_link(7)

    @pytest.mark.asyncio
    async def test_invalid_id_rejected_before_storage(self, service, mock_store):
        with pytest.raises(LinkValidationError):
            await service.get_link(0)
        with pytest.raises(LinkValidationError):
            await service.delete_link_by_id(-1)

        mock_store.lookup_by_id.assert_not_awaited()
        mock_store.delete_by_id.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_update_passes_fields_through(self, service, mock_store):
        mock_store.update.return_value = make_link(caption="New")

        link = await service.update_link(1, LinkUpdate(caption="New"))

        assert link.caption == "New"
        mock_store.update.assert_awaited_once_with(1, caption="New", target_url=None)

    @pytest.mark.asyncio
    async def test_update_missing_link(self, service, mock_store):
        mock_store.update.return_value = None

        with pytest.raises(RecordNotFound):
            await service.update_link(1, LinkUpdate(caption="New"))

    @pytest.mark.asyncio
    async def test_delete_by_id_and_by_code_are_separate(self, service, mock_store):
        mock_store.delete_by_id.return_value = True
        mock_store.delete_by_code.return_value = True

        await service.delete_link_by_id(123456)
        await service.delete_link_by_code("123456")

        mock_store.delete_by_id.assert_awaited_once_with(123456)
        mock_store.delete_by_code.assert_awaited_once_with("123456")

    @pytest.mark.asyncio
    async def test_delete_missing_raises(self, service, mock_store):
        mock_store.delete_by_id.return_value = False
        mock_store.delete_by_code.return_value = False

        with pytest.raises(RecordNotFound):
            await service.delete_link_by_id(5)
        with pytest.raises(RecordNotFound):
            await service.delete_link_by_code("abc123")

    @pytest.mark.asyncio
    async def test_delete_blank_code_rejected(self, service, mock_store):
        with pytest.raises(LinkValidationError):
            await service.delete_link_by_code("   ")

        mock_store.delete_by_code.assert_not_awaited()


# ============================================================================
# REDIRECT + CLICKS
# ============================================================================


class TestRedirect:
    @pytest.mark.asyncio
    async def test_resolve_found(self, service, mock_store):
        mock_store.lookup_by_code.return_value = make_link()

        link = await service.resolve("abc123")

        assert link.target_url == "https://example.com/page"

    @pytest.mark.asyncio
    async def test_resolve_missing(self, service, mock_store):
        with pytest.raises(RecordNotFound):
            await service.resolve("nope00")

    @pytest.mark.asyncio
    async def test_resolve_storage_fault(self, service, mock_store):
        mock_store.lookup_by_code.side_effect = StorageFault("timeout")

        with pytest.raises(StorageFault):
            await service.resolve("abc123")

    @pytest.mark.asyncio
    async def test_record_click_returns_new_count(self, service, mock_store):
        mock_store.increment_and_fetch.return_value = 4

        assert await service.record_click(1) == 4
        mock_store.increment_and_fetch.assert_awaited_once_with(1)

    @pytest.mark.asyncio
    async def test_record_click_swallows_storage_fault(self, service, mock_store, mock_logger):
        mock_store.increment_and_fetch.side_effect = StorageFault("connection reset")

        assert await service.record_click(1) is None
        mock_logger.warning.assert_called_once()

    @pytest.mark.asyncio
    async def test_record_click_swallows_missing_link(self, service, mock_store, mock_logger):
        mock_store.increment_and_fetch.return_value = None

        assert await service.record_click(1) is None
        mock_logger.warning.assert_called_once()

    @pytest.mark.asyncio
    async def test_record_click_swallows_driver_connection_error(self, mock_logger):
        refusing_store = LinkStore(MagicMock(side_effect=ConnectionRefusedError(111, "Connect call failed")))
        service = LinkService(refusing_store, Settings(), mock_logger)

        assert await service.record_click(1) is None
        mock_logger.warning.assert_called_once()

    @pytest.mark.asyncio
    async def test_resolve_driver_timeout_is_storage_fault(self, mock_logger):
        stalled_store = LinkStore(MagicMock(side_effect=TimeoutError()))
        service = LinkService(stalled_store, Settings(), mock_logger)

        with pytest.raises(StorageFault):
            await service.resolve("abc123")
        mock_logger.error.assert_called_once()

    @pytest.mark.asyncio
    async def test_record_click_against_unreachable_database(self, unreachable_store, mock_logger):
        service = LinkService(unreachable_store, Settings(), mock_logger)

        assert await service.record_click(1) is None
