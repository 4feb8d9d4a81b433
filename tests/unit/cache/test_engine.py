"""
Tests for the interception policy engine.
"""

from __future__ import annotations

import logging
from unittest.mock import AsyncMock, Mock

import pytest

from cache_decorator.backend import Lookup
from cache_decorator.engine import intercept, intercept_async
from cache_decorator.exceptions import BackendContractError, BackendUnavailableError
from cache_decorator.operations import register_operation
from cache_decorator.patterns import ANY

CONFIG = {"pool": "test"}


def cache_spec(on=None, **options):
    kwargs = {} if on is None else {"on": on}
    return register_operation(
        "app.fetch_data/1", {"userId"}, "cache", "user_{userId}", options=options, **kwargs
    )


def invalidate_spec(on=None):
    kwargs = {} if on is None else {"on": on}
    return register_operation("app.update/1", {"userId"}, "invalidate", "user_{userId}", **kwargs)


def counting(result):
    call = Mock(return_value=result)
    return call


class TestReadThrough:
    """Cache mode: get, then compute and put on a miss."""

    def test_miss_computes_once_and_stores_once(self, mock_cache_backend):
        call = counting({"id": 42})

        result = intercept(cache_spec(), {"userId": 42}, call, backend=mock_cache_backend, config=CONFIG)

        assert result == {"id": 42}
        call.assert_called_once_with()
        mock_cache_backend.get.assert_called_once_with(CONFIG, "user_42")
        mock_cache_backend.put.assert_called_once_with(CONFIG, "user_42", {"id": 42}, {})

    def test_hit_skips_the_operation(self, mock_cache_backend):
        mock_cache_backend.get.return_value = Lookup.hit("stored")
        call = counting("fresh")

        result = intercept(cache_spec(), {"userId": 42}, call, backend=mock_cache_backend)

        assert result == "stored"
        call.assert_not_called()
        mock_cache_backend.put.assert_not_called()

    def test_hit_without_value_is_a_miss(self, mock_cache_backend):
        mock_cache_backend.get.return_value = Lookup.hit(None)
        call = counting("fresh")

        assert intercept(cache_spec(), {"userId": 1}, call, backend=mock_cache_backend) == "fresh"
        call.assert_called_once()
        mock_cache_backend.put.assert_called_once()

    @pytest.mark.parametrize("raw,expected_calls", [("stored", 0), (None, 1)])
    def test_bare_values_from_get(self, mock_cache_backend, raw, expected_calls):
        mock_cache_backend.get.return_value = raw
        call = counting("fresh")

        intercept(cache_spec(), {"userId": 1}, call, backend=mock_cache_backend)

        assert call.call_count == expected_calls

    def test_options_forwarded_verbatim(self, mock_cache_backend):
        intercept(cache_spec(ttl=300, tier="hot"), {"userId": 7}, counting(1), backend=mock_cache_backend)

        mock_cache_backend.put.assert_called_once_with(None, "user_7", 1, {"ttl": 300, "tier": "hot"})

    def test_unavailable_backend_calls_through_without_storing(self, mock_cache_backend, caplog):
        mock_cache_backend.get.return_value = Lookup.unavailable()
        call = counting("fresh")

        with caplog.at_level(logging.WARNING, logger="cache_decorator.engine"):
            result = intercept(cache_spec(), {"userId": 1}, call, backend=mock_cache_backend)

        assert result == "fresh"
        call.assert_called_once()
        mock_cache_backend.put.assert_not_called()
        assert any(getattr(r, "cache_outcome", None) == "unavailable" for r in caplog.records)

    @pytest.mark.parametrize("exc", [BackendUnavailableError("down"), ConnectionError("refused")])
    def test_get_exception_degrades(self, mock_cache_backend, exc):
        mock_cache_backend.get.side_effect = exc
        call = counting("fresh")

        assert intercept(cache_spec(), {"userId": 1}, call, backend=mock_cache_backend) == "fresh"
        call.assert_called_once()
        mock_cache_backend.put.assert_not_called()

    def test_non_matching_result_is_never_stored(self, mock_cache_backend):
        call = counting(("error", "x"))

        result = intercept(cache_spec(on=("ok", ANY)), {"userId": 1}, call, backend=mock_cache_backend)

        assert result == ("error", "x")
        mock_cache_backend.put.assert_not_called()

    def test_matching_result_is_stored(self, mock_cache_backend):
        call = counting(("ok", 5))

        intercept(cache_spec(on=("ok", ANY)), {"userId": 1}, call, backend=mock_cache_backend)

        mock_cache_backend.put.assert_called_once_with(None, "user_1", ("ok", 5), {})

    def test_failed_put_is_fatal(self, mock_cache_backend):
        mock_cache_backend.put.return_value = False

        with pytest.raises(BackendContractError) as exc_info:
            intercept(cache_spec(), {"userId": 1}, counting("v"), backend=mock_cache_backend)

        assert exc_info.value.key == "user_1"
        assert exc_info.value.operation == "app.fetch_data/1"

    @pytest.mark.parametrize("result", [None, 0, "", 1, "OK"])
    def test_only_false_put_result_is_failure(self, mock_cache_backend, result):
        mock_cache_backend.put.return_value = result

        assert intercept(cache_spec(), {"userId": 1}, counting("v"), backend=mock_cache_backend) == "v"
        mock_cache_backend.put.assert_called_once()

    def test_raising_put_is_chained(self, mock_cache_backend):
        cause = RuntimeError("disk full")
        mock_cache_backend.put.side_effect = cause

        with pytest.raises(BackendContractError) as exc_info:
            intercept(cache_spec(), {"userId": 1}, counting("v"), backend=mock_cache_backend)

        assert exc_info.value.__cause__ is cause

    def test_operation_errors_propagate_without_writes(self, mock_cache_backend):
        call = Mock(side_effect=KeyError("nope"))

        with pytest.raises(KeyError):
            intercept(cache_spec(), {"userId": 1}, call, backend=mock_cache_backend)

        call.assert_called_once()
        mock_cache_backend.put.assert_not_called()

    def test_async_backend_with_sync_operation_is_rejected(self, mock_async_cache_backend):
        with pytest.raises(TypeError, match="awaitable"):
            intercept(cache_spec(), {"userId": 1}, counting(1), backend=mock_async_cache_backend)


class TestInvalidation:
    """Invalidate mode: call, then delete when the result matches."""

    def test_unconditional_without_on(self, mock_cache_backend):
        for result in ("ok", ("error", "x"), None):
            assert intercept(invalidate_spec(), {"userId": 3}, counting(result), backend=mock_cache_backend) == result

        assert mock_cache_backend.delete.call_count == 3
        mock_cache_backend.delete.assert_called_with(None, "user_3")
        mock_cache_backend.get.assert_not_called()

    def test_respects_on(self, mock_cache_backend):
        spec = invalidate_spec(on="ok")

        assert intercept(spec, {"userId": 3}, counting("ok"), backend=mock_cache_backend) == "ok"
        mock_cache_backend.delete.assert_called_once_with(None, "user_3")

        mock_cache_backend.delete.reset_mock()
        assert intercept(spec, {"userId": 3}, counting("error"), backend=mock_cache_backend) == "error"
        mock_cache_backend.delete.assert_not_called()

    def test_operation_called_exactly_once(self, mock_cache_backend):
        call = counting("ok")

        intercept(invalidate_spec(on=["ok", ("ok", ANY)]), {"userId": 1}, call, backend=mock_cache_backend)

        call.assert_called_once()

    def test_failed_delete_is_fatal(self, mock_cache_backend):
        mock_cache_backend.delete.side_effect = ConnectionError("gone")

        with pytest.raises(BackendContractError) as exc_info:
            intercept(invalidate_spec(), {"userId": 1}, counting("ok"), backend=mock_cache_backend)

        assert exc_info.value.action == "delete"
        assert isinstance(exc_info.value.__cause__, ConnectionError)

    def test_none_returning_delete_is_success(self, mock_cache_backend):
        mock_cache_backend.delete.return_value = None

        assert intercept(invalidate_spec(), {"userId": 1}, counting("ok"), backend=mock_cache_backend) == "ok"


@pytest.mark.asyncio
class TestAsyncIntercept:
    """Coroutine variants with async and sync backends."""

    async def test_miss_then_put(self, mock_async_cache_backend):
        call = AsyncMock(return_value={"id": 42})

        result = await intercept_async(
            cache_spec(ttl=5), {"userId": 42}, call, backend=mock_async_cache_backend, config=CONFIG
        )

        assert result == {"id": 42}
        call.assert_awaited_once()
        mock_async_cache_backend.get.assert_awaited_once_with(CONFIG, "user_42")
        mock_async_cache_backend.put.assert_awaited_once_with(CONFIG, "user_42", {"id": 42}, {"ttl": 5})

    async def test_hit_skips_the_operation(self, mock_async_cache_backend):
        mock_async_cache_backend.get.return_value = Lookup.hit("stored")
        call = AsyncMock(return_value="fresh")

        assert await intercept_async(cache_spec(), {"userId": 1}, call, backend=mock_async_cache_backend) == "stored"
        call.assert_not_awaited()

    async def test_sync_backend_works_too(self, mock_cache_backend):
        call = AsyncMock(return_value="fresh")

        assert await intercept_async(cache_spec(), {"userId": 1}, call, backend=mock_cache_backend) == "fresh"
        mock_cache_backend.put.assert_called_once_with(None, "user_1", "fresh", {})

    async def test_get_error_degrades(self, mock_async_cache_backend):
        mock_async_cache_backend.get.side_effect = ConnectionError("refused")
        call = AsyncMock(return_value="fresh")

        assert await intercept_async(cache_spec(), {"userId": 1}, call, backend=mock_async_cache_backend) == "fresh"
        mock_async_cache_backend.put.assert_not_awaited()

    async def test_failed_put_is_fatal(self, mock_async_cache_backend):
        mock_async_cache_backend.put.return_value = False

        with pytest.raises(BackendContractError):
            await intercept_async(
                cache_spec(), {"userId": 1}, AsyncMock(return_value=1), backend=mock_async_cache_backend
            )

    async def test_invalidate_respects_on(self, mock_async_cache_backend):
        spec = invalidate_spec(on=("ok", ANY))

        await intercept_async(spec, {"userId": 2}, AsyncMock(return_value=("error", 1)), backend=mock_async_cache_backend)
        mock_async_cache_backend.delete.assert_not_awaited()

        await intercept_async(spec, {"userId": 2}, AsyncMock(return_value=("ok", 1)), backend=mock_async_cache_backend)
        mock_async_cache_backend.delete.assert_awaited_once_with(None, "user_2")
