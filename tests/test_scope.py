"""Tests for scoped resource release."""

import logging

import pytest

from bot_gateway import ResourceScope, with_scoped_cleanup
from bot_gateway.scope import release


class Recorder:
    """Resource with a synchronous close that records calls."""

    def __init__(self, name: str, log: list[str], fail: bool = False) -> None:
        self.name = name
        self.log = log
        self.fail = fail

    def close(self) -> None:
        self.log.append(f"close:{self.name}")
        if self.fail:
            raise OSError(f"{self.name} refused to close")


class AsyncRecorder:
    """Resource with an async aclose that records calls."""

    def __init__(self, name: str, log: list[str]) -> None:
        self.name = name
        self.log = log

    async def aclose(self) -> None:
        self.log.append(f"aclose:{self.name}")


class TestRelease:
    """Tests for release()."""

    @pytest.mark.asyncio
    async def test_release_prefers_aclose(self) -> None:
        """Test async resources are closed with aclose."""
        log: list[str] = []
        await release(AsyncRecorder("a", log))
        assert log == ["aclose:a"]

    @pytest.mark.asyncio
    async def test_release_awaits_async_close(self) -> None:
        """Test an async close() is awaited."""
        log: list[str] = []

        class AsyncClose:
            async def close(self) -> None:
                log.append("closed")

        await release(AsyncClose())
        assert log == ["closed"]

    @pytest.mark.asyncio
    async def test_release_swallows_and_logs_failures(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Test a failing close is logged, never raised."""
        log: list[str] = []

        with caplog.at_level(logging.WARNING, logger="bot_gateway.scope"):
            await release(Recorder("bad", log, fail=True))

        assert log == ["close:bad"]
        assert "Failed to release Recorder" in caplog.text

    @pytest.mark.asyncio
    async def test_release_none_is_noop(self) -> None:
        """Test releasing None does nothing."""
        await release(None)


class TestResourceScope:
    """Tests for ResourceScope."""

    @pytest.mark.asyncio
    async def test_releases_lifo(self) -> None:
        """Test resources are released in reverse order of registration."""
        log: list[str] = []

        async with ResourceScope() as scope:
            scope.push(Recorder("first", log))
            scope.push(AsyncRecorder("second", log))

        assert log == ["aclose:second", "close:first"]
        assert scope.closed is True

    @pytest.mark.asyncio
    async def test_releases_on_error(self) -> None:
        """Test resources are released when the body raises."""
        log: list[str] = []

        with pytest.raises(ValueError):
            async with ResourceScope() as scope:
                scope.push(Recorder("r", log))
                raise ValueError("decode failed")

        assert log == ["close:r"]

    @pytest.mark.asyncio
    async def test_release_is_exactly_once(self) -> None:
        """Test duplicate pushes and repeated closes release once."""
        log: list[str] = []
        resource = Recorder("r", log)
        scope = ResourceScope()
        scope.push(resource)
        scope.push(resource)

        await scope.aclose()
        await scope.aclose()

        assert log == ["close:r"]

    @pytest.mark.asyncio
    async def test_failing_release_does_not_replace_outcome(self) -> None:
        """Test a release failure never becomes the call's outcome."""
        log: list[str] = []

        async with ResourceScope() as scope:
            scope.push(Recorder("bad", log, fail=True))
            scope.push(Recorder("good", log))
            result = 42

        assert result == 42
        assert log == ["close:good", "close:bad"]

    @pytest.mark.asyncio
    async def test_push_after_close_raises(self) -> None:
        """Test a closed scope rejects new resources."""
        scope = ResourceScope()
        await scope.aclose()

        with pytest.raises(RuntimeError):
            scope.push(object())


class TestWithScopedCleanup:
    """Tests for with_scoped_cleanup."""

    @pytest.mark.asyncio
    async def test_release_happens_after_settle_before_caller(self) -> None:
        """Test ordering: settle, then release, then the caller continues."""
        log: list[str] = []

        async def operation() -> str:
            log.append("settled")
            return "value"

        result = await with_scoped_cleanup(operation(), Recorder("r", log))
        log.append("observed")

        assert result == "value"
        assert log == ["settled", "close:r", "observed"]

    @pytest.mark.asyncio
    async def test_release_after_failure_and_error_propagates(self) -> None:
        """Test the operation's error reaches the caller after release."""
        log: list[str] = []

        async def operation() -> str:
            log.append("settled")
            raise LookupError("missing")

        with pytest.raises(LookupError):
            await with_scoped_cleanup(operation(), Recorder("r", log, fail=True))

        assert log == ["settled", "close:r"]

    @pytest.mark.asyncio
    async def test_already_released_resource_is_noop(self) -> None:
        """Test releasing a scope an inner stage already closed is harmless."""
        log: list[str] = []
        scope = ResourceScope()
        scope.push(Recorder("r", log))

        async def operation() -> None:
            await scope.aclose()

        await with_scoped_cleanup(operation(), scope)

        assert log == ["close:r"]
