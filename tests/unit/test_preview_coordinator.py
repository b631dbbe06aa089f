"""Unit tests for last-issued-wins preview coordination."""

import asyncio

import pytest

from app.core.exceptions import PreviewSupersededError
from app.services.preview import PreviewCoordinator


def returning(value, delay: float = 0.0):
    async def operation():
        if delay:
            await asyncio.sleep(delay)
        return value

    return lambda: operation()


class TestPreviewCoordinator:
    def test_returns_result_with_request_id(self):
        coordinator = PreviewCoordinator()

        async def run():
            return await coordinator.run("tab", returning("a"), request_id=3)

        assert asyncio.run(run()) == (3, "a")

    def test_numbers_requests_when_ids_omitted(self):
        coordinator = PreviewCoordinator()

        async def run():
            first = await coordinator.run("tab", returning("a"))
            second = await coordinator.run("tab", returning("b"))
            return first, second

        assert asyncio.run(run()) == ((1, "a"), (2, "b"))

    def test_older_request_arriving_late_is_rejected(self):
        coordinator = PreviewCoordinator()

        async def run():
            await coordinator.run("tab", returning("new"), request_id=2)
            with pytest.raises(PreviewSupersededError) as exc_info:
                await coordinator.run("tab", returning("old"), request_id=1)
            return exc_info.value

        error = asyncio.run(run())
        assert error.request_id == 1
        assert error.latest_request_id == 2

    def test_newer_request_supersedes_in_flight_one(self):
        coordinator = PreviewCoordinator()

        async def run():
            slow = asyncio.create_task(coordinator.run("tab", returning("slow", delay=1.0), request_id=1))
            await asyncio.sleep(0.01)
            fast = await coordinator.run("tab", returning("fast"), request_id=2)
            with pytest.raises(PreviewSupersededError):
                await slow
            return fast

        assert asyncio.run(run()) == (2, "fast")

    def test_only_latest_of_rapid_toggles_returns(self):
        coordinator = PreviewCoordinator()

        async def run():
            tasks = [
                asyncio.create_task(coordinator.run("tab", returning(i, delay=0.05), request_id=i))
                for i in range(1, 6)
            ]
            return await asyncio.gather(*tasks, return_exceptions=True)

        results = asyncio.run(run())
        assert results[-1] == (5, 5)
        assert all(isinstance(r, PreviewSupersededError) for r in results[:-1])

    def test_sessions_are_independent(self):
        coordinator = PreviewCoordinator()

        async def run():
            await coordinator.run("tab-a", returning("a"), request_id=5)
            return await coordinator.run("tab-b", returning("b"), request_id=1)

        assert asyncio.run(run()) == (1, "b")
        assert coordinator.latest_request_id("tab-a") == 5

    def test_operation_errors_propagate(self):
        coordinator = PreviewCoordinator()

        async def failing():
            raise ValueError("boom")

        async def run():
            await coordinator.run("tab", failing)

        with pytest.raises(ValueError, match="boom"):
            asyncio.run(run())

    def test_idle_sessions_are_evicted_first(self):
        coordinator = PreviewCoordinator(max_sessions=2)

        async def run():
            await coordinator.run("a", returning("a"), request_id=4)
            await coordinator.run("b", returning("b"), request_id=4)
            await coordinator.run("c", returning("c"), request_id=4)

        asyncio.run(run())
        assert coordinator.latest_request_id("a") == 0
        assert coordinator.latest_request_id("b") == 4
        assert coordinator.latest_request_id("c") == 4

    def test_session_with_preview_in_flight_is_not_evicted(self):
        coordinator = PreviewCoordinator(max_sessions=1)

        async def run():
            busy = asyncio.create_task(coordinator.run("busy", returning("slow", delay=0.1), request_id=7))
            await asyncio.sleep(0.01)
            await coordinator.run("other", returning("x"), request_id=1)
            assert coordinator.latest_request_id("busy") == 7

            with pytest.raises(PreviewSupersededError):
                await coordinator.run("busy", returning("stale"), request_id=6)
            return await busy

        assert asyncio.run(run()) == (7, "slow")
