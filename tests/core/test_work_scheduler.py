"""
Test suite for the in-process work scheduler.

System role: Verification of batch delays and idle waiting
"""

import asyncio
import uuid
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from knowledge_backend.core.ingestion.models import BatchOutcome
from knowledge_backend.core.ingestion.scheduler import AsyncioWorkScheduler


def _bound_scheduler() -> tuple[AsyncioWorkScheduler, AsyncMock]:
    process_batch = AsyncMock(return_value=BatchOutcome.COMPLETED)
    scheduler = AsyncioWorkScheduler()
    scheduler.bind(
        SimpleNamespace(process_batch=process_batch),
        SimpleNamespace(drain=AsyncMock()),
        SimpleNamespace(process_pending=AsyncMock()),
    )
    return scheduler, process_batch


class TestAsyncioWorkScheduler:
    """Test suite for AsyncioWorkScheduler."""

    @pytest.mark.asyncio
    async def test_delayed_batch_should_wait_before_processing(self) -> None:
        """Test a batch scheduled with a delay is not processed until the delay elapses."""
        # Arrange
        scheduler, process_batch = _bound_scheduler()
        batch_id = uuid.uuid4()

        # Act
        scheduler.schedule_batch(batch_id, delay=0.05)
        for _ in range(3):
            await asyncio.sleep(0)
        started_early = process_batch.await_count
        await scheduler.wait_idle(timeout=5)

        # Assert
        assert started_early == 0
        process_batch.assert_awaited_once_with(batch_id)
        assert scheduler.pending == 0

    @pytest.mark.asyncio
    async def test_undelayed_batch_should_process_on_next_loop_turn(self) -> None:
        """Test the default delay runs the batch at once."""
        # Arrange
        scheduler, process_batch = _bound_scheduler()
        batch_id = uuid.uuid4()

        # Act
        scheduler.schedule_batch(batch_id)
        await scheduler.wait_idle(timeout=5)

        # Assert
        process_batch.assert_awaited_once_with(batch_id)

    def test_scheduling_before_bind_should_raise(self) -> None:
        """Test an unbound scheduler refuses work."""
        # Arrange
        scheduler = AsyncioWorkScheduler()

        # Act / Assert
        with pytest.raises(RuntimeError):
            scheduler.schedule_batch(uuid.uuid4(), delay=1.0)

