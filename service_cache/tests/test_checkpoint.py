"""
Unit tests for the checkpoint trigger.
"""

import sys
import pytest
from unittest.mock import AsyncMock

from service_cache.app.checkpoint.trigger import (
    CheckpointTrigger, CommandSnapshotProvider, SnapshotProvider,
    UnsupportedSnapshotProvider, build_snapshot_provider
)
from service_cache.app.models import CheckpointStatus
from shared.errors import CheckpointFailedError, CheckpointUnsupportedError
from shared.metrics import MetricsCollector


def provider_with(side_effect=None):
    provider = AsyncMock(spec=SnapshotProvider)
    provider.checkpoint_restore.side_effect = side_effect
    return provider


class TestCheckpointTrigger:
    """Test cases for CheckpointTrigger."""

    @pytest.mark.asyncio
    async def test_default_provider_unsupported(self):
        """Without a configured provider the trigger reports UNSUPPORTED/501."""
        outcome = await CheckpointTrigger().trigger()

        assert outcome.status == CheckpointStatus.UNSUPPORTED
        assert outcome.http_status == 501
        assert "not supported" in outcome.error

    @pytest.mark.asyncio
    async def test_failure(self):
        """Explicit failures are FAILED/500 and keep the message."""
        trigger = CheckpointTrigger(provider_with(CheckpointFailedError("Connection refused")))

        outcome = await trigger.trigger()

        assert outcome.status == CheckpointStatus.FAILED
        assert outcome.http_status == 500
        assert outcome.error == "Checkpoint failed: Connection refused"
        assert outcome.exception == "CheckpointFailedError"

    @pytest.mark.asyncio
    async def test_unexpected_return(self):
        """Returning normally is anomalous and reported as a server error."""
        outcome = await CheckpointTrigger(provider_with()).trigger()

        assert outcome.status == CheckpointStatus.UNEXPECTED_RETURN
        assert outcome.http_status == 500
        assert outcome.to_response() == {
            "status": "UNEXPECTED_RETURN",
            "message": "Checkpoint returned unexpectedly"
        }

    @pytest.mark.asyncio
    async def test_other_exception(self):
        """Any other exception is classified as ERROR."""
        trigger = CheckpointTrigger(provider_with(RuntimeError("disk full")))

        outcome = await trigger.trigger()

        assert outcome.status == CheckpointStatus.ERROR
        assert outcome.http_status == 500
        assert outcome.exception == "RuntimeError"

    @pytest.mark.asyncio
    async def test_outcome_counted(self):
        """Each attempt is counted by outcome."""
        metrics = MetricsCollector("cache")
        await CheckpointTrigger(metrics=metrics).trigger()

        value = metrics.registry.get_sample_value(
            "checkpoint_attempts_total", {"outcome": "UNSUPPORTED"}
        )
        assert value == 1.0


class TestSnapshotProviders:
    """Test cases for snapshot providers."""

    @pytest.mark.asyncio
    async def test_unsupported_provider_raises(self):
        with pytest.raises(CheckpointUnsupportedError):
            await UnsupportedSnapshotProvider().checkpoint_restore()

    def test_build_without_command(self):
        assert isinstance(build_snapshot_provider(None), UnsupportedSnapshotProvider)

    def test_build_with_command(self):
        provider = build_snapshot_provider("criu-snapshot --pid self --leave-running")

        assert isinstance(provider, CommandSnapshotProvider)
        assert provider.command == ["criu-snapshot", "--pid", "self", "--leave-running"]

    @pytest.mark.asyncio
    async def test_command_missing_is_unsupported(self):
        provider = CommandSnapshotProvider(["/nonexistent/snapshot-tool"])

        with pytest.raises(CheckpointUnsupportedError):
            await provider.checkpoint_restore()

    @pytest.mark.asyncio
    async def test_command_nonzero_exit_fails(self):
        provider = CommandSnapshotProvider(
            [sys.executable, "-c", "import sys; sys.stderr.write('dump failed'); sys.exit(3)"]
        )

        with pytest.raises(CheckpointFailedError) as exc_info:
            await provider.checkpoint_restore()

        assert exc_info.value.message == "dump failed"
        assert exc_info.value.details["returncode"] == 3

    @pytest.mark.asyncio
    async def test_command_success_returns(self):
        provider = CommandSnapshotProvider([sys.executable, "-c", "pass"])

        assert await provider.checkpoint_restore() is None

    def test_empty_command_rejected(self):
        with pytest.raises(ValueError):
            CommandSnapshotProvider([])
