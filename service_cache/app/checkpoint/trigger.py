"""
Checkpoint trigger.

A successful snapshot suspends the whole process and resumes it later, so a
call to ``SnapshotProvider.checkpoint_restore`` is not expected to hand
control back with a result. Whatever does come back is classified here.
"""

import asyncio
import shlex
from abc import ABC, abstractmethod
from typing import Optional, Sequence, TYPE_CHECKING

from shared.errors import CheckpointFailedError, CheckpointUnsupportedError
from shared.logging import get_logger
from ..models import CheckpointOutcome

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


class SnapshotProvider(ABC):
    """Process snapshot/restore capability of the host runtime."""

    @abstractmethod
    async def checkpoint_restore(self) -> None:
        """Snapshot the process and resume it.

        Raises CheckpointFailedError or CheckpointUnsupportedError.
        """


class UnsupportedSnapshotProvider(SnapshotProvider):
    """Default provider for runtimes without snapshot support."""

    async def checkpoint_restore(self) -> None:
        raise CheckpointUnsupportedError("Checkpoint not supported in current environment")


class CommandSnapshotProvider(SnapshotProvider):
    """Delegates the snapshot to an external command, e.g. a CRIU wrapper."""

    def __init__(self, command: Sequence[str]):
        if not command:
            raise ValueError("command must not be empty")
        self.command = list(command)
        self.logger = get_logger("cache.checkpoint.command")

    @classmethod
    def from_string(cls, command: str) -> "CommandSnapshotProvider":
        return cls(shlex.split(command))

    async def checkpoint_restore(self) -> None:
        try:
            process = await asyncio.create_subprocess_exec(
                *self.command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE
            )
        except (FileNotFoundError, PermissionError) as e:
            raise CheckpointUnsupportedError(
                f"Snapshot command unavailable: {e}",
                details={"command": self.command[0]}
            ) from e

        _, stderr = await process.communicate()
        if process.returncode != 0:
            message = stderr.decode(errors="replace").strip() or f"exit code {process.returncode}"
            raise CheckpointFailedError(message, details={"returncode": process.returncode})

        self.logger.info("Snapshot command completed", command=self.command[0])


def build_snapshot_provider(command: Optional[str]) -> SnapshotProvider:
    if command:
        return CommandSnapshotProvider.from_string(command)
    return UnsupportedSnapshotProvider()


class CheckpointTrigger:
    """Invokes the snapshot provider and classifies what comes back."""

    def __init__(
        self,
        provider: Optional[SnapshotProvider] = None,
        metrics: Optional["MetricsCollector"] = None
    ):
        self.provider = provider or UnsupportedSnapshotProvider()
        self.metrics = metrics
        self.logger = get_logger("cache.checkpoint")

    async def trigger(self) -> CheckpointOutcome:
        self.logger.info("Initiating checkpoint", provider=type(self.provider).__name__)
        try:
            await self.provider.checkpoint_restore()
        except CheckpointFailedError as e:
            self.logger.error("Checkpoint failed", error=e.message)
            outcome = CheckpointOutcome.failed(e.message, exception=type(e).__name__)
        except CheckpointUnsupportedError as e:
            self.logger.warning("Checkpoint not supported", error=e.message)
            outcome = CheckpointOutcome.unsupported(e.message)
        except Exception as e:
            self.logger.error("Unexpected error during checkpoint", error=str(e), exc_info=True)
            outcome = CheckpointOutcome.error_raised(str(e), type(e).__name__)
        else:
            self.logger.warning("Checkpoint returned unexpectedly")
            outcome = CheckpointOutcome.unexpected_return()

        if self.metrics:
            self.metrics.increment_counter("checkpoint_attempts_total", outcome=outcome.status.value)
        return outcome
