"""Sequential batch execution with per-item failure isolation."""

from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Generic, TypeVar

import structlog

logger = structlog.get_logger(__name__)

I = TypeVar("I")
T = TypeVar("T")


@dataclass
class BatchFailure:
    """Record of a failed batch item."""

    identifier: str
    error: str


@dataclass
class BatchOutcome(Generic[T]):
    """Paired success/failure result of a batch run.

    Every input item lands in exactly one of ``succeeded`` or ``failed``, and
    both lists keep the input order.
    """

    succeeded: list[T] = field(default_factory=list)
    failed: list[BatchFailure] = field(default_factory=list)

    @property
    def success_count(self) -> int:
        return len(self.succeeded)

    @property
    def failure_count(self) -> int:
        return len(self.failed)

    @property
    def total(self) -> int:
        return self.success_count + self.failure_count

    @property
    def success_rate(self) -> float:
        """Calculate success rate percentage."""
        return (self.success_count / self.total * 100) if self.total > 0 else 0.0

    @property
    def failed_identifiers(self) -> list[str]:
        return [failure.identifier for failure in self.failed]


class BatchRunner:
    """
    Run an async operation over items one at a time, never aborting the batch.

    Items are processed sequentially so a shared browser session is never
    driven concurrently and target sites see one request at a time. Any
    exception raised for an item is logged and recorded as a failure entry.
    """

    def __init__(self, label: str = "batch") -> None:
        self.label = label

    async def run(
        self,
        items: Sequence[I],
        operation: Callable[[I], Awaitable[T]],
        identify: Callable[[I], str] = str,
    ) -> BatchOutcome[T]:
        """
        Execute ``operation`` for each item in order.

        Args:
            items: Items to process
            operation: Async per-item operation; raising marks the item failed
            identify: Maps an item to the identifier reported on failure

        Returns:
            BatchOutcome whose counts always sum to ``len(items)``
        """
        outcome: BatchOutcome[T] = BatchOutcome()

        logger.info("batch_started", batch=self.label, count=len(items))

        for index, item in enumerate(items):
            identifier = identify(item)
            try:
                result = await operation(item)
            except Exception as e:
                message = str(e) or type(e).__name__
                logger.warning(
                    "batch_item_failed",
                    batch=self.label,
                    index=index,
                    item=identifier,
                    error=message,
                )
                outcome.failed.append(BatchFailure(identifier=identifier, error=message))
                continue

            outcome.succeeded.append(result)

        logger.info(
            "batch_complete",
            batch=self.label,
            succeeded=outcome.success_count,
            failed=outcome.failure_count,
        )
        return outcome
