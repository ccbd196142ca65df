import asyncio
import inspect
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Generic, List, Optional, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

ProcessFunction = Callable[[T, int], Awaitable[R]]
BatchCompleteHook = Callable[[List[R], int], Any]
ErrorHook = Callable[[BaseException, T], Any]


@dataclass
class ItemOutcome(Generic[T, R]):
    index: int
    item: T
    value: Optional[R] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class BatchResult(Generic[T, R]):
    """Every item's outcome, in source order"""
    outcomes: List[ItemOutcome] = field(default_factory=list)

    @property
    def results(self) -> List[R]:
        return [o.value for o in self.outcomes if o.ok]

    @property
    def errors(self) -> List[ItemOutcome]:
        return [o for o in self.outcomes if not o.ok]


async def _maybe_await(value):
    if inspect.isawaitable(value):
        return await value
    return value


class BatchProcessor(Generic[T, R]):
    """
    Runs an async function over a list of items with bounded parallelism.

    Items are split into consecutive batches of ``batch_size``. Batches run one
    after another; inside a batch, windows of ``concurrency`` items run
    together. A failing item never cancels its siblings and never makes
    ``process`` raise: it is handed to ``on_error`` and left out of the results.
    There is no retry.
    """

    def __init__(
            self,
            batch_size: int = 10,
            concurrency: int = 5,
            on_batch_complete: Optional[BatchCompleteHook] = None,
            on_error: Optional[ErrorHook] = None,
            item_timeout: Optional[float] = None,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")

        self.batch_size = batch_size
        self.concurrency = concurrency
        self.on_batch_complete = on_batch_complete
        self.on_error = on_error
        self.item_timeout = item_timeout

    async def process(self, items: Sequence[T], process_function: ProcessFunction) -> List[R]:
        result = await self.process_detailed(items, process_function)
        return result.results

    async def process_detailed(self, items: Sequence[T], process_function: ProcessFunction) -> BatchResult:
        items = list(items)
        total_batches = math.ceil(len(items) / self.batch_size)
        result = BatchResult()

        logger.info(
            f"Processing {len(items)} items in {total_batches} batches "
            f"(batch size: {self.batch_size}, concurrency: {self.concurrency})"
        )

        for start in range(0, len(items), self.batch_size):
            batch_index = start // self.batch_size
            batch = items[start:start + self.batch_size]

            logger.debug(f"Processing batch {batch_index + 1}/{total_batches} ({len(batch)} items)")

            outcomes = await self._process_batch(batch, process_function, start)
            result.outcomes.extend(outcomes)

            if self.on_batch_complete:
                await _maybe_await(self.on_batch_complete([o.value for o in outcomes if o.ok], batch_index))

        return result

    async def _process_batch(self, batch: List[T], process_function: ProcessFunction, start_index: int) -> List[ItemOutcome]:
        outcomes: List[ItemOutcome] = []

        for offset in range(0, len(batch), self.concurrency):
            window = batch[offset:offset + self.concurrency]
            first_index = start_index + offset

            settled = await asyncio.gather(
                *(self._run_item(process_function, item, first_index + i) for i, item in enumerate(window)),
                return_exceptions=True,
            )

            for i, (item, value) in enumerate(zip(window, settled)):
                index = first_index + i
                if isinstance(value, BaseException):
                    if isinstance(value, (KeyboardInterrupt, SystemExit)):
                        raise value
                    await self._report_error(value, item, index)
                    outcomes.append(ItemOutcome(index=index, item=item, error=value))
                else:
                    outcomes.append(ItemOutcome(index=index, item=item, value=value))

        return outcomes

    async def _run_item(self, process_function: ProcessFunction, item: T, index: int):
        if self.item_timeout is None:
            return await process_function(item, index)
        return await asyncio.wait_for(process_function(item, index), timeout=self.item_timeout)

    async def _report_error(self, error: BaseException, item: T, index: int) -> None:
        logger.debug(f"Item {index} failed: {error!r}")
        if not self.on_error:
            return
        try:
            await _maybe_await(self.on_error(error, item))
        except Exception:
            logger.exception(f"on_error hook failed for item {index}")
