"""
CaseDossier Execution Strategies

Worker pool, cancellation token and per-document deadline.

Strategies separate "what runs" from "how it runs": the assembler maps
pure stage functions over sorted inputs, and results always come back
in submission order. With every stage sorting its own outputs, any
worker count yields the same Dossier.

Usage:
    token = CancellationToken()
    with create_strategy(workers=4) as pool:
        results = pool.map(extract_document, documents)
"""
from __future__ import annotations

import os
import threading
import time
from abc import ABC, abstractmethod
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, TypeVar

from ..exceptions import ExtractionTimeoutError, PipelineCancelledError

T = TypeVar("T")
R = TypeVar("R")


# =============================================================================
# Cancellation and Deadlines
# =============================================================================

class CancellationToken:
    """
    Pipeline-wide cancellation flag.

    Checked between regex matches and at every join barrier. Once set it
    stays set.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        """
        Raises:
            PipelineCancelledError: If cancel() has been called
        """
        if self._event.is_set():
            raise PipelineCancelledError(message="Pipeline cancelled")


class Deadline:
    """Monotonic-clock deadline for one document's extraction."""

    def __init__(
        self,
        seconds: Optional[float],
        clock: Callable[[], float] = time.monotonic,
    ):
        self.seconds = seconds
        self._clock = clock
        self._expires_at = None if seconds is None else clock() + seconds

    @classmethod
    def never(cls) -> "Deadline":
        return cls(None)

    @property
    def expired(self) -> bool:
        return self._expires_at is not None and self._clock() >= self._expires_at

    def check(self, doc_id: Optional[str] = None) -> None:
        """
        Raises:
            ExtractionTimeoutError: If the deadline has passed
        """
        if self.expired:
            raise ExtractionTimeoutError(
                message=f"Extraction exceeded {self.seconds}s",
                details={"timeoutSeconds": self.seconds},
                doc_id=doc_id,
            )


@dataclass
class Checkpoint:
    """
    Bounded-work check called once per regex match.

    Cancellation is checked first, so a cancelled pipeline never reports
    a timeout instead.
    """
    token: Optional[CancellationToken] = None
    deadline: Optional[Deadline] = None
    doc_id: Optional[str] = None

    def __call__(self) -> None:
        if self.token is not None:
            self.token.raise_if_cancelled()
        if self.deadline is not None:
            self.deadline.check(self.doc_id)


# =============================================================================
# Strategies
# =============================================================================

class ExecutorStrategy(ABC):
    """
    Abstract execution strategy.

    Attributes:
        max_workers: Number of concurrent workers (1 for sequential)
    """

    max_workers: int

    @abstractmethod
    def submit(self, fn: Callable[..., R], *args) -> Future:
        """Submit one task; returns a Future holding its result."""

    @abstractmethod
    def shutdown(self, wait: bool = True, cancel_futures: bool = False) -> None:
        """Release worker resources."""

    def map(self, fn: Callable[[T], R], items: Iterable[T]) -> list[R]:
        """
        Apply fn to every item; results in submission order.

        The first task exception is re-raised after every task has
        finished, so no worker outlives the call.
        """
        futures = [self.submit(fn, item) for item in items]
        return collect(futures)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.shutdown(wait=True, cancel_futures=exc_type is not None)
        return False


def collect(futures: list[Future]) -> list:
    """Join barrier: wait for all futures, then raise the first error in order."""
    results = []
    error: Optional[BaseException] = None
    for future in futures:
        try:
            results.append(future.result())
        except Exception as e:
            if error is None:
                error = e
            results.append(None)
    if error is not None:
        raise error
    return results


class ThreadPoolStrategy(ExecutorStrategy):
    """
    Thread-based worker pool.

    Document reading is I/O bound and regex scanning is short per match,
    so threads keep every worker busy without copying catalog regexes
    into other processes.
    """

    def __init__(self, max_workers: Optional[int] = None):
        if max_workers is None:
            max_workers = os.cpu_count() or 1
        if max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {max_workers}")
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="casedossier"
        )
        self.max_workers = max_workers

    def submit(self, fn: Callable[..., R], *args) -> Future:
        return self._executor.submit(fn, *args)

    def shutdown(self, wait: bool = True, cancel_futures: bool = False) -> None:
        self._executor.shutdown(wait=wait, cancel_futures=cancel_futures)


class SequentialStrategy(ExecutorStrategy):
    """
    Runs every task inline on the calling thread.

    Used for a pool size of 1 and in tests; same interface and results
    as ThreadPoolStrategy.
    """

    def __init__(self) -> None:
        self.max_workers = 1

    def submit(self, fn: Callable[..., R], *args) -> Future:
        future: Future = Future()
        try:
            future.set_result(fn(*args))
        except Exception as e:
            future.set_exception(e)
        return future

    def shutdown(self, wait: bool = True, cancel_futures: bool = False) -> None:
        pass


def create_strategy(workers: Optional[int] = None) -> ExecutorStrategy:
    """Sequential for one worker, a thread pool otherwise."""
    if workers is None:
        workers = os.cpu_count() or 1
    if workers <= 1:
        return SequentialStrategy()
    return ThreadPoolStrategy(max_workers=workers)
