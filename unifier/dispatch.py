"""
Concurrent classification.

A dispatcher takes a batch of file entries and yields one result per entry as
each finishes: a FileRecord, or None for a file that was skipped. Results come
back in completion order, not input order.

Two dispatchers exist. ``PooledDispatcher`` runs the classifier on a bounded
thread pool; ``SequentialDispatcher`` runs it inline. ``select_dispatcher``
probes whether a pool can be started and picks one, and ``process_all`` falls
back to sequential classification when the pool breaks down as a whole.
"""

from __future__ import annotations

import logging
import os
import threading
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from concurrent.futures.thread import BrokenThreadPool
from typing import Callable, Dict, Iterator, List, Optional, Protocol, Sequence

from unifier.classifier import classify
from unifier.constants import Defaults
from unifier.errors import DispatcherError, ProcessingError, RunCancelled
from unifier.models import FileEntry, FileRecord

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


class CancelToken:
    """Cooperative cancellation flag shared between a caller and a run."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise RunCancelled("Processing cancelled.")


def _classify_entry(entry: FileEntry, max_size_bytes: int) -> Optional[FileRecord]:
    return classify(entry.handle, entry.path, max_size_bytes)


# =============================================================================
# DISPATCHERS
# =============================================================================

class Dispatcher(Protocol):
    """Submit a batch, receive a stream of completions."""

    name: str

    def completions(
        self,
        entries: Sequence[FileEntry],
        max_size_bytes: int,
        cancel: CancelToken,
    ) -> Iterator[Optional[FileRecord]]:
        ...


class SequentialDispatcher:
    """Classifies entries one after another on the calling thread."""

    name = "sequential"

    def completions(
        self,
        entries: Sequence[FileEntry],
        max_size_bytes: int,
        cancel: CancelToken,
    ) -> Iterator[Optional[FileRecord]]:
        for entry in entries:
            cancel.raise_if_cancelled()
            try:
                record = _classify_entry(entry, max_size_bytes)
            except Exception as e:
                logger.error(f"Error processing {entry.path}: {e}")
                record = None
            yield record


class PooledDispatcher:
    """Classifies entries on a thread pool with a bounded number in flight."""

    name = "pooled"

    def __init__(self, max_workers: Optional[int] = None):
        if max_workers is not None and max_workers <= 0:
            raise ValueError("max_workers must be greater than 0")
        self.max_workers = max_workers or min(32, (os.cpu_count() or 1) + 4)

    def completions(
        self,
        entries: Sequence[FileEntry],
        max_size_bytes: int,
        cancel: CancelToken,
    ) -> Iterator[Optional[FileRecord]]:
        try:
            executor = ThreadPoolExecutor(
                max_workers=self.max_workers, thread_name_prefix="unifier"
            )
        except RuntimeError as e:
            raise DispatcherError(f"Could not start worker pool: {e}") from e

        window = self.max_workers * 4
        queue = iter(entries)
        in_flight: Dict[Future, FileEntry] = {}
        exhausted = False

        try:
            while True:
                cancel.raise_if_cancelled()
                while not exhausted and len(in_flight) < window:
                    entry = next(queue, None)
                    if entry is None:
                        exhausted = True
                        break
                    try:
                        future = executor.submit(_classify_entry, entry, max_size_bytes)
                    except RuntimeError as e:
                        raise DispatcherError(f"Worker pool rejected work: {e}") from e
                    in_flight[future] = entry

                if not in_flight:
                    break

                done, _ = wait(in_flight, return_when=FIRST_COMPLETED)
                for future in done:
                    entry = in_flight.pop(future)
                    try:
                        record = future.result()
                    except BrokenThreadPool as e:
                        raise DispatcherError(f"Worker pool broke down: {e}") from e
                    except Exception as e:
                        logger.error(f"Error processing {entry.path}: {e}")
                        record = None
                    yield record
        finally:
            executor.shutdown(wait=True, cancel_futures=True)


def select_dispatcher(max_workers: Optional[int] = None, sequential: bool = False) -> Dispatcher:
    """Pick the pooled dispatcher when a worker thread can be started."""
    if sequential:
        return SequentialDispatcher()
    try:
        with ThreadPoolExecutor(max_workers=1) as probe:
            probe.submit(lambda: None).result()
    except RuntimeError as e:
        logger.warning(f"Worker pool unavailable ({e}), classifying sequentially")
        return SequentialDispatcher()
    return PooledDispatcher(max_workers)


# =============================================================================
# BATCH PROCESSING
# =============================================================================

def _drain(
    dispatcher: Dispatcher,
    entries: Sequence[FileEntry],
    max_size_bytes: int,
    on_progress: Optional[ProgressCallback],
    cancel: CancelToken,
) -> List[FileRecord]:
    records: List[FileRecord] = []
    total = len(entries)
    processed = 0

    for record in dispatcher.completions(entries, max_size_bytes, cancel):
        processed += 1
        if record is not None:
            records.append(record)
        if on_progress and (processed % Defaults.PROGRESS_EVERY == 0 or processed == total):
            on_progress(processed, total)

    cancel.raise_if_cancelled()
    return records


def process_all(
    entries: Sequence[FileEntry],
    max_size_bytes: int,
    on_progress: Optional[ProgressCallback] = None,
    dispatcher: Optional[Dispatcher] = None,
    cancel: Optional[CancelToken] = None,
) -> List[FileRecord]:
    """Classify every entry; skipped files are absent from the result.

    Result order follows completion order. If the worker pool fails as a
    whole, the batch is rerun sequentially from the start.
    """
    cancel = cancel or CancelToken()
    dispatcher = dispatcher or select_dispatcher()
    logger.debug(f"Classifying {len(entries)} files with the {dispatcher.name} dispatcher")

    try:
        return _drain(dispatcher, entries, max_size_bytes, on_progress, cancel)
    except DispatcherError as e:
        if isinstance(dispatcher, SequentialDispatcher):
            raise ProcessingError(f"Processing failed: {e}") from e
        logger.warning(f"{e}; falling back to sequential processing")

    try:
        return _drain(SequentialDispatcher(), entries, max_size_bytes, on_progress, cancel)
    except RunCancelled:
        raise
    except Exception as e:
        raise ProcessingError(f"Processing failed: {e}") from e
