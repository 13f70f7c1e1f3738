"""
Background execution for catalog work.

Catalog queries run on a single worker thread. Their results come back to the
control thread through a Dispatcher, a queue of callbacks that only the control
thread drains. The queue engine never blocks its control thread on catalog I/O.
"""

import logging
import queue
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Optional


class Dispatcher:
    """Runs callbacks on the single control thread that drains it."""

    def __init__(self):
        self._callbacks: "queue.Queue[Callable[[], Any]]" = queue.Queue()
        self._stop_event = threading.Event()
        self.logger = logging.getLogger(__name__)

    def post(self, callback: Callable[[], Any]) -> None:
        """Schedule a callback on the control thread. Safe from any thread."""
        self._callbacks.put(callback)

    def call(self, func: Callable[..., Any], *args, **kwargs) -> Future:
        """
        Run a function on the control thread and return a future for its result.

        Used by other threads (e.g. web handlers) to issue commands.
        """
        future: Future = Future()

        def run():
            if not future.set_running_or_notify_cancel():
                return
            try:
                future.set_result(func(*args, **kwargs))
            except Exception as e:
                future.set_exception(e)

        self.post(run)
        return future

    def run_once(self, timeout: Optional[float] = None) -> bool:
        """
        Run one pending callback, waiting up to timeout for one to arrive.

        Returns:
            True if a callback was run
        """
        try:
            callback = self._callbacks.get(timeout=timeout) if timeout else self._callbacks.get_nowait()
        except queue.Empty:
            return False
        try:
            callback()
        except Exception as e:
            self.logger.error("Error in dispatched callback: %s", e, exc_info=True)
        return True

    def run_pending(self) -> int:
        """Run every callback that is already queued. Returns how many ran."""
        count = 0
        while self.run_once():
            count += 1
        return count

    def run_forever(self, poll_interval: float = 0.5) -> None:
        """Drain callbacks until stop() is called."""
        self._stop_event.clear()
        while not self._stop_event.is_set():
            self.run_once(timeout=poll_interval)
        self.run_pending()

    def stop(self) -> None:
        """Ask run_forever() to return."""
        self._stop_event.set()


class BackgroundRunner:
    """Single-worker executor whose completions are delivered to a Dispatcher."""

    def __init__(self, dispatcher: Dispatcher, name: str = "CatalogWorker"):
        self.dispatcher = dispatcher
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=name)
        self.logger = logging.getLogger(__name__)

    def submit(
        self,
        task: Callable[[], Any],
        on_done: Optional[Callable[[Future], Any]] = None,
    ) -> Future:
        """
        Run task on the worker thread.

        Args:
            task: Callable run in the background
            on_done: Called on the control thread with the finished (or cancelled) future

        Returns:
            The future for the task
        """
        future = self._executor.submit(task)
        if on_done is not None:
            future.add_done_callback(lambda f: self.dispatcher.post(lambda: on_done(f)))
        return future

    def shutdown(self, wait: bool = True) -> None:
        """Stop the worker, cancelling anything not started yet."""
        self._executor.shutdown(wait=wait, cancel_futures=True)
        self.logger.debug("Background runner stopped")
