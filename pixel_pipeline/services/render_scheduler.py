from __future__ import annotations

import concurrent.futures
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

import numpy as np

from ..config import settings
from ..processing.adjustment_state import AdjustmentState
from ..processing.buffers import validate_buffer
from ..processing.pipeline import SeedLike, render
from ..utils.errors import ErrorCategory, ProcessingError, handle_errors
from ..utils.image_proxy import ProxyInfo, create_proxy
from ..utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class RenderResult:
    """A finished background render."""

    generation: int
    state: AdjustmentState
    buffer: np.ndarray
    proxy_info: ProxyInfo
    elapsed: float

    @property
    def is_proxy(self) -> bool:
        return self.proxy_info.is_proxy


ResultCallback = Callable[[RenderResult], None]
ErrorCallback = Callable[[Exception], None]


@handle_errors(fallback_value=None, category=ErrorCategory.RECOVERABLE, log_level="exception")
def _notify(listener: Optional[Callable], payload) -> None:
    if listener is not None:
        listener(payload)


class RenderScheduler:
    """
    Runs the pipeline off the calling thread, latest request wins.

    Each ``request`` gets a new generation number. Queued requests that
    have not started yet are cancelled when a newer one arrives, and a
    render that finishes after being superseded is dropped instead of
    delivered. Only the newest generation ever reaches ``on_result``.
    """

    def __init__(
        self,
        on_result: Optional[ResultCallback] = None,
        on_error: Optional[ErrorCallback] = None,
        max_preview_pixels: Optional[int] = None,
        seed: SeedLike = None,
    ) -> None:
        self._on_result = on_result
        self._on_error = on_error
        self._max_preview_pixels = (
            max_preview_pixels
            if max_preview_pixels is not None
            else settings.RENDER_DEFAULTS["preview_max_pixels"]
        )
        self._seed = seed
        self._executor = concurrent.futures.ThreadPoolExecutor(max_workers=1, thread_name_prefix="pixel-render")
        self._lock = threading.RLock()
        self._generation = 0
        self._futures: Dict[int, concurrent.futures.Future] = {}
        self._latest: Optional[RenderResult] = None
        self._closed = False

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def latest(self) -> Optional[RenderResult]:
        """The most recent delivered result, if any."""
        return self._latest

    def request(self, original: np.ndarray, state: AdjustmentState) -> int:
        """
        Schedule a render of ``original`` with ``state``.

        Returns:
            The generation number of this request.
        """
        validate_buffer(original, "original")
        with self._lock:
            if self._closed:
                raise ProcessingError("Render scheduler has been shut down", step="scheduler")
            self._generation += 1
            generation = self._generation
            for old_generation, old in list(self._futures.items()):
                if old.cancel():
                    logger.debug("Cancelled queued render %d", old_generation)
                    del self._futures[old_generation]
            future = self._executor.submit(self._run, generation, original, state)
            self._futures[generation] = future
            future.add_done_callback(lambda _f, g=generation: self._forget(g))
        return generation

    def is_current(self, generation: int) -> bool:
        return generation == self._generation

    def wait(self, timeout: Optional[float] = None) -> Optional[RenderResult]:
        """
        Block until the newest request has finished, at most ``timeout`` seconds.

        Returns:
            The newest result, or None if it did not finish in time or was
            itself superseded while waiting.

        Raises:
            Whatever the newest render raised.
        """
        if timeout is None:
            timeout = settings.RENDER_DEFAULTS["wait_timeout"]
        with self._lock:
            generation = self._generation
            future = self._futures.get(generation)
        if future is not None:
            done, _ = concurrent.futures.wait([future], timeout=timeout)
            if not done:
                logger.warning("Render %d still running after %.1fs", generation, timeout)
                return None
            if future.cancelled():
                return None
            error = future.exception()
            if error is not None:
                raise error
        latest = self._latest
        if latest is not None and latest.generation == generation:
            return latest
        return None

    def shutdown(self, wait: bool = True) -> None:
        with self._lock:
            self._closed = True
        self._executor.shutdown(wait=wait, cancel_futures=True)
        logger.debug("Render scheduler shut down")

    def __enter__(self) -> "RenderScheduler":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()

    # --- Worker side ---

    def _forget(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation:
                self._futures.pop(generation, None)

    def _run(self, generation: int, original: np.ndarray, state: AdjustmentState) -> Optional[RenderResult]:
        if not self.is_current(generation):
            logger.debug("Skipping superseded render %d", generation)
            return None

        start = time.perf_counter()
        try:
            source, proxy_info = create_proxy(original, self._max_preview_pixels)
            buffer = render(source, state, seed=self._seed)
        except Exception as e:
            if self.is_current(generation):
                logger.error("Background render %d failed: %s", generation, e)
                _notify(self._on_error, e)
            raise

        result = RenderResult(
            generation=generation,
            state=state,
            buffer=buffer,
            proxy_info=proxy_info,
            elapsed=time.perf_counter() - start,
        )
        with self._lock:
            if generation != self._generation:
                logger.debug("Dropping stale render %d (current is %d)", generation, self._generation)
                return None
            self._latest = result
        _notify(self._on_result, result)
        return result
