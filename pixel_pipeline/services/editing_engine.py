from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Any, Iterator, Optional, Tuple

import numpy as np

from ..config import settings
from ..io import image_loader, image_saver
from ..io.image_saver import ExportResult, RenderRequest
from ..processing import auto_tone
from ..processing.adjustment_state import DEFAULT_ADJUSTMENTS, AdjustmentState
from ..processing.buffers import BufferStore, validate_buffer
from ..processing.compositor import Compositor, Renderer, Surface
from ..processing.pipeline import SeedLike, render
from ..processing.presets import PresetManager
from ..utils.errors import OperationInProgressError, ProcessingError, SurfaceUnavailableError
from ..utils.geometry import CropRect, crop_image, get_aspect_ratio, resize_image
from ..utils.history import HistoryEntry, HistoryStack
from ..utils.logger import get_logger

logger = get_logger(__name__)

# Fields that only change how Working is drawn, not Working itself
_DRAW_TIME_FIELDS = frozenset(AdjustmentState.group_fields("geometry"))


class Engine:
    """
    One editing session: buffers, adjustment state, history and drawing.

    ``Working`` is always ``render(Original, state)``. Every change of the
    state or of ``Original`` re-renders from ``Original``; rotation and
    flips are left to the compositor and do not re-render.

    History policy: setters called with ``transient=True`` (slider ticks
    during a drag) update the state and re-render without recording
    history; the caller records the drag with one ``commit()`` on release.
    Non-transient setters commit immediately.

    Buffer operations hold a non-blocking "operation in progress" lock. A
    second operation started meanwhile raises ``OperationInProgressError``
    instead of waiting.
    """

    def __init__(
        self,
        renderer: Optional[Renderer] = None,
        history_size: Optional[int] = None,
        seed: SeedLike = None,
        expand: bool = True,
        presets: Optional[PresetManager] = None,
    ) -> None:
        self._buffers = BufferStore()
        self._state: AdjustmentState = DEFAULT_ADJUSTMENTS
        self._history: HistoryStack[AdjustmentState] = HistoryStack(
            max_size=history_size or settings.HISTORY_DEFAULTS["max_size"],
            deep_copy=False,
        )
        self._history.reset(DEFAULT_ADJUSTMENTS, "default")
        self._compositor = Compositor(renderer, expand=expand)
        self._seed = seed
        self._lock = threading.Lock()
        self._running: Optional[str] = None
        self._presets = presets if presets is not None else PresetManager()

    # --- Accessors ---

    @property
    def state(self) -> AdjustmentState:
        return self._state

    @property
    def initial(self) -> Optional[np.ndarray]:
        return self._buffers.initial

    @property
    def original(self) -> Optional[np.ndarray]:
        return self._buffers.original

    @property
    def working(self) -> Optional[np.ndarray]:
        return self._buffers.working

    @property
    def history(self) -> HistoryStack[AdjustmentState]:
        return self._history

    @property
    def has_image(self) -> bool:
        return self._buffers.is_loaded

    @property
    def size(self) -> Optional[Tuple[int, int]]:
        """``(width, height)`` of ``Original``."""
        original = self._buffers.original
        if original is None:
            return None
        return int(original.shape[1]), int(original.shape[0])

    @property
    def presets(self) -> PresetManager:
        return self._presets

    @property
    def is_busy(self) -> bool:
        return self._lock.locked()

    @property
    def has_uncommitted_changes(self) -> bool:
        return self._state != self._history.get_current_state()

    def can_undo(self) -> bool:
        return self.has_uncommitted_changes or self._history.can_undo()

    def can_redo(self) -> bool:
        return self._history.can_redo()

    def attach_renderer(self, renderer: Optional[Renderer]) -> None:
        """Attach (or with None, detach) the presentation surface."""
        self._compositor.renderer = renderer

    @contextmanager
    def _operation(self, name: str) -> Iterator[None]:
        if not self._lock.acquire(blocking=False):
            raise OperationInProgressError(name, running=self._running)
        self._running = name
        try:
            yield
        finally:
            self._running = None
            self._lock.release()

    def _require_image(self) -> np.ndarray:
        original = self._buffers.original
        if original is None:
            raise ProcessingError(
                "No image loaded",
                step="engine",
                user_message="Load an image first.",
            )
        return original

    # --- Session ---

    def start_session(self) -> None:
        """Discard all buffers and history; the next load starts a new image."""
        with self._operation("start_session"):
            self._buffers.clear()
            self._state = DEFAULT_ADJUSTMENTS
            self._history.reset(DEFAULT_ADJUSTMENTS, "default")
            logger.debug("Started new editing session")

    def open(self, file_path: str) -> np.ndarray:
        """Decode ``file_path`` as a new image (new session) and render it."""
        image = image_loader.load_image(file_path)
        self.start_session()
        return self.load(image)

    def load(self, image: np.ndarray) -> np.ndarray:
        """
        Load a decoded image into ``Original``.

        ``Initial`` is only set if this session has none yet. The current
        adjustments are kept and applied to the new ``Original``.
        """
        with self._operation("load"):
            self._buffers.load(image)
            return self._rerender()

    # --- Adjustments ---

    def set_adjustment(self, name: str, value: Any, transient: bool = False) -> AdjustmentState:
        """Set one field (e.g. ``set_adjustment("contrast", 25)``)."""
        return self._apply_state(self._state.set(name, value), transient, f"{name}={value}")

    def update_adjustments(self, transient: bool = False, description: Optional[str] = None, **changes: Any) -> AdjustmentState:
        """Merge several fields at once; one history entry when committed."""
        new_state = self._state.with_changes(**changes)
        if description is None:
            description = ", ".join(f"{k}={v}" for k, v in changes.items())
        return self._apply_state(new_state, transient, description)

    def apply_preset(self, preset_id: str) -> AdjustmentState:
        """
        Merge a named preset over the current state as one history entry.

        Fields the preset does not name keep their values. The ``none``
        preset clears every adjustment like ``reset_adjustments``.
        """
        preset = self._presets.require_preset(preset_id)
        if preset.is_reset:
            return self.reset_adjustments()
        logger.info("Apply preset %s", preset.id)
        return self._apply_state(preset.apply(self._state), False, f"preset {preset.id}")

    def rotate(self, degrees: float = 90.0) -> AdjustmentState:
        return self._apply_state(self._state.rotate_by(degrees), False, f"rotate {degrees:+g}")

    def flip(self, axis: str) -> AdjustmentState:
        return self._apply_state(self._state.toggle_flip(axis), False, f"flip {axis}")

    def _apply_state(self, new_state: AdjustmentState, transient: bool, description: str) -> AdjustmentState:
        changed = set(new_state.changed_fields(self._state))
        with self._operation("adjust"):
            self._state = new_state
            if self._buffers.is_loaded and (changed - _DRAW_TIME_FIELDS or self._buffers.working is None):
                self._rerender()
            if not transient:
                self._commit(description)
        return self._state

    def commit(self, description: str = "") -> Optional[HistoryEntry[AdjustmentState]]:
        """
        Record the current state as a history entry.

        Returns:
            The new entry, or None if the state equals the current entry.
        """
        with self._operation("commit"):
            return self._commit(description)

    def _commit(self, description: str) -> Optional[HistoryEntry[AdjustmentState]]:
        if not self.has_uncommitted_changes:
            return None
        return self._history.push(self._state, description)

    def undo(self) -> AdjustmentState:
        """
        Step back one history entry and re-render.

        Uncommitted transient changes are discarded first, as one step. At
        entry 0 this is a no-op. The history cursor only moves while the
        operation lock is held.
        """
        with self._operation("undo"):
            if self.has_uncommitted_changes:
                restored = self._history.get_current_state()
            else:
                restored = self._history.undo()
            if restored is not None:
                self._restore_state(restored)
        return self._state

    def redo(self) -> AdjustmentState:
        with self._operation("redo"):
            restored = self._history.redo()
            if restored is not None:
                self._restore_state(restored)
        return self._state

    def _restore_state(self, state: AdjustmentState) -> None:
        changed = set(state.changed_fields(self._state))
        self._state = state
        if self._buffers.is_loaded and changed - _DRAW_TIME_FIELDS:
            self._rerender()

    def reset_adjustments(self) -> AdjustmentState:
        """Back to the default state; ``Original`` is left as it is."""
        with self._operation("reset_adjustments"):
            self._state = DEFAULT_ADJUSTMENTS
            if self._buffers.is_loaded:
                self._rerender()
            self._commit("reset adjustments")
        return self._state

    def full_reset(self) -> AdjustmentState:
        """
        Restore ``Original`` from ``Initial`` and clear all adjustments.

        This also undoes every crop and resize, since those replaced
        ``Original`` and only ``Initial`` remembers the decoded image.
        """
        with self._operation("full_reset"):
            self._require_image()
            self._buffers.restore_initial()
            self._state = DEFAULT_ADJUSTMENTS
            self._rerender()
            self._history.push(DEFAULT_ADJUSTMENTS, "full reset")
        logger.info("Full reset to initial image (%dx%d)", *self.size)
        return self._state

    # --- Geometry (rebases Original) ---

    def crop(
        self,
        x: int,
        y: int,
        width: int,
        height: int,
        aspect: Optional[str] = None,
        anchor: str = "top-left",
    ) -> np.ndarray:
        """
        Crop ``Original`` to the rectangle and re-render with the current state.

        With ``aspect`` (a name from ``ASPECT_RATIOS`` such as "16:9") the
        rectangle is first clamped to the image, then shrunk to that ratio
        keeping ``anchor`` in place.
        """
        ratio = get_aspect_ratio(aspect)
        with self._operation("crop"):
            rect = CropRect(int(x), int(y), int(width), int(height))
            cropped = crop_image(self._require_image(), rect, aspect=ratio, anchor=anchor)
            logger.info("Crop to %dx%d at (%d, %d)", cropped.shape[1], cropped.shape[0], x, y)
            return self._rebase(cropped)

    def resize(self, width: int, height: int, keep_aspect: bool = False) -> np.ndarray:
        """Resample ``Original`` and re-render with the current state."""
        with self._operation("resize"):
            resized = resize_image(self._require_image(), width, height, keep_aspect=keep_aspect)
            logger.info("Resize to %dx%d", resized.shape[1], resized.shape[0])
            return self._rebase(resized)

    def commit_geometry(self, new_buffer: np.ndarray) -> np.ndarray:
        """Replace ``Original`` with an externally produced buffer."""
        with self._operation("commit_geometry"):
            self._require_image()
            return self._rebase(validate_buffer(new_buffer, "new_buffer"))

    def auto_levels(self) -> np.ndarray:
        with self._operation("auto_levels"):
            return self._rebase(auto_tone.auto_levels(self._require_image()))

    def auto_white_balance(self) -> np.ndarray:
        with self._operation("auto_white_balance"):
            return self._rebase(auto_tone.auto_white_balance(self._require_image()))

    def _rebase(self, new_original: np.ndarray) -> np.ndarray:
        self._buffers.commit_geometry(new_original)
        return self._rerender()

    # --- Rendering / output ---

    def render(self) -> np.ndarray:
        """Recompute ``Working`` from ``Original`` and the current state."""
        with self._operation("render"):
            return self._rerender()

    def _rerender(self) -> np.ndarray:
        original = self._require_image()
        working = render(original, self._state, seed=self._seed)
        self._buffers.set_working(working)
        return working

    def present(self) -> Surface:
        """Draw ``Working`` with the current rotation and flips."""
        with self._operation("present"):
            return self._present()

    def _present(self) -> Surface:
        if not self._compositor.has_surface:
            raise SurfaceUnavailableError()
        self._require_image()
        working = self._buffers.working
        if working is None:
            working = self._rerender()
        return self._compositor.present(working, self._state)

    def export(self, request: Optional[RenderRequest] = None, **kwargs: Any) -> ExportResult:
        """
        Encode the presented image.

        Accepts a ``RenderRequest`` or its fields as keyword arguments.
        Resizing for export works on a copy; ``Original`` is not changed.
        """
        if request is None:
            request = RenderRequest(**kwargs)
        with self._operation("export"):
            surface = self._present()
            return image_saver.encode_image(surface.pixels, request)

    def histogram(self) -> auto_tone.Histogram:
        """Per-channel and luminance histogram of ``Original``."""
        return auto_tone.compute_histogram(self._require_image())
