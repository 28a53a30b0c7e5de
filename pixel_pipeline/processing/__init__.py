# Processing package initialization
from .adjustment_state import AdjustmentState, DEFAULT_ADJUSTMENTS
from .buffers import BufferStore, validate_buffer, as_rgba
from .pipeline import render
from .compositor import AffineTransform, CanvasRenderer, Compositor, Renderer, Surface
from .auto_tone import Histogram, compute_histogram, auto_levels, auto_white_balance
from .presets import AdjustmentPreset, BUILTIN_PRESETS, PresetManager
