# Application settings
import numpy as np

# --- Pipeline Parameters ---
PIPELINE_DEFAULTS = {
    # Rec. 601 style weights used by saturation and the luminance histogram
    "luma_weights": (0.2989, 0.587, 0.114),

    # Per-channel offsets, applied as c += (value / 100) * coeff
    "temperature_warm": (30.0, 15.0, -30.0),
    "temperature_cool": (20.0, -5.0, -30.0),
    "tint_magenta": (20.0, -20.0, 20.0),
    "tint_green": (10.0, -20.0, 10.0),

    # Spatial filters
    "clarity_radius": 2,
    "dehaze_atmospheric_light": 220.0,
    "dehaze_transmission_scale": 0.5,
    "sharpen_kernel": np.array([
        [0, -1, 0],
        [-1, 5, -1],
        [0, -1, 0]
    ], dtype=np.float64),
    "blur_radius_step": 10,  # radius = ceil(blur / step)

    # Post effects
    "vignette_radius": 0.5,
    "grain_max_amplitude": 50.0,
}

# --- Rendering ---
RENDER_DEFAULTS = {
    # Grain noise is seeded so render(original, state) stays a pure function
    "grain_seed": 0x5EED,
    # Background previews above this size are rendered on a proxy
    "preview_max_pixels": 4_000_000,
    # Upper bound (seconds) a caller waits on the background scheduler
    "wait_timeout": 30.0,
}

# --- Export ---
EXPORT_DEFAULTS = {
    "default_quality": 90,
    "fallback_format": "webp",
    # Requested format -> Pillow format name
    "pillow_formats": {
        "png": "PNG",
        "jpg": "JPEG",
        "jpeg": "JPEG",
        "webp": "WEBP",
        "avif": "AVIF",
        "bmp": "BMP",
        "gif": "PNG",  # GIF exports are encoded as PNG
    },
    "lossy_formats": ("jpg", "jpeg", "webp", "avif"),
    # Rough bytes-per-pixel factors for the size estimate shown before export.
    # (bytes_per_pixel, scales_with_quality)
    "size_factors": {
        "png": (1.5, False),
        "jpg": (0.9, True),
        "jpeg": (0.9, True),
        "webp": (0.6, True),
        "avif": (0.45, True),
        "bmp": (3.0, False),
        "gif": (0.5, False),
    },
}

# --- History ---
HISTORY_DEFAULTS = {
    "max_size": 100,
}

# --- Logging ---
LOGGING_LEVEL = "INFO" # Options: DEBUG, INFO, WARNING, ERROR
