"""Typed, immutable adjustment state driving the pixel pipeline.

Every field carries its domain in the dataclass metadata. Instances are
frozen: the setters return a new state, so a state captured by the
history stack or by a pending render can never change underneath it.
"""

from __future__ import annotations

import math
import numbers
from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, Iterable, Optional, Tuple

from ..config import settings
from ..utils.errors import InvalidAdjustmentError


def _slider(low: float, high: float, default: float = 0.0, *, group: str):
    return field(default=default, metadata={"range": (low, high), "group": group})


def _toggle(*, group: str):
    return field(default=False, metadata={"range": None, "group": group})


@dataclass(frozen=True)
class AdjustmentState:
    """Named tone, color, spatial and geometric adjustments.

    Tone/color fields (``-100..100``): exposure, brightness, contrast,
    temperature, tint, vibrance, saturation, highlights, shadows; ``hue``
    is in degrees (``-180..180``). Spatial and effect fields are
    ``0..100``. ``rotation`` is normalised into ``[0, 360)``.
    """

    # Tone & color
    exposure: float = _slider(-100, 100, group="tone")
    brightness: float = _slider(-100, 100, group="tone")
    contrast: float = _slider(-100, 100, group="tone")
    temperature: float = _slider(-100, 100, group="tone")
    tint: float = _slider(-100, 100, group="tone")
    vibrance: float = _slider(-100, 100, group="tone")
    saturation: float = _slider(-100, 100, group="tone")
    hue: float = _slider(-180, 180, group="tone")
    highlights: float = _slider(-100, 100, group="tone")
    shadows: float = _slider(-100, 100, group="tone")

    # Spatial filters
    clarity: float = _slider(0, 100, group="spatial")
    dehaze: float = _slider(0, 100, group="spatial")
    sharpness: float = _slider(0, 100, group="spatial")
    blur: float = _slider(0, 100, group="spatial")

    # Post effects
    vignette_amount: float = _slider(0, 100, group="effects")
    vignette_radius: float = _slider(0, 1, settings.PIPELINE_DEFAULTS["vignette_radius"], group="effects")
    grain: float = _slider(0, 100, group="effects")

    # Geometry, applied at draw time only
    rotation: float = field(default=0.0, metadata={"range": (0, 360), "group": "geometry"})
    flip_horizontal: bool = _toggle(group="geometry")
    flip_vertical: bool = _toggle(group="geometry")

    def __post_init__(self):
        for f in fields(self):
            value = getattr(self, f.name)
            if f.metadata["range"] is None:
                if not isinstance(value, bool):
                    raise InvalidAdjustmentError(
                        f"{f.name} must be a bool, got {value!r}", field_name=f.name
                    )
                continue
            value = _as_number(f.name, value)
            if f.name == "rotation":
                value = value % 360.0
            else:
                low, high = f.metadata["range"]
                if not low <= value <= high:
                    raise InvalidAdjustmentError(
                        f"{f.name}={value} is outside {low}..{high}",
                        field_name=f.name,
                        allowed=(low, high),
                    )
            object.__setattr__(self, f.name, value)

    # --- Setters (each returns a new state) ---

    def set(self, name: str, value: Any) -> "AdjustmentState":
        """Return a copy with a single field changed."""
        return self.with_changes(**{name: value})

    def with_changes(self, **changes: Any) -> "AdjustmentState":
        """Merge ``changes`` into a copy of this state.

        Keys may use the web editor's camelCase names (``flipHorizontal``).
        """
        changes = {self.canonical_name(k): v for k, v in changes.items()}
        unknown = sorted(set(changes) - set(self.field_names()))
        if unknown:
            raise InvalidAdjustmentError(
                f"Unknown adjustment field(s): {', '.join(unknown)}", field_name=unknown[0]
            )
        return replace(self, **changes)

    def rotate_by(self, degrees: float) -> "AdjustmentState":
        """Rotate by ``degrees`` (the UI uses +/-90 steps)."""
        return replace(self, rotation=self.rotation + _as_number("rotation", degrees))

    def toggle_flip(self, axis: str) -> "AdjustmentState":
        if axis == "horizontal":
            return replace(self, flip_horizontal=not self.flip_horizontal)
        if axis == "vertical":
            return replace(self, flip_vertical=not self.flip_vertical)
        raise InvalidAdjustmentError(f"Unknown flip axis: {axis!r}", field_name="flip")

    # --- Introspection ---

    @classmethod
    def field_names(cls) -> Tuple[str, ...]:
        return tuple(f.name for f in fields(cls))

    @staticmethod
    def canonical_name(name: str) -> str:
        """Map a camelCase alias to its field name; other names pass through."""
        return _FIELD_ALIASES.get(name, name)

    @classmethod
    def domain(cls, name: str) -> Optional[Tuple[float, float]]:
        """Return the ``(low, high)`` domain of a field, None for toggles."""
        name = cls.canonical_name(name)
        for f in fields(cls):
            if f.name == name:
                return f.metadata["range"]
        raise InvalidAdjustmentError(f"Unknown adjustment field: {name}", field_name=name)

    @classmethod
    def group_fields(cls, group: str) -> Tuple[str, ...]:
        return tuple(f.name for f in fields(cls) if f.metadata["group"] == group)

    def is_neutral(self, groups: Optional[Iterable[str]] = None) -> bool:
        """True if every field (optionally limited to ``groups``) is at its default."""
        default = AdjustmentState()
        wanted = set(groups) if groups is not None else None
        return all(
            getattr(self, f.name) == getattr(default, f.name)
            for f in fields(self)
            if wanted is None or f.metadata["group"] in wanted
        )

    def changed_fields(self, other: "AdjustmentState") -> Dict[str, Tuple[Any, Any]]:
        """Fields whose value differs from ``other``, as ``{name: (other, self)}``."""
        return {
            f.name: (getattr(other, f.name), getattr(self, f.name))
            for f in fields(self)
            if getattr(self, f.name) != getattr(other, f.name)
        }

    # --- Serialization ---

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AdjustmentState":
        """Build a state from a (possibly partial) mapping of field values.

        Keys may use the web editor's camelCase names (``vignetteAmount``).
        """
        return cls().with_changes(**data)


_FIELD_ALIASES = {
    "vignetteAmount": "vignette_amount",
    "vignetteRadius": "vignette_radius",
    "flipHorizontal": "flip_horizontal",
    "flipVertical": "flip_vertical",
}


def _as_number(name: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise InvalidAdjustmentError(f"{name} must be a number, got {value!r}", field_name=name)
    value = float(value)
    if not math.isfinite(value):
        raise InvalidAdjustmentError(f"{name} must be finite, got {value!r}", field_name=name)
    return value


DEFAULT_ADJUSTMENTS = AdjustmentState()
