from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from ..utils.errors import InvalidAdjustmentError
from ..utils.logger import get_logger
from .adjustment_state import DEFAULT_ADJUSTMENTS, AdjustmentState

logger = get_logger(__name__)

# Clears every adjustment instead of merging
RESET_PRESET_ID = "none"


@dataclass(frozen=True)
class AdjustmentPreset:
    """A named set of adjustment values merged over the current state."""
    id: str
    name: str
    parameters: Dict[str, float] = field(default_factory=dict)
    builtin: bool = False

    @property
    def is_reset(self) -> bool:
        return self.id == RESET_PRESET_ID

    def apply(self, state: AdjustmentState) -> AdjustmentState:
        """Return ``state`` with the preset's values; fields it omits are kept."""
        if self.is_reset:
            return DEFAULT_ADJUSTMENTS
        return state.with_changes(**self.parameters)

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "parameters": dict(self.parameters)}


def _builtin(preset_id: str, name: str, **parameters: float) -> AdjustmentPreset:
    return AdjustmentPreset(preset_id, name, parameters, builtin=True)


BUILTIN_PRESETS: Dict[str, AdjustmentPreset] = {p.id: p for p in (
    _builtin("none", "None"),
    _builtin("vintage", "Vintage", brightness=-5, contrast=10, saturation=-30, exposure=-10),
    _builtin("bw", "Black & White", saturation=-100),
    _builtin("warm", "Warm", brightness=5, saturation=20, exposure=5),
    _builtin("cool", "Cool", brightness=-5, saturation=-10, contrast=10),
    _builtin("dramatic", "Dramatic", contrast=30, saturation=-20, shadows=-20, highlights=20),
    _builtin("fade", "Fade", contrast=-20, brightness=10, saturation=-20),
    _builtin("vivid", "Vivid", saturation=40, contrast=20),
    _builtin("sepia", "Sepia", saturation=-80, brightness=5),
    _builtin("hdr", "HDR", contrast=25, saturation=15, highlights=-30, shadows=30, sharpness=20),
)}


def _slugify(name: str) -> str:
    slug = name.strip().lower().replace(" ", "_").replace("-", "_")
    slug = "".join(ch for ch in slug if (ch.isalnum() or ch == "_"))
    return slug or "preset"


def _validate_preset(preset: dict, source: str) -> Tuple[bool, Optional[AdjustmentPreset]]:
    if not isinstance(preset, dict):
        logger.warning("Invalid adjustment preset from %s: expected dict", source)
        return False, None

    preset_id = preset.get("id")
    name = preset.get("name")
    params = preset.get("parameters")

    if not isinstance(preset_id, str) or not preset_id.strip():
        logger.warning("Invalid adjustment preset from %s: missing/invalid 'id'", source)
        return False, None
    if not isinstance(name, str) or not name.strip():
        logger.warning("Invalid adjustment preset '%s' from %s: missing/invalid 'name'", preset_id, source)
        return False, None
    if not isinstance(params, dict) or not all(isinstance(k, str) for k in params):
        logger.warning("Invalid adjustment preset '%s' from %s: missing/invalid 'parameters'", preset_id, source)
        return False, None
    try:
        DEFAULT_ADJUSTMENTS.with_changes(**params)
    except InvalidAdjustmentError as e:
        logger.warning("Invalid adjustment preset '%s' from %s: %s", preset_id, source, e)
        return False, None

    canonical = {AdjustmentState.canonical_name(k): v for k, v in params.items()}
    return True, AdjustmentPreset(preset_id.strip(), name.strip(), canonical)


class PresetManager:
    """
    Built-in presets plus user presets kept in a JSON file.

    File format: JSON list of objects:
      { "id": "...", "name": "...", "parameters": { ... } }

    Without ``presets_file`` user presets live in memory only.
    Built-in presets cannot be overwritten or deleted.
    """

    def __init__(self, presets_file: Optional[str] = None):
        self.presets_file = presets_file
        self._presets: Dict[str, AdjustmentPreset] = {}
        self.load()

    def load(self) -> None:
        self._presets = dict(BUILTIN_PRESETS)
        if not self.presets_file:
            return
        if not os.path.isfile(self.presets_file):
            logger.info("No adjustment presets file found at %s.", self.presets_file)
            return

        try:
            with open(self.presets_file, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError:
            logger.exception("Failed to decode adjustment presets file %s", self.presets_file)
            return
        except OSError:
            logger.exception("Failed to read adjustment presets file %s", self.presets_file)
            return

        if not isinstance(data, list):
            logger.warning("Adjustment presets file %s must contain a JSON list.", self.presets_file)
            return

        loaded = 0
        for idx, entry in enumerate(data):
            ok, preset = _validate_preset(entry, source=f"{self.presets_file}#{idx}")
            if not ok:
                continue
            if preset.id in BUILTIN_PRESETS:
                logger.warning("Ignoring user preset '%s': the name is taken by a built-in preset", preset.id)
                continue
            self._presets[preset.id] = preset
            loaded += 1

        logger.info("Loaded %s adjustment presets from %s.", loaded, self.presets_file)

    def list_presets(self) -> List[AdjustmentPreset]:
        """Built-in presets in their fixed order, then user presets by name."""
        user = sorted((p for p in self._presets.values() if not p.builtin), key=lambda p: p.name)
        return list(BUILTIN_PRESETS.values()) + user

    def get_preset(self, preset_id: str) -> Optional[AdjustmentPreset]:
        return self._presets.get(preset_id)

    def require_preset(self, preset_id: str) -> AdjustmentPreset:
        preset = self.get_preset(preset_id)
        if preset is None:
            raise InvalidAdjustmentError(f"Unknown preset: {preset_id!r}", field_name="preset")
        return preset

    def _save(self) -> bool:
        if not self.presets_file:
            return True
        user = [p.to_dict() for p in self.list_presets() if not p.builtin]
        try:
            directory = os.path.dirname(self.presets_file)
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(self.presets_file, "w", encoding="utf-8") as f:
                json.dump(user, f, indent=2)
            logger.info("Saved %s adjustment presets to %s.", len(user), self.presets_file)
            return True
        except OSError:
            logger.exception("Failed saving adjustment presets to %s", self.presets_file)
            return False

    def add_preset(self, name: str, parameters: Dict, preset_id: Optional[str] = None, *, overwrite: bool = False) -> Tuple[bool, str]:
        if not isinstance(parameters, dict):
            return False, "parameters must be a dict"

        resolved_id = (preset_id or _slugify(name)).strip()
        if resolved_id in BUILTIN_PRESETS:
            return False, f"Preset '{resolved_id}' is built in"
        if not overwrite and resolved_id in self._presets:
            return False, f"Preset '{resolved_id}' already exists"

        entry = {"id": resolved_id, "name": name.strip() or resolved_id, "parameters": parameters}
        ok, preset = _validate_preset(entry, source="add_preset")
        if not ok:
            return False, "invalid preset payload"

        self._presets[resolved_id] = preset
        if self._save():
            return True, resolved_id
        return False, "failed to save presets file"

    def delete_preset(self, preset_id: str) -> bool:
        if preset_id in BUILTIN_PRESETS or preset_id not in self._presets:
            return False
        self._presets.pop(preset_id, None)
        return self._save()
