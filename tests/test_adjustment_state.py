"""Tests for the typed adjustment state."""

import dataclasses
import math

import pytest

from pixel_pipeline.processing.adjustment_state import AdjustmentState, DEFAULT_ADJUSTMENTS
from pixel_pipeline.utils.errors import ErrorCategory, InvalidAdjustmentError


class TestDefaults:
    """Tests for the neutral state."""

    def test_default_is_neutral(self):
        """All sliders default to 0 except the vignette radius."""
        state = AdjustmentState()
        assert state.is_neutral()
        assert state.vignette_radius == 0.5
        assert state.rotation == 0.0
        assert state.flip_horizontal is False
        assert state.flip_vertical is False

    def test_module_default_equals_new_instance(self):
        """DEFAULT_ADJUSTMENTS should equal a fresh state."""
        assert DEFAULT_ADJUSTMENTS == AdjustmentState()

    def test_state_is_immutable(self):
        """Assigning to a field should fail."""
        state = AdjustmentState()
        with pytest.raises(dataclasses.FrozenInstanceError):
            state.contrast = 10


class TestValidation:
    """Tests for domain checks."""

    @pytest.mark.parametrize("name,value", [
        ("contrast", 101),
        ("exposure", -100.5),
        ("hue", 181),
        ("blur", -1),
        ("grain", 100.01),
        ("vignette_radius", 1.5),
    ])
    def test_out_of_range_rejected(self, name, value):
        """Values outside the field's domain should raise, not clamp."""
        with pytest.raises(InvalidAdjustmentError) as exc_info:
            AdjustmentState().set(name, value)
        assert exc_info.value.field_name == name
        assert exc_info.value.category == ErrorCategory.USER_INPUT

    def test_bounds_are_inclusive(self):
        """Domain endpoints are valid."""
        state = AdjustmentState(contrast=-100, saturation=100, hue=-180, blur=100, vignette_radius=0)
        assert state.contrast == -100
        assert state.hue == -180

    def test_allowed_range_reported(self):
        """The error should carry the allowed range."""
        with pytest.raises(InvalidAdjustmentError) as exc_info:
            AdjustmentState(sharpness=200)
        assert exc_info.value.allowed == (0, 100)

    def test_unknown_field_rejected(self):
        """Unknown names should raise InvalidAdjustmentError."""
        with pytest.raises(InvalidAdjustmentError) as exc_info:
            AdjustmentState().with_changes(gamma=1.2)
        assert exc_info.value.field_name == "gamma"

    def test_non_numeric_rejected(self):
        """Strings, bools and NaN are not valid slider values."""
        for bad in ("10", True, math.nan, math.inf):
            with pytest.raises(InvalidAdjustmentError):
                AdjustmentState().set("brightness", bad)

    def test_flip_requires_bool(self):
        """Flip fields only accept real booleans."""
        with pytest.raises(InvalidAdjustmentError):
            AdjustmentState(flip_horizontal=1)

    def test_integers_are_stored_as_floats(self):
        """Numeric fields are normalised to float."""
        state = AdjustmentState(contrast=20)
        assert isinstance(state.contrast, float)


class TestRotation:
    """Tests for rotation normalisation."""

    def test_rotation_wraps(self):
        """Rotation is normalised into [0, 360)."""
        assert AdjustmentState(rotation=450).rotation == 90.0
        assert AdjustmentState(rotation=-90).rotation == 270.0
        assert AdjustmentState(rotation=360).rotation == 0.0

    def test_rotate_by(self):
        """rotate_by accumulates quarter turns."""
        state = AdjustmentState().rotate_by(90).rotate_by(90).rotate_by(90).rotate_by(90)
        assert state.rotation == 0.0
        assert AdjustmentState().rotate_by(-90).rotation == 270.0

    def test_toggle_flip(self):
        """toggle_flip flips one axis and returns a new state."""
        state = AdjustmentState()
        flipped = state.toggle_flip("horizontal")
        assert flipped.flip_horizontal is True
        assert state.flip_horizontal is False
        assert flipped.toggle_flip("horizontal").flip_horizontal is False
        assert state.toggle_flip("vertical").flip_vertical is True

    def test_toggle_flip_unknown_axis(self):
        """Unknown axis names should raise."""
        with pytest.raises(InvalidAdjustmentError):
            AdjustmentState().toggle_flip("diagonal")


class TestUpdates:
    """Tests for setters and introspection."""

    def test_with_changes_returns_new_state(self):
        """Merging leaves the original state untouched."""
        state = AdjustmentState(contrast=10)
        updated = state.with_changes(brightness=5, saturation=-20)
        assert state.brightness == 0
        assert updated.contrast == 10
        assert updated.brightness == 5
        assert updated.saturation == -20

    def test_changed_fields(self):
        """changed_fields reports (old, new) pairs."""
        state = AdjustmentState().with_changes(contrast=10, grain=5)
        assert state.changed_fields(AdjustmentState()) == {
            "contrast": (0.0, 10.0),
            "grain": (0.0, 5.0),
        }

    def test_is_neutral_by_group(self):
        """Geometry-only changes keep the tone group neutral."""
        state = AdjustmentState(rotation=90, flip_vertical=True)
        assert state.is_neutral(["tone", "spatial", "effects"])
        assert not state.is_neutral(["geometry"])
        assert not state.is_neutral()

    def test_group_fields(self):
        """Fields are grouped by pipeline stage."""
        assert AdjustmentState.group_fields("spatial") == ("clarity", "dehaze", "sharpness", "blur")
        assert set(AdjustmentState.group_fields("geometry")) == {"rotation", "flip_horizontal", "flip_vertical"}

    def test_domain_lookup(self):
        """domain() returns the range, None for toggles."""
        assert AdjustmentState.domain("hue") == (-180, 180)
        assert AdjustmentState.domain("flip_vertical") is None
        with pytest.raises(InvalidAdjustmentError):
            AdjustmentState.domain("nope")


class TestSerialization:
    """Tests for dict conversion."""

    def test_to_dict_contains_every_field(self):
        """to_dict should list all fields."""
        data = AdjustmentState(contrast=12).to_dict()
        assert set(data) == set(AdjustmentState.field_names())
        assert data["contrast"] == 12.0

    def test_from_dict_partial(self):
        """Missing keys take their defaults."""
        state = AdjustmentState.from_dict({"exposure": 25})
        assert state.exposure == 25
        assert state.vignette_radius == 0.5

    def test_from_dict_accepts_camel_case(self):
        """Editor-style camelCase keys are understood."""
        state = AdjustmentState.from_dict({"vignetteAmount": 40, "flipHorizontal": True})
        assert state.vignette_amount == 40
        assert state.flip_horizontal is True

    def test_with_changes_accepts_camel_case(self):
        """with_changes takes the same camelCase names as from_dict."""
        state = AdjustmentState().with_changes(flipHorizontal=True, vignetteRadius=0.8)
        assert state.flip_horizontal is True
        assert state.vignette_radius == 0.8
        assert AdjustmentState.canonical_name("flipVertical") == "flip_vertical"
        assert AdjustmentState.domain("vignetteAmount") == AdjustmentState.domain("vignette_amount")

    def test_from_dict_rejects_unknown(self):
        """Unknown keys should raise."""
        with pytest.raises(InvalidAdjustmentError):
            AdjustmentState.from_dict({"sepia": 10})
