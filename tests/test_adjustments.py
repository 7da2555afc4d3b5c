import numpy as np
import pytest

from booth.pipeline.adjustments import AdjustmentState, apply_linear_adjustments
from conftest import solid


def test_defaults_are_identity():
    state = AdjustmentState()
    frame = solid(4, 4, (10, 200, 30, 128))

    out = apply_linear_adjustments(frame, state)

    assert state.is_linear_identity
    np.testing.assert_array_equal(out, frame)
    assert out is not frame


def test_updates_replace_state():
    state = AdjustmentState()
    updated = state.with_updates(brightness=1.5)

    assert state.brightness == 1.0
    assert updated.brightness == 1.5
    assert updated.contrast == 1.0


def test_values_are_validated():
    with pytest.raises(ValueError):
        AdjustmentState(brightness=-0.1)
    with pytest.raises(ValueError):
        AdjustmentState().with_updates(gamma=2.0)

    clamped = AdjustmentState(contrast=9.0, sharpness=9.0)
    assert clamped.contrast == 2.0
    assert clamped.sharpness == 5.0


def test_brightness_scales_channels():
    out = apply_linear_adjustments(solid(4, 4, (50, 100, 200, 255)), AdjustmentState(brightness=2.0))
    assert tuple(out[0, 0]) == (100, 200, 255, 255)


def test_zero_contrast_is_mid_gray():
    out = apply_linear_adjustments(solid(4, 4, (0, 90, 255, 255)), AdjustmentState(contrast=0.0))
    assert np.all(np.abs(out[..., :3].astype(int) - 128) <= 1)


def test_zero_saturation_is_gray():
    out = apply_linear_adjustments(solid(4, 4, (200, 40, 90, 77)), AdjustmentState(saturation=0.0))

    r, g, b, a = (int(v) for v in out[0, 0])
    assert abs(r - g) <= 1 and abs(g - b) <= 1
    assert a == 77


def test_alpha_is_preserved():
    frame = solid(4, 4, (20, 40, 60, 33))
    out = apply_linear_adjustments(frame, AdjustmentState(brightness=1.3, contrast=0.7, saturation=1.8))
    assert np.all(out[..., 3] == 33)
