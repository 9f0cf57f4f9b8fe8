import numpy as np
import pytest

from shadowhaptics.errors import DegenerateGeometryWarning
from shadowhaptics.heightfield import HeightField, build_height_field
from shadowhaptics.statistics import compute_statistics, sampling_radius

from conftest import make_field


def test_sampling_radius():
    assert sampling_radius(1080) == pytest.approx(216.0)


def test_flat_field_has_zero_roughness(flat_field, gray_image):
    with pytest.warns(DegenerateGeometryWarning):
        stats = compute_statistics(gray_image, flat_field, reference_height=200)
    assert stats.roughness_index == 0.0
    assert stats.brightness_index == pytest.approx(128 / 255)
    assert stats.brightness_median == pytest.approx(128.0)


def test_checkerboard_roughness_is_clamped():
    values = (np.indices((100, 100)).sum(axis=0) % 2) * 255
    field = make_field(values)
    stats = compute_statistics(np.zeros((100, 100, 3), np.uint8), field, 200)
    assert 0.95 <= stats.roughness_index <= 1.0
    assert stats.depth_std == pytest.approx(127.5, abs=1.0)


def test_brightness_uses_luminance_weights():
    green = np.zeros((50, 50, 3), dtype=np.uint8)
    green[..., 1] = 255
    field = build_height_field(np.indices((50, 50))[0].astype(np.uint8))
    stats = compute_statistics(green, field, 100)
    assert stats.brightness_index == pytest.approx(0.7152)
    assert stats.brightness_mean == pytest.approx(0.7152 * 255)


def test_white_image_brightness_is_one():
    field = build_height_field(np.indices((40, 40))[1].astype(np.uint8))
    stats = compute_statistics(np.full((40, 40, 3), 255, np.uint8), field, 80)
    assert stats.brightness_index == pytest.approx(1.0)


def test_only_disk_pixels_are_sampled():
    img = np.zeros((100, 100, 3), dtype=np.uint8)
    img[:5, :5] = 255  # corner, outside a radius-20 disk
    field = build_height_field(np.indices((100, 100))[0].astype(np.uint8))
    stats = compute_statistics(img, field, 100)
    assert stats.brightness_index == 0.0


def test_empty_disk_defaults_to_zero():
    field = build_height_field(np.indices((5, 5)).sum(axis=0).astype(np.uint8))
    img = np.full((5, 5, 3), 200, np.uint8)
    with pytest.warns(DegenerateGeometryWarning):
        stats = compute_statistics(img, field, reference_height=0)
    assert stats.roughness_index == 0.0
    assert stats.brightness_index == 0.0


def test_missing_inputs_default_to_zero():
    with pytest.warns(DegenerateGeometryWarning):
        stats = compute_statistics(None, HeightField.empty(), 100)
    assert stats.roughness_index == 0.0
    assert stats.brightness_index == 0.0


@pytest.mark.parametrize("seed", [0, 1, 2])
def test_indices_stay_in_unit_range(seed):
    rng = np.random.default_rng(seed)
    img = rng.integers(0, 256, size=(60, 80, 3), dtype=np.uint8)
    field = build_height_field(rng.integers(0, 256, size=(60, 80, 3), dtype=np.uint8))
    stats = compute_statistics(img, field, 100)
    assert 0.0 <= stats.roughness_index <= 1.0
    assert 0.0 <= stats.brightness_index <= 1.0
