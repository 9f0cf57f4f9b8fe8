import moderngl
import numpy as np
import pytest

from shadowhaptics.calibration import reset_calibration
from shadowhaptics.config import AppConfig
from shadowhaptics.heightfield import HeightField


@pytest.fixture(scope="module")
def ctx():
    try:
        return moderngl.create_standalone_context()
    except Exception as e:
        pytest.skip(f"Could not create headless GL context: {e}")


@pytest.fixture
def small_cfg(tmp_path):
    # tiny reference screen, no shape files, no history log
    return AppConfig(
        width=200,
        height=200,
        shape_dir=str(tmp_path / "shapes"),
        history_log=str(tmp_path / "haptics_log.csv"),
    )


@pytest.fixture(autouse=True)
def fresh_calibration():
    reset_calibration()
    yield
    reset_calibration()


def make_field(values) -> HeightField:
    arr = np.asarray(values, dtype=np.int32)
    arr.flags.writeable = False
    return HeightField(arr)


@pytest.fixture
def flat_field():
    return make_field(np.zeros((100, 100)))


@pytest.fixture
def step_field():
    """Zero for x < 50, 11 from column 50 on."""
    values = np.zeros((100, 100), dtype=np.int32)
    values[:, 50:] = 11
    return make_field(values)


@pytest.fixture
def gray_image():
    return np.full((100, 100, 3), 128, dtype=np.uint8)


@pytest.fixture
def ramp_image():
    ramp = np.tile(np.arange(100, dtype=np.uint8), (100, 1))
    return np.dstack([ramp, ramp, ramp])
