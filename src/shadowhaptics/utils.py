import numpy as np


def disk_mask(
    w: int,
    h: int,
    radius: float,
    cx: float | None = None,
    cy: float | None = None,
) -> np.ndarray:
    """Boolean (h, w) mask of pixels whose integer coordinates lie within
    `radius` of (cx, cy); the centre defaults to (w / 2, h / 2)."""
    cx = w / 2.0 if cx is None else cx
    cy = h / 2.0 if cy is None else cy
    ys, xs = np.mgrid[0:h, 0:w].astype(np.float64)
    d2 = (xs - cx) ** 2 + (ys - cy) ** 2
    return d2 <= radius * radius
