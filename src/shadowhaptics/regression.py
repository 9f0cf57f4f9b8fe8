from __future__ import annotations
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from .errors import SingularMatrixError

PIVOT_EPS = 1e-9


@dataclass(frozen=True)
class RegressionModel:
    """Quadratic y = a*x^2 + b*x + c."""

    a: float
    b: float
    c: float

    def predict(self, x: float) -> float:
        return self.a * x * x + self.b * x + self.c

    @classmethod
    def fit(cls, xs: Sequence[float], ys: Sequence[float]) -> RegressionModel:
        """
        Least-squares quadratic fit.

        Solves the 3x4 augmented normal equations by Gauss-Jordan elimination,
        pivoting on the diagonal entry of each step.

        Raises:
            ValueError: if `xs` and `ys` differ in length.
            SingularMatrixError: with fewer than 3 samples, or when a pivot
                falls below 1e-9 in magnitude (e.g. all x identical) or is not
                finite.
        """
        x = np.asarray(xs, dtype=np.float64)
        y = np.asarray(ys, dtype=np.float64)
        if x.shape != y.shape:
            raise ValueError(f"Length mismatch: {x.size} x-values, {y.size} y-values")
        if x.size < 3:
            raise SingularMatrixError(f"Need at least 3 samples, got {x.size}")

        n = float(x.size)
        sx, sx2, sx3, sx4 = (float(np.sum(x**k)) for k in (1, 2, 3, 4))
        sy = float(np.sum(y))
        sxy = float(np.sum(x * y))
        sx2y = float(np.sum(x * x * y))

        mat = np.array(
            [
                [n, sx, sx2, sy],
                [sx, sx2, sx3, sxy],
                [sx2, sx3, sx4, sx2y],
            ],
            dtype=np.float64,
        )

        for i in range(3):
            pivot = mat[i, i]
            if not np.isfinite(pivot) or abs(pivot) < PIVOT_EPS:
                raise SingularMatrixError(f"Pivot {i} is {pivot:.3e}")
            mat[i, i:] /= pivot
            for k in range(3):
                if k != i:
                    mat[k, i:] -= mat[k, i] * mat[i, i:]

        return cls(a=float(mat[2, 3]), b=float(mat[1, 3]), c=float(mat[0, 3]))
