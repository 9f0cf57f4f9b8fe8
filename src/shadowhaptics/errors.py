class ImageDecodeError(ValueError):
    """Raised when a raster cannot be read or decoded."""


class SingularMatrixError(ArithmeticError):
    """Raised when a regression fit has a (near) zero pivot."""


class DegenerateGeometryWarning(RuntimeWarning):
    """Empty sampling disk or flat height image; the index falls back to 0."""
