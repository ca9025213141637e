"""Fatal errors raised before the resampling pipeline builds any new state."""


class SubmapError(ValueError):
    """Base class for resampling failures."""


class ProjectionError(SubmapError):
    """Projection or inverse is missing, malformed or not a true inverse."""


class EmptyMapError(SubmapError):
    """Map has no cells to resample from or into."""
