"""Exceptions and warnings raised by freesurface."""


class ConfigurationError(ValueError):
    """Invalid configuration detected while constructing a grid, field or solver."""
    pass


class NonConvergenceWarning(RuntimeWarning):
    """An iterative solver reached its iteration cap before its tolerance."""
    pass
