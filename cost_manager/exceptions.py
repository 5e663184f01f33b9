"""Root of the Cost Manager exception hierarchy."""


class CostManagerError(Exception):
    """Base exception for every failure raised by this package."""
    pass
