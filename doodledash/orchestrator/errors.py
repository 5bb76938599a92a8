ERR_NOT_READY = "NOT_READY"      # classifier still loading
ERR_BAD_STATE = "BAD_STATE"      # action not allowed in the current game state
ERR_UNKNOWN = "UNKNOWN"


class DegenerateDistributionError(ValueError):
    """Raised when scores cannot be normalized because they sum to zero."""
