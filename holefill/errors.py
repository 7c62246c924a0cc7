"""Exceptions raised while filling a hole."""


class FillingError(RuntimeError):
    """Base class for every failure of the advancing front."""


class NoRuleApplicableError(FillingError):
    """No queued corner could be resolved by any rule.

    The front and filling reached so far are kept for diagnostics; they are
    not a usable patch.
    """

    def __init__(self, message, front=None, filling=None):
        super().__init__(message)
        self.front = front
        self.filling = filling


class VertexNotFoundError(FillingError):
    """A vertex expected in the front or the filling is missing."""


class FrontInconsistencyError(FillingError):
    """The corner ring no longer mirrors the front."""


class StaleAngleError(FillingError):
    """An angle id was used after its slot had been released."""
