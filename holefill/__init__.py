"""Advancing front hole filling for triangle meshes."""
from .advancing_front import AdvancingFront, FillingConfig, FillResult, Filling, fill_hole
from .errors import (FillingError, FrontInconsistencyError, NoRuleApplicableError,
                     StaleAngleError, VertexNotFoundError)

__all__ = [
    "AdvancingFront",
    "FillingConfig",
    "FillResult",
    "Filling",
    "fill_hole",
    "FillingError",
    "FrontInconsistencyError",
    "NoRuleApplicableError",
    "StaleAngleError",
    "VertexNotFoundError",
]
