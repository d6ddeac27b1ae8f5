from .backward_step import build_backward_step
from .forward_step import build_forward_step
from .initial_guess_step import StateBuffer
from .types_step import StepRelation


__all__ = [
    "StateBuffer",
    "StepRelation",
    "build_backward_step",
    "build_forward_step",
]
