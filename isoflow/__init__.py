"""Animated contour lines over an evolving gradient-noise field."""
from .core.animation import AnimationConfig, AnimationState, Animator, ConfigStore, FrameLoop, render_frame
from .core.contours import extract_contours
from .core.field import build_field, grid_shape
from .core.noise import PermutationTable, build_permutation, noise3

__all__ = [
    "AnimationConfig",
    "AnimationState",
    "Animator",
    "ConfigStore",
    "FrameLoop",
    "render_frame",
    "extract_contours",
    "build_field",
    "grid_shape",
    "PermutationTable",
    "build_permutation",
    "noise3",
]
