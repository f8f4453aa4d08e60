"""Data models for the storyboard generator."""

from .parameters import (
    CameraSettings,
    ColorSettings,
    CompositionSettings,
    FiboParameters,
    LightingSettings,
    StyleSettings,
    SubjectSettings,
    merge_parameters,
)
from .scene import Scene, SceneStatus
from .storyboard import Storyboard

__all__ = [
    "CameraSettings",
    "ColorSettings",
    "CompositionSettings",
    "FiboParameters",
    "LightingSettings",
    "StyleSettings",
    "SubjectSettings",
    "merge_parameters",
    "Scene",
    "SceneStatus",
    "Storyboard",
]
