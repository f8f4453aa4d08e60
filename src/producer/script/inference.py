"""Keyword heuristics that turn script text into generation parameters."""

import random
from typing import Optional

from ..models.parameters import (
    CameraSettings,
    ColorSettings,
    CompositionSettings,
    FiboParameters,
    LightingSettings,
    StyleSettings,
)

SEED_RANGE = 1_000_000
DEFAULT_STEPS = 30
DEFAULT_GUIDANCE_SCALE = 5
DEFAULT_MEDIUM = "cinematic_render"


def _has_any(text: str, *keywords: str) -> bool:
    return any(keyword in text for keyword in keywords)


def _infer_aspect_ratio(lower: str) -> str:
    if _has_any(lower, "wide", "landscape", "cinema"):
        return "2.35:1"
    if _has_any(lower, "vertical", "phone", "portrait"):
        return "9:16"
    if _has_any(lower, "square", "instagram"):
        return "1:1"
    return "16:9"


def _infer_mood(lower: str) -> tuple[LightingSettings, Optional[ColorSettings]]:
    if _has_any(lower, "night", "dark", "shadow", "dim"):
        return (
            LightingSettings(type="noir", direction="rim", intensity="dim"),
            ColorSettings(grading="cinematic", saturation="low", contrast="high"),
        )
    if _has_any(lower, "sun", "day", "bright", "morning"):
        return (
            LightingSettings(type="natural", direction="side", intensity="bright", color_temperature="warm"),
            ColorSettings(grading="vibrant", saturation="high"),
        )
    if _has_any(lower, "neon", "cyberpunk", "club"):
        return (
            LightingSettings(type="neon", direction="back", intensity="hard"),
            ColorSettings(grading="cinematic", saturation="vibrant", contrast="high"),
        )
    if _has_any(lower, "studio", "fashion", "clean"):
        return (
            LightingSettings(type="studio", direction="front", intensity="soft"),
            ColorSettings(grading="neutral", saturation="medium"),
        )
    return LightingSettings(type="cinematic", intensity="soft"), None


def _infer_camera(lower: str) -> tuple[CameraSettings, Optional[str]]:
    """Return camera settings and the depth of field they imply."""
    if _has_any(lower, "look up", "tall", "sky", "hero"):
        return CameraSettings(angle="low_angle", distance="medium_shot"), None
    if _has_any(lower, "look down", "floor", "overhead"):
        return CameraSettings(angle="high_angle"), None
    if "bird" in lower and "eye" in lower:
        return CameraSettings(angle="bird_eye_view", distance="extreme_long_shot"), None
    if _has_any(lower, "close", "face", "detail"):
        return CameraSettings(distance="close_up", focal_length=85, aperture="f/1.8"), "shallow"
    if _has_any(lower, "wide", "establish", "city"):
        return CameraSettings(distance="extreme_long_shot", focal_length=24, aperture="f/8"), "deep"
    return CameraSettings(angle="eye_level", distance="medium_shot", focal_length=50), None


def _infer_medium(lower: str) -> str:
    if _has_any(lower, "anime", "manga"):
        return "anime"
    if _has_any(lower, "painting", "oil"):
        return "oil_painting"
    if _has_any(lower, "3d", "render", "cg"):
        return "3d_render"
    if _has_any(lower, "photo", "real"):
        return "photography"
    return DEFAULT_MEDIUM


def infer_parameters(
    text: str,
    seed: Optional[int] = None,
    rng: Optional[random.Random] = None,
) -> FiboParameters:
    """Infer visual parameters from a piece of script text.

    Every dimension (aspect ratio, lighting/mood, camera, style) is decided by
    the first matching keyword rule, falling back to a fixed default. The
    result depends only on ``text`` apart from the seed.

    Args:
        text: Scene heading and/or action lines.
        seed: Seed to use instead of a random one.
        rng: Random source for the seed, for reproducible callers.

    Returns:
        FiboParameters with every section populated.
    """
    lower = (text or "").lower()

    if seed is None:
        seed = (rng or random).randrange(SEED_RANGE)

    lighting, color = _infer_mood(lower)
    camera, depth_of_field = _infer_camera(lower)

    return FiboParameters(
        camera=camera,
        lighting=lighting,
        color=color or ColorSettings(),
        composition=CompositionSettings(
            aspect_ratio=_infer_aspect_ratio(lower),
            depth_of_field=depth_of_field,
        ),
        style=StyleSettings(medium=_infer_medium(lower)),
        seed=seed,
        steps=DEFAULT_STEPS,
        guidance_scale=DEFAULT_GUIDANCE_SCALE,
    )
