"""Generation parameter models."""

from typing import Any, Dict, List, Mapping, Optional, Union
from pydantic import BaseModel, Field

COMPOSITION_SECTIONS = ("camera", "composition", "subject")
STYLE_SECTIONS = ("lighting", "color", "style")
SECTIONS = COMPOSITION_SECTIONS + STYLE_SECTIONS


class CameraSettings(BaseModel):
    """Camera placement and lens."""

    shot_type: Optional[str] = Field(None, alias="shotType", description="Shot preset, e.g. 'close_up'")
    angle: Optional[str] = Field(None, description="eye_level, low_angle, high_angle, bird_eye_view...")
    fov: Optional[float] = None
    distance: Optional[str] = Field(None, description="close_up, medium_shot, long_shot, extreme_long_shot, macro")
    focal_length: Optional[int] = Field(None, description="Lens focal length in mm")
    aperture: Optional[str] = None
    shutter_speed: Optional[str] = None
    iso: Optional[int] = None

    class Config:
        """Pydantic config."""
        populate_by_name = True


class LightingSettings(BaseModel):
    """Lighting setup."""

    style: Optional[str] = None
    type: Optional[str] = Field(None, description="natural, studio, cinematic, noir, neon, ambient, volumetric")
    direction: Optional[str] = Field(None, description="front, side, back, top, rim, silhouette")
    intensity: Optional[str] = Field(None, description="dim, soft, hard, bright")
    color_temperature: Optional[str] = Field(None, description="warm, cool, neutral")


class ColorSettings(BaseModel):
    """Color grading."""

    palette: Optional[List[str]] = None
    grading: Optional[str] = None
    saturation: Optional[str] = None
    contrast: Optional[str] = None


class CompositionSettings(BaseModel):
    """Framing and aspect ratio."""

    framing: Optional[str] = None
    depth_of_field: Optional[str] = None
    aspect_ratio: Optional[str] = None


class SubjectSettings(BaseModel):
    """Subject description."""

    description: Optional[str] = None
    pose: Optional[str] = None
    expression: Optional[str] = None
    clothing: Optional[str] = None
    count: Optional[int] = None


class StyleSettings(BaseModel):
    """Rendering medium."""

    medium: Optional[str] = Field(None, description="photography, digital_art, oil_painting, cinematic_render, 3d_render, anime")
    atmosphere: Optional[str] = None


SECTION_MODELS = {
    "camera": CameraSettings,
    "lighting": LightingSettings,
    "color": ColorSettings,
    "composition": CompositionSettings,
    "subject": SubjectSettings,
    "style": StyleSettings,
}


class FiboParameters(BaseModel):
    """Structured generation controls for a scene."""

    camera: Optional[CameraSettings] = None
    lighting: Optional[LightingSettings] = None
    color: Optional[ColorSettings] = None
    composition: Optional[CompositionSettings] = None
    subject: Optional[SubjectSettings] = None
    style: Optional[StyleSettings] = None

    negative_prompt: Optional[str] = None
    seed: Optional[int] = None
    steps: Optional[int] = None
    guidance_scale: Optional[float] = None

    structured_prompt: Optional[Dict[str, Any]] = Field(
        None, description="Manually supplied decoupled prompt JSON"
    )
    structure_image_url: Optional[str] = Field(
        None, description="Reference image that pins the composition (Reimagine pipeline)"
    )
    structure_ref_influence: Optional[float] = None
    fast_mode: Optional[bool] = Field(None, description="UI flag, never sent upstream")

    class Config:
        """Pydantic config."""
        frozen = False

    def to_payload(self) -> Dict[str, Any]:
        """Dump the set fields using wire names."""
        data = self.model_dump(exclude_none=True, by_alias=True)
        data.pop("fast_mode", None)
        return data


PartialParameters = Union[FiboParameters, Mapping[str, Any]]


def _normalize_partial(partial: Optional[PartialParameters]) -> Dict[str, Any]:
    """Turn a partial update into a dict keyed by field names.

    Section values are validated through their section model so both wire
    aliases (``shotType``) and field names (``shot_type``) are accepted.
    """
    if partial is None:
        return {}
    if isinstance(partial, FiboParameters):
        return partial.model_dump(exclude_unset=True)

    normalized: Dict[str, Any] = {}
    for key, value in partial.items():
        if key in SECTION_MODELS and value is not None:
            if isinstance(value, BaseModel):
                value = value.model_dump(exclude_unset=True)
            section = SECTION_MODELS[key].model_validate(value)
            normalized[key] = section.model_dump(exclude_unset=True)
        else:
            normalized[key] = value
    return normalized


def filter_sections(partial: Optional[PartialParameters], sections) -> Dict[str, Any]:
    """Keep only the given sections of a partial update."""
    return {
        key: value
        for key, value in _normalize_partial(partial).items()
        if key in sections
    }


def drop_sections(partial: Optional[PartialParameters], sections) -> Dict[str, Any]:
    """Remove the given sections from a partial update."""
    return {
        key: value
        for key, value in _normalize_partial(partial).items()
        if key not in sections
    }


def merge_parameters(current: Optional[FiboParameters], partial: Optional[PartialParameters]) -> FiboParameters:
    """Section-wise shallow merge.

    Sections present in ``partial`` are merged key by key into the matching
    section of ``current``; sections absent from ``partial`` are left alone.
    Scalar fields are replaced.
    """
    data = current.model_dump(exclude_none=True) if current else {}

    for key, value in _normalize_partial(partial).items():
        if key in SECTION_MODELS and isinstance(value, dict):
            data[key] = {**(data.get(key) or {}), **value}
        else:
            data[key] = value

    return FiboParameters.model_validate(data)


def default_parameters(seed: Optional[int] = None) -> FiboParameters:
    """Placeholder parameters for scenes created without inference."""
    return FiboParameters(
        camera=CameraSettings(shot_type="medium_shot"),
        lighting=LightingSettings(type="cinematic"),
        seed=seed,
    )
