"""Scene data model."""

from enum import Enum
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field

from .parameters import FiboParameters


class SceneStatus(str, Enum):
    """Generation lifecycle of a scene."""
    PENDING = "pending"
    GENERATING = "generating"
    COMPLETED = "completed"
    FAILED = "failed"


# generating -> pending is only used when script analysis finishes without an image;
# generating -> generating restarts an in-flight generation
ALLOWED_TRANSITIONS = {
    SceneStatus.PENDING: {SceneStatus.GENERATING},
    SceneStatus.GENERATING: {
        SceneStatus.GENERATING,
        SceneStatus.COMPLETED,
        SceneStatus.FAILED,
        SceneStatus.PENDING,
    },
    SceneStatus.COMPLETED: {SceneStatus.GENERATING},
    SceneStatus.FAILED: {SceneStatus.GENERATING},
}


def can_transition(current: SceneStatus, target: SceneStatus) -> bool:
    """Return True if the state machine allows ``current -> target``."""
    return target in ALLOWED_TRANSITIONS[current]


class Scene(BaseModel):
    """Represents a single scene of the storyboard."""

    id: str = Field(..., description="Unique scene identifier")
    script_text: str = Field(..., alias="scriptText", description="Scene heading the record was derived from")
    body: str = Field(default="", description="Script text between this heading and the next")
    visual_prompt: str = Field(..., alias="visualPrompt", description="Natural-language generation prompt")
    parameters: FiboParameters = Field(default_factory=FiboParameters)
    status: SceneStatus = Field(default=SceneStatus.PENDING)
    image_url: Optional[str] = Field(None, alias="imageUrl")
    background_removed_url: Optional[str] = Field(None, alias="backgroundRemovedUrl")
    structured_prompt: Optional[Dict[str, Any]] = Field(
        None, alias="structuredPrompt", description="Decoupled prompt returned by the remote analysis"
    )
    lock_composition: bool = Field(default=False, alias="lockComposition")
    structure_seed: Optional[int] = Field(None, description="Seed frozen when composition lock was engaged")
    seed: Optional[int] = None
    error: Optional[str] = None

    class Config:
        """Pydantic config."""
        frozen = False
        populate_by_name = True
        use_enum_values = False

    @property
    def effective_seed(self) -> Optional[int]:
        """Seed to send upstream: the frozen structure seed while locked."""
        if self.lock_composition and self.structure_seed is not None:
            return self.structure_seed
        return self.seed if self.seed is not None else self.parameters.seed

    @property
    def base_prompt(self) -> str:
        """Heading and visual description combined."""
        return f"{self.script_text}. {self.visual_prompt}"
