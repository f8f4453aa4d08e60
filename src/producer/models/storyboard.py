"""Storyboard data model."""

from typing import List
from pathlib import Path
from pydantic import BaseModel, Field
import yaml

from .scene import Scene


class Storyboard(BaseModel):
    """Script plus the scenes segmented from it."""

    project_name: str = Field(..., description="Project name")
    script: str = Field(default="", description="Raw screenplay text")
    scenes: List[Scene] = Field(default_factory=list, description="List of scenes")

    class Config:
        """Pydantic config."""
        frozen = False

    @classmethod
    def from_yaml(cls, path: Path) -> "Storyboard":
        """Load storyboard from YAML file."""
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
        return cls(**data)

    def to_yaml(self, path: Path) -> None:
        """Save storyboard to YAML file."""
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            yaml.safe_dump(
                self.model_dump(mode="json", exclude_none=True),
                f,
                default_flow_style=False,
                sort_keys=False,
            )
