"""Script parsing and parameter inference."""

from .inference import infer_parameters
from .segmenter import DebouncedSegmenter, ScriptSegmenter

__all__ = ["infer_parameters", "DebouncedSegmenter", "ScriptSegmenter"]
