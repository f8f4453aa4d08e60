"""Producer OS - storyboard generation orchestration."""

__version__ = "0.1.0"
