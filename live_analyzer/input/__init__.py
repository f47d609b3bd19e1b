"""Input layer - Audio loading and frame replay."""

from .loader import AudioLoader

__all__ = ["AudioLoader"]
