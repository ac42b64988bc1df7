"""
Audio loading components.
"""

from .loader import AudioData, AudioLoader

__all__ = [
    "AudioData",
    "AudioLoader",
]
