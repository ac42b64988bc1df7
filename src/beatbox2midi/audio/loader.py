"""
Audio file loading and the in-memory sample buffer handed to the analysis stages.
"""

import os
import numpy as np
import librosa
import soundfile as sf
from pathlib import Path
from dataclasses import dataclass
from typing import Dict, Any, Optional

from ..config.settings import Settings
from ..utils.exceptions import AudioLoadError, ValidationError
from ..utils.validators import validate_audio_file
from ..utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class AudioData:
    """
    Decoded audio: float samples in [-1, 1] plus the sample rate.

    ``samples`` is 1-D for mono or shaped ``(channels, frames)`` for
    multi-channel audio, following librosa's layout.
    """
    samples: np.ndarray
    sample_rate: int

    def __post_init__(self):
        if self.sample_rate <= 0:
            raise ValidationError(f"sample_rate must be positive, got {self.sample_rate}")
        if self.samples.ndim not in (1, 2):
            raise ValidationError(f"samples must be 1-D or 2-D, got {self.samples.ndim} dimensions")

    @classmethod
    def from_interleaved(cls, buffer, sample_rate: int, channels: int) -> 'AudioData':
        """
        Build from an interleaved frame buffer (L R L R ...).

        Args:
            buffer: Flat sequence of interleaved samples
            sample_rate: Sample rate in Hz
            channels: Number of interleaved channels

        Returns:
            AudioData with ``(channels, frames)`` samples, or 1-D for mono
        """
        if channels < 1:
            raise ValidationError(f"channels must be at least 1, got {channels}")
        data = np.asarray(buffer, dtype=np.float32)
        if data.size % channels:
            raise ValidationError(
                f"Interleaved buffer of {data.size} samples is not divisible by {channels} channels"
            )
        if channels == 1:
            return cls(samples=data, sample_rate=sample_rate)
        return cls(samples=data.reshape(-1, channels).T.copy(), sample_rate=sample_rate)

    @property
    def channels(self) -> int:
        return 1 if self.samples.ndim == 1 else self.samples.shape[0]

    @property
    def frame_count(self) -> int:
        return self.samples.shape[-1]

    @property
    def duration_secs(self) -> float:
        return self.frame_count / self.sample_rate

    @property
    def duration_ms(self) -> int:
        return int(self.frame_count * 1000 / self.sample_rate)

    def to_mono(self) -> np.ndarray:
        """Average channels per frame. Mono input is returned as is."""
        if self.samples.ndim == 1:
            return self.samples
        return librosa.to_mono(np.asarray(self.samples, dtype=np.float32))


class AudioLoader:
    """
    Audio file loader with validation.
    """

    def __init__(self, settings: Optional[Settings] = None):
        """
        Initialize audio loader.

        Args:
            settings: Application settings
        """
        self.settings = settings or Settings()
        self.target_sr = self.settings.audio.sample_rate

    def load_audio(self, file_path: str, validate: bool = True) -> AudioData:
        """
        Load an audio file with its channels intact.

        Samples are not normalised. Resampling only happens when
        ``audio.sample_rate`` is configured.

        Args:
            file_path: Path to audio file
            validate: Whether to validate the file before loading

        Returns:
            AudioData

        Raises:
            AudioLoadError: If loading fails
            ValidationError: If validation fails
        """
        if validate:
            file_path = validate_audio_file(file_path)

        try:
            logger.info(f"Loading audio file: {file_path}")
            audio, sr = librosa.load(file_path, sr=self.target_sr, mono=False)
        except (librosa.util.exceptions.LibrosaError, sf.SoundFileError) as e:
            raise AudioLoadError(f"Failed to load audio file {file_path}: {e}")
        except Exception as e:
            raise AudioLoadError(f"Unexpected error loading audio file {file_path}: {e}")

        if audio.size == 0:
            raise AudioLoadError(f"Audio file contains no samples: {file_path}")

        data = AudioData(samples=audio, sample_rate=int(sr))
        logger.info(
            f"Loaded audio: {data.duration_secs:.2f}s, {data.sample_rate}Hz, {data.channels} channel(s)"
        )
        return data

    def get_audio_info(self, file_path: str) -> Dict[str, Any]:
        """
        Get audio file information without loading the full file.

        Args:
            file_path: Path to audio file

        Returns:
            Dictionary with audio file information

        Raises:
            AudioLoadError: If reading file info fails
        """
        file_path = validate_audio_file(file_path)
        try:
            file_info = sf.info(file_path)
        except Exception as e:
            raise AudioLoadError(f"Failed to read audio file info: {e}")

        return {
            'file_path': file_path,
            'file_name': Path(file_path).name,
            'sample_rate': file_info.samplerate,
            'channels': file_info.channels,
            'duration': file_info.duration,
            'frames': file_info.frames,
            'format': file_info.format,
            'subtype': file_info.subtype,
            'file_size': os.path.getsize(file_path)
        }
