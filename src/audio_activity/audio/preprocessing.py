"""Audio preprocessing: format normalization and PCM decoding."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple, Union

import numpy as np

from ..constants import (
    CANONICAL_CHANNELS,
    CANONICAL_SAMPLE_WIDTH,
    INT16_MAX,
    get_audio_activity_config,
)
from ..errors import EmptyAudioInput, UnsupportedAudioFormat

logger = logging.getLogger(__name__)

SUPPORTED_SAMPLE_WIDTHS = (8, 16, 24, 32)


@dataclass(frozen=True)
class AudioFormat:
    """Layout of a raw PCM byte buffer."""
    sample_rate: int
    sample_width: int = 16  # bits per sample
    channels: int = 1
    signed: bool = True
    big_endian: bool = False

    @classmethod
    def canonical(cls, sample_rate: int) -> "AudioFormat":
        """Mono, 16-bit signed little-endian at the given rate."""
        return cls(
            sample_rate=sample_rate,
            sample_width=CANONICAL_SAMPLE_WIDTH,
            channels=CANONICAL_CHANNELS,
            signed=True,
            big_endian=False,
        )

    @property
    def frame_size(self) -> int:
        """Bytes per frame (one sample for every channel)."""
        return (self.sample_width // 8) * self.channels

    def validate(self) -> None:
        """Raise UnsupportedAudioFormat if this layout cannot be decoded."""
        if self.sample_rate <= 0:
            raise UnsupportedAudioFormat(
                "Sample rate must be positive",
                context={"sample_rate": self.sample_rate},
            )
        if self.sample_width not in SUPPORTED_SAMPLE_WIDTHS:
            raise UnsupportedAudioFormat(
                "Unsupported sample width",
                context={"sample_width": self.sample_width},
            )
        if self.channels < 1:
            raise UnsupportedAudioFormat(
                "Channel count must be at least 1",
                context={"channels": self.channels},
            )


def _decode_24bit(data: bytes, fmt: AudioFormat) -> np.ndarray:
    """Assemble packed 24-bit samples into int32 values."""
    raw = np.frombuffer(data, dtype=np.uint8).reshape(-1, 3).astype(np.int32)
    if fmt.big_endian:
        raw = raw[:, ::-1]
    values = raw[:, 0] | (raw[:, 1] << 8) | (raw[:, 2] << 16)
    if fmt.signed:
        values = np.where(values >= 1 << 23, values - (1 << 24), values)
    else:
        values = values - (1 << 23)
    return values


def decode_samples(data: bytes, fmt: AudioFormat) -> np.ndarray:
    """Decode arbitrary PCM bytes to float samples.

    Args:
        data: Raw PCM bytes (trailing partial frame is ignored)
        fmt: Layout of ``data``

    Returns:
        Float64 array of shape (frames, channels) in [-1, 1)
    """
    fmt.validate()

    usable = len(data) - len(data) % fmt.frame_size
    if usable != len(data):
        logger.debug(f"Dropping {len(data) - usable} trailing bytes (partial frame)")
    data = data[:usable]

    width = fmt.sample_width
    scale = float(1 << (width - 1))

    if width == 24:
        values = _decode_24bit(data, fmt)
    elif width == 8:
        # 8-bit PCM has no byte order
        values = np.frombuffer(data, dtype=np.int8 if fmt.signed else np.uint8)
        values = values.astype(np.int32)
        if not fmt.signed:
            values = values - 128
    else:
        order = ">" if fmt.big_endian else "<"
        kind = "i" if fmt.signed else "u"
        values = np.frombuffer(data, dtype=f"{order}{kind}{width // 8}")
        values = values.astype(np.int64)
        if not fmt.signed:
            values = values - (1 << (width - 1))

    samples = values.astype(np.float64) / scale
    return samples.reshape(-1, fmt.channels)


def quantize_int16(samples: np.ndarray) -> bytes:
    """Round and clip float samples to 16-bit signed little-endian PCM."""
    scaled = np.clip(np.round(samples * INT16_MAX), -INT16_MAX, INT16_MAX - 1)
    return scaled.astype("<i2").tobytes()


class AudioPreprocessor:
    """Normalizes raw PCM into the canonical format and decodes it."""

    def __init__(self, sample_rate: Optional[int] = None):
        """Initialize audio preprocessor.

        Args:
            sample_rate: Canonical sample rate (uses config if None)
        """
        self.sample_rate = sample_rate or get_audio_activity_config().sample_rate
        self.target_format = AudioFormat.canonical(self.sample_rate)

    def normalize_format(self, data: bytes, source_format: AudioFormat) -> bytes:
        """Convert PCM bytes to the canonical format.

        Input that already matches the canonical format is returned as-is
        (apart from dropping a trailing partial frame).

        Raises:
            UnsupportedAudioFormat: If the source cannot be converted
        """
        source_format.validate()

        if source_format == self.target_format:
            if len(data) % 2:
                return data[:-1]
            return data

        samples = decode_samples(data, source_format)
        if samples.shape[0] == 0:
            return b""

        mono = samples.mean(axis=1) if samples.shape[1] > 1 else samples[:, 0]

        if source_format.sample_rate != self.sample_rate:
            mono = self.resample(mono, source_format.sample_rate, self.sample_rate)

        return quantize_int16(mono)

    def resample(
        self,
        audio: np.ndarray,
        orig_sr: int,
        target_sr: int,
    ) -> np.ndarray:
        """Resample audio to target sample rate.

        Args:
            audio: Audio data
            orig_sr: Original sample rate
            target_sr: Target sample rate

        Returns:
            Resampled audio
        """
        if orig_sr == target_sr:
            return audio

        import librosa
        from librosa.util.exceptions import ParameterError

        try:
            return librosa.resample(audio, orig_sr=orig_sr, target_sr=target_sr)
        except (ValueError, ParameterError) as e:
            raise UnsupportedAudioFormat(
                f"Cannot resample audio: {e}",
                context={"orig_sr": orig_sr, "target_sr": target_sr},
            ) from e

    @staticmethod
    def pcm_to_float(pcm_data: bytes) -> np.ndarray:
        """Convert 16-bit signed little-endian PCM to floats in [-1.0, 1.0).

        Each sample is divided by 32768.0.
        """
        usable = len(pcm_data) - len(pcm_data) % 2
        samples = np.frombuffer(pcm_data[:usable], dtype="<i2")
        return samples.astype(np.float32) / np.float32(INT16_MAX)

    def decode(self, data: bytes, source_format: AudioFormat) -> np.ndarray:
        """Normalize then decode raw audio to float samples.

        Raises:
            UnsupportedAudioFormat: If the source cannot be converted
            EmptyAudioInput: If no samples remain after decoding
        """
        canonical = self.normalize_format(data, source_format)
        samples = self.pcm_to_float(canonical)
        if samples.size == 0:
            raise EmptyAudioInput(
                "Decoded audio contains no samples",
                context={"input_bytes": len(data)},
            )
        return samples

    @staticmethod
    def rms(samples: np.ndarray) -> float:
        """Root mean square energy of the signal."""
        if samples.size == 0:
            return 0.0
        return float(np.sqrt(np.mean(np.square(samples, dtype=np.float64))))


def load_wav(audio_path: Union[str, Path]) -> Tuple[bytes, AudioFormat]:
    """Load a WAV file as raw PCM bytes plus its format.

    Integer PCM is passed through unchanged; float WAV data is quantized
    to 16-bit.

    Args:
        audio_path: Path to WAV file

    Returns:
        Tuple of (pcm_bytes, audio_format)
    """
    from scipy.io import wavfile

    sample_rate, audio = wavfile.read(str(audio_path))
    channels = 1 if audio.ndim == 1 else audio.shape[1]

    if audio.dtype == np.uint8:
        fmt = AudioFormat(sample_rate, 8, channels, signed=False)
        return audio.tobytes(), fmt
    if audio.dtype == np.int16:
        return audio.astype("<i2").tobytes(), AudioFormat(sample_rate, 16, channels)
    if audio.dtype == np.int32:
        return audio.astype("<i4").tobytes(), AudioFormat(sample_rate, 32, channels)
    if np.issubdtype(audio.dtype, np.floating):
        return quantize_int16(audio.astype(np.float64)), AudioFormat(sample_rate, 16, channels)

    raise UnsupportedAudioFormat(
        f"Unsupported WAV sample type: {audio.dtype}",
        context={"path": str(audio_path)},
    )
