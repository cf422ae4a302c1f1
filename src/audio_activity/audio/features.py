"""Audio feature extraction.

Turns decoded audio into a fixed-length MFCC feature vector. The MFCC
algorithm is selected by name so that the model input can be matched to
whatever front end the model was trained with.
"""

import logging
from typing import Callable, Dict, Optional

import numpy as np

from ..constants import FeatureConfig, get_audio_activity_config
from ..errors import FeatureExtractionError
from .preprocessing import AudioFormat, AudioPreprocessor

logger = logging.getLogger(__name__)

# (samples, sample_rate, config) -> MFCC matrix of shape (n_mfcc, frames)
MfccAlgorithm = Callable[[np.ndarray, int, FeatureConfig], np.ndarray]


def librosa_mfcc(audio: np.ndarray, sr: int, config: FeatureConfig) -> np.ndarray:
    """MFCC via librosa."""
    import librosa

    return librosa.feature.mfcc(
        y=audio.astype(np.float32),
        sr=sr,
        n_mfcc=config.n_mfcc,
        n_fft=config.n_fft,
        hop_length=config.hop_length,
        n_mels=config.n_mels,
        fmin=config.fmin,
        fmax=config.fmax,
    )


def _mel_filterbank(sr: int, config: FeatureConfig) -> np.ndarray:
    frame_size = config.n_fft
    n_mels = config.n_mels
    mel_min = 2595 * np.log10(1 + config.fmin / 700)
    mel_max = 2595 * np.log10(1 + (config.fmax or sr / 2) / 700)
    mel_points = np.linspace(mel_min, mel_max, n_mels + 2)
    hz_points = 700 * (10 ** (mel_points / 2595) - 1)
    bin_points = np.floor((frame_size + 1) * hz_points / sr).astype(int)

    filterbank = np.zeros((n_mels, frame_size // 2 + 1))
    for i in range(n_mels):
        left, center, right = bin_points[i], bin_points[i + 1], bin_points[i + 2]
        for j in range(left, center):
            filterbank[i, j] = (j - left) / (center - left)
        for j in range(center, right):
            filterbank[i, j] = (right - j) / (right - center)
    return filterbank


def scipy_mfcc(audio: np.ndarray, sr: int, config: FeatureConfig) -> np.ndarray:
    """MFCC from a numpy mel filterbank and a scipy DCT."""
    from scipy.fft import dct

    frame_size = config.n_fft
    hop = config.hop_length

    if len(audio) < frame_size:
        audio = np.pad(audio, (0, frame_size - len(audio)))

    num_frames = 1 + (len(audio) - frame_size) // hop
    window = np.hanning(frame_size)
    frames = np.stack([
        audio[i * hop:i * hop + frame_size] * window
        for i in range(num_frames)
    ])

    power_spectrum = np.abs(np.fft.rfft(frames, n=frame_size)) ** 2
    mel_spectrum = np.dot(power_spectrum, _mel_filterbank(sr, config).T)
    log_mel = np.log(mel_spectrum + config.log_epsilon)

    mfcc = dct(log_mel, type=2, axis=1, norm="ortho")[:, :config.n_mfcc]
    return mfcc.T


FEATURE_ALGORITHMS: Dict[str, MfccAlgorithm] = {
    "librosa": librosa_mfcc,
    "scipy": scipy_mfcc,
}


def register_algorithm(name: str, algorithm: MfccAlgorithm) -> None:
    """Register an additional MFCC algorithm under ``name``."""
    FEATURE_ALGORITHMS[name] = algorithm


class FeatureExtractor:
    """Extract fixed-length feature vectors for classification."""

    def __init__(
        self,
        config: Optional[FeatureConfig] = None,
        sample_rate: Optional[int] = None,
        preprocessor: Optional[AudioPreprocessor] = None,
    ):
        """Initialize feature extractor.

        Args:
            config: Feature configuration (uses global config if None)
            sample_rate: Canonical sample rate (uses global config if None)
            preprocessor: Format normalizer (built from sample_rate if None)
        """
        if config is None:
            config = get_audio_activity_config().features
        self.config = config
        self.preprocessor = preprocessor or AudioPreprocessor(sample_rate)
        self.sample_rate = self.preprocessor.sample_rate

        if self.config.algorithm not in FEATURE_ALGORITHMS:
            raise ValueError(
                f"Unknown feature algorithm: {self.config.algorithm} "
                f"(available: {sorted(FEATURE_ALGORITHMS)})"
            )
        self._algorithm = FEATURE_ALGORITHMS[self.config.algorithm]

    @property
    def feature_length(self) -> int:
        return self.config.feature_length

    def extract(self, data: bytes, source_format: AudioFormat) -> np.ndarray:
        """Normalize, decode and featurize raw PCM audio.

        Args:
            data: Raw PCM bytes
            source_format: Layout of ``data``

        Returns:
            Float32 vector of length n_mfcc * n_frames

        Raises:
            UnsupportedAudioFormat: If the source cannot be normalized
            EmptyAudioInput: If the audio decodes to zero samples
            FeatureExtractionError: If the MFCC algorithm fails
        """
        samples = self.preprocessor.decode(data, source_format)
        return self.extract_from_samples(samples)

    def extract_from_samples(self, samples: np.ndarray) -> np.ndarray:
        """Featurize canonical-rate float samples."""
        try:
            mfcc = self._algorithm(samples, self.sample_rate, self.config)
        except Exception as e:
            raise FeatureExtractionError(
                f"{self.config.algorithm} MFCC failed: {e}",
                context={"samples": len(samples)},
            ) from e

        mfcc = np.asarray(mfcc, dtype=np.float32)
        if mfcc.ndim != 2 or mfcc.shape[0] != self.config.n_mfcc:
            raise FeatureExtractionError(
                "MFCC matrix has unexpected shape",
                context={"shape": mfcc.shape, "n_mfcc": self.config.n_mfcc},
            )

        frames = self.pad_or_truncate(mfcc.T, self.config.n_frames)
        logger.debug(f"Extracted {mfcc.shape[1]} MFCC frames, kept {self.config.n_frames}")
        return frames.reshape(-1)

    @staticmethod
    def pad_or_truncate(frames: np.ndarray, target_frames: int) -> np.ndarray:
        """Pad with zero frames or truncate to ``target_frames`` rows.

        Args:
            frames: Array of shape (frames, n_mfcc)
            target_frames: Number of rows to keep

        Returns:
            Array of shape (target_frames, n_mfcc)
        """
        if len(frames) > target_frames:
            return frames[:target_frames]
        elif len(frames) < target_frames:
            padding = target_frames - len(frames)
            return np.pad(frames, ((0, padding), (0, 0)), mode="constant")
        return frames
