"""Audio processing module.

Contains:
- AudioFormat: Layout of a raw PCM buffer
- AudioPreprocessor: Format normalization and PCM decoding
- FeatureExtractor: Fixed-length MFCC feature vectors
"""

from .preprocessing import AudioFormat, AudioPreprocessor, load_wav
from .features import FEATURE_ALGORITHMS, FeatureExtractor, register_algorithm

__all__ = [
    "AudioFormat",
    "AudioPreprocessor",
    "load_wav",
    "FeatureExtractor",
    "FEATURE_ALGORITHMS",
    "register_algorithm",
]
