"""Audio Activity - Main Package.

This package turns raw audio segments into confidence-scored activity
labels: PCM normalization, MFCC feature extraction, model inference and
a thresholded raw class to activity mapping.
"""

__version__ = "0.1.0"

from .audio import AudioFormat, AudioPreprocessor, FeatureExtractor
from .classifier import AudioActivityClassifier
from .constants import AudioActivityConfig, FeatureConfig
from .errors import (
    AudioActivityError,
    EmptyAudioInput,
    FeatureExtractionError,
    InferenceError,
    InferenceTimeout,
    MalformedMappingRecord,
    ModelLoadError,
    ModelNotLoaded,
    UnknownActivityLabel,
    UnsupportedAudioFormat,
)
from .inference import CallableBackend, InferenceEngine, ModelBackend, ModelLoader
from .mapping import ActivityMappingTable, ThresholdEntry
from .reconciler import ActivityReconciler, ActivityType, ActivityVocabulary

__all__ = [
    "AudioActivityClassifier",
    "AudioActivityConfig",
    "FeatureConfig",
    "AudioFormat",
    "AudioPreprocessor",
    "FeatureExtractor",
    "InferenceEngine",
    "ModelBackend",
    "CallableBackend",
    "ModelLoader",
    "ActivityMappingTable",
    "ThresholdEntry",
    "ActivityReconciler",
    "ActivityType",
    "ActivityVocabulary",
    "AudioActivityError",
    "UnsupportedAudioFormat",
    "EmptyAudioInput",
    "FeatureExtractionError",
    "ModelLoadError",
    "ModelNotLoaded",
    "InferenceError",
    "InferenceTimeout",
    "MalformedMappingRecord",
    "UnknownActivityLabel",
]
