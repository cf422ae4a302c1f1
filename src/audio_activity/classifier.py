"""Audio activity classification.

End-to-end pipeline: raw PCM -> canonical format -> MFCC features ->
model scores -> activity confidences. Detection is an auxiliary signal,
so every failure is logged and turned into an empty result.
"""

import logging
import threading
from pathlib import Path
from typing import Dict, Optional, Union

from .audio import AudioFormat, FeatureExtractor, load_wav
from .constants import AudioActivityConfig, get_audio_activity_config
from .errors import (
    AudioActivityError,
    EmptyAudioInput,
    FeatureExtractionError,
    InferenceError,
    InferenceTimeout,
    ModelLoadError,
    ModelNotLoaded,
    UnsupportedAudioFormat,
)
from .inference import InferenceEngine, ModelBackend, ModelLoader
from .mapping import ActivityMappingTable, MappingSource
from .reconciler import ActivityReconciler, ActivityVocabulary

logger = logging.getLogger(__name__)

ActivityResult = Dict[str, float]


class AudioActivityClassifier:
    """Detects domain activities in audio segments.

    Safe to call from several threads. The mapping table is an immutable
    snapshot; ``reload_mapping`` swaps in a complete replacement.
    """

    def __init__(
        self,
        config: Optional[AudioActivityConfig] = None,
        backend: Optional[ModelBackend] = None,
        mapping: Optional[ActivityMappingTable] = None,
        vocabulary: Optional[ActivityVocabulary] = None,
        model_loader: Optional[ModelLoader] = None,
    ):
        """Initialize classifier.

        Args:
            config: Settings (uses global config if None)
            backend: Pre-loaded model backend; loaded from
                ``config.model_path`` if None and analysis is enabled
            mapping: Mapping table; loaded from ``config.mapping_path`` if None
            vocabulary: Recognized activities (from config if None)
            model_loader: Loader used when no backend is given
        """
        self.config = config or get_audio_activity_config()
        self._model_loader = model_loader or ModelLoader()
        self._reload_lock = threading.Lock()

        self._extractor = FeatureExtractor(
            self.config.features, sample_rate=self.config.sample_rate
        )
        self._reconciler = ActivityReconciler(
            vocabulary if vocabulary is not None
            else ActivityVocabulary(self.config.activities)
        )

        if backend is None and self.config.enabled:
            backend = self._load_backend()
        elif not self.config.enabled:
            logger.info("Audio analysis disabled in configuration")
        self._engine = InferenceEngine(backend, timeout=self.config.inference_timeout)

        if mapping is None:
            if self.config.enabled:
                mapping = self._load_initial_mapping()
            else:
                mapping = ActivityMappingTable()
        self._check_mapping(mapping)
        self._mapping = mapping

    def _load_backend(self) -> Optional[ModelBackend]:
        try:
            backend = self._model_loader.load_model(self.config.model_path)
        except ModelLoadError as e:
            logger.error(f"Failed to load audio classification model: {e}")
            return None
        logger.info("Audio classification model loaded")
        return backend

    def _load_initial_mapping(self) -> ActivityMappingTable:
        try:
            return ActivityMappingTable.load(
                self.config.mapping_path, self.config.default_threshold
            )
        except (OSError, ValueError) as e:
            logger.error(f"Failed to load activity mapping: {e}")
            return ActivityMappingTable()

    def _check_mapping(self, mapping: ActivityMappingTable) -> None:
        """Log mapping indices the model cannot produce."""
        width = self._engine.output_width
        if width is None:
            return
        out_of_range = mapping.out_of_range(width)
        if out_of_range:
            logger.error(
                f"Activity mapping references raw classes {out_of_range} "
                f"but the model only outputs {width} classes; "
                f"these entries will never match"
            )

    @property
    def is_enabled(self) -> bool:
        return self.config.enabled

    def is_ready(self) -> bool:
        """Check if analysis is enabled and a model is loaded."""
        return self.config.enabled and self._engine.is_ready()

    @property
    def mapping(self) -> ActivityMappingTable:
        """Current mapping snapshot."""
        return self._mapping

    @property
    def engine(self) -> InferenceEngine:
        return self._engine

    def reload_mapping(self, source: Optional[MappingSource] = None) -> ActivityMappingTable:
        """Replace the mapping table with a freshly loaded one.

        The current table is kept when an exception is raised.

        Args:
            source: Path or lines (defaults to ``config.mapping_path``)

        Returns:
            The new table

        Raises:
            OSError: If the source cannot be read
            ValueError: If the configured default threshold is outside [0, 1]
        """
        with self._reload_lock:
            table = ActivityMappingTable.load(
                source if source is not None else self.config.mapping_path,
                self.config.default_threshold,
            )
            self._check_mapping(table)
            self._mapping = table
        logger.info(f"Activity mapping reloaded: {table!r}")
        return table

    def classify(
        self,
        audio_data: bytes,
        source_format: AudioFormat,
        timeout: Optional[float] = None,
    ) -> ActivityResult:
        """Detect activities in a raw PCM segment.

        Args:
            audio_data: Raw PCM bytes
            source_format: Layout of ``audio_data``
            timeout: Inference timeout in seconds (config default if None)

        Returns:
            Activity label to confidence; empty when analysis is disabled,
            nothing is detected, or any stage fails
        """
        if not self.config.enabled:
            logger.debug("Audio analysis disabled; returning no activities")
            return {}
        if not self._engine.is_ready():
            logger.warning("Audio pattern detection unavailable: model not loaded")
            return {}

        mapping = self._mapping

        try:
            samples = self._extractor.preprocessor.decode(audio_data, source_format)

            threshold = self.config.silence_rms_threshold
            if threshold > 0 and self._extractor.preprocessor.rms(samples) < threshold:
                logger.debug("Segment below silence threshold; skipping inference")
                return {}

            features = self._extractor.extract_from_samples(samples)
            scores = self._engine.infer(features, timeout=timeout)
            result = self._reconciler.reconcile(scores, mapping)
        except (UnsupportedAudioFormat, EmptyAudioInput) as e:
            logger.warning(f"Audio rejected [{e.error_code}]: {e}")
            return {}
        except FeatureExtractionError as e:
            logger.error(f"Feature extraction failed [{e.error_code}]: {e}")
            return {}
        except ModelNotLoaded as e:
            logger.warning(f"Audio pattern detection unavailable [{e.error_code}]: {e}")
            return {}
        except InferenceTimeout as e:
            logger.error(f"Audio inference timed out [{e.error_code}]: {e}")
            return {}
        except InferenceError as e:
            logger.error(f"Audio inference failed [{e.error_code}]: {e}", exc_info=e.__cause__)
            return {}
        except AudioActivityError as e:
            logger.error(f"Audio pattern detection failed [{e.error_code}]: {e}")
            return {}
        except Exception:
            logger.exception("Unexpected error during audio pattern detection")
            return {}

        logger.debug(f"Audio patterns detected: {result}")
        return result

    def classify_file(
        self,
        audio_path: Union[str, Path],
        timeout: Optional[float] = None,
    ) -> ActivityResult:
        """Convenience method to classify a WAV file."""
        try:
            data, source_format = load_wav(audio_path)
        except (OSError, ValueError, AudioActivityError) as e:
            logger.error(f"Could not read audio file {audio_path}: {e}")
            return {}
        return self.classify(data, source_format, timeout=timeout)

    def close(self) -> None:
        """Release inference worker threads."""
        self._engine.close()

    def __enter__(self) -> "AudioActivityClassifier":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
