"""Exceptions raised by the audio activity pipeline.

Every failure mode has its own type so that logs stay diagnosable even
though the classifier converts all of them into an empty result.
"""

from typing import Any, Dict, Optional


class AudioActivityError(Exception):
    """Base exception for all audio activity errors."""

    default_code = "AUDIO_ACTIVITY_ERROR"

    def __init__(
        self,
        message: str,
        *,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.default_code
        self.context: Dict[str, Any] = context or {}

    def add_context(self, key: str, value: Any) -> "AudioActivityError":
        if key:
            self.context[key] = value
        return self

    def __str__(self) -> str:
        if not self.context:
            return self.message
        details = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
        return f"{self.message} ({details})"


class UnsupportedAudioFormat(AudioActivityError):
    """Source format cannot be converted to the canonical format."""

    default_code = "UNSUPPORTED_AUDIO_FORMAT"


class EmptyAudioInput(AudioActivityError):
    """Decoded audio contains no samples."""

    default_code = "EMPTY_AUDIO_INPUT"


class FeatureExtractionError(AudioActivityError):
    """The feature algorithm failed on otherwise valid audio."""

    default_code = "FEATURE_EXTRACTION_FAILED"


class ModelLoadError(AudioActivityError):
    """Model artifact is missing or could not be opened."""

    default_code = "MODEL_LOAD_FAILED"


class ModelNotLoaded(AudioActivityError):
    """Inference was requested before a model was available."""

    default_code = "MODEL_NOT_LOADED"


class InferenceError(AudioActivityError):
    """The inference backend failed or returned an unexpected shape."""

    default_code = "INFERENCE_FAILED"


class InferenceTimeout(InferenceError):
    """Inference did not finish within the allowed time."""

    default_code = "INFERENCE_TIMEOUT"


class MalformedMappingRecord(AudioActivityError):
    """A single line of the mapping source could not be parsed."""

    default_code = "MALFORMED_MAPPING_RECORD"

    def __init__(self, message: str, *, line_number: Optional[int] = None,
                 line: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.line_number = line_number
        self.line = line
        if line_number is not None:
            self.add_context("line", line_number)


class UnknownActivityLabel(AudioActivityError):
    """A mapping entry names an activity outside the known vocabulary.

    Reported by the reconciler rather than raised.
    """

    default_code = "UNKNOWN_ACTIVITY_LABEL"

    def __init__(self, label: str, raw_index: int, **kwargs):
        super().__init__(
            f"Activity type '{label}' does not exist",
            **kwargs,
        )
        self.label = label
        self.raw_index = raw_index
        self.add_context("label", label)
        self.add_context("raw_index", raw_index)
