"""Centralized constants and configuration loader.

This module provides access to configuration values and sensible defaults
for the audio activity pipeline. Values are loaded from config/config.yaml
when available, otherwise defaults are used.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

logger = logging.getLogger(__name__)

# Path to the default configuration file
DEFAULT_CONFIG_PATH = Path(__file__).parent.parent.parent / "config" / "config.yaml"

# Canonical PCM layout fed to feature extraction
CANONICAL_SAMPLE_WIDTH = 16
CANONICAL_CHANNELS = 1

# Standard numeric constants (not configurable)
INT16_MAX = 32768.0


def load_config(config_path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """Load configuration from YAML file.

    Args:
        config_path: Path to config file. Uses default if None.

    Returns:
        Configuration dictionary.
    """
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH

    try:
        if path.exists():
            with open(path, "r") as f:
                return yaml.safe_load(f) or {}
        logger.warning(f"Config file not found: {path}")
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Failed to load config from {path}: {e}")

    return {}


def _get_nested(config: Dict, *keys: str, default: Any = None) -> Any:
    """Get nested config value with default fallback."""
    value = config
    for key in keys:
        if isinstance(value, dict):
            value = value.get(key)
        else:
            return default
        if value is None:
            return default
    return value


# ============================================================
# Feature Extraction Constants
# ============================================================

@dataclass
class FeatureConfig:
    """Feature extraction configuration."""
    # Name of the registered feature algorithm
    algorithm: str = "librosa"
    # Coefficients per frame
    n_mfcc: int = 13
    # Frames in the output vector (padded or truncated)
    n_frames: int = 100
    n_fft: int = 512
    hop_length: int = 160
    n_mels: int = 40
    fmin: float = 0.0
    fmax: Optional[float] = None
    log_epsilon: float = 1e-10

    @property
    def feature_length(self) -> int:
        """Length of the flattened feature vector."""
        return self.n_mfcc * self.n_frames

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "FeatureConfig":
        """Create from the ``features`` section of a config dictionary."""
        return cls(
            algorithm=config.get("algorithm", "librosa"),
            n_mfcc=int(config.get("n_mfcc", 13)),
            n_frames=int(config.get("n_frames", 100)),
            n_fft=int(config.get("n_fft", 512)),
            hop_length=int(config.get("hop_length", 160)),
            n_mels=int(config.get("n_mels", 40)),
            fmin=float(config.get("fmin", 0.0)),
            fmax=config.get("fmax"),
            log_epsilon=float(config.get("log_epsilon", 1e-10)),
        )


# ============================================================
# Audio Activity Constants
# ============================================================

@dataclass
class AudioActivityConfig:
    """Audio activity detection settings."""
    # Analysis is an opt-in auxiliary channel
    enabled: bool = False
    model_path: str = "models/audio_classification/yamnet.onnx"
    mapping_path: str = "models/audio_classification/activity_mapping.csv"
    # Used for mapping entries without an explicit "*threshold"
    default_threshold: float = 0.5
    # Canonical sample rate in Hz
    sample_rate: int = 16000
    # Seconds; None or 0 disables the timeout
    inference_timeout: Optional[float] = 5.0
    # RMS below which a segment is treated as silence; 0 disables the gate
    silence_rms_threshold: float = 0.0
    # Recognized activity labels; None means the built-in ActivityType values
    activities: Optional[List[str]] = None
    features: FeatureConfig = field(default_factory=FeatureConfig)

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "AudioActivityConfig":
        """Create from config dictionary."""
        aa = _get_nested(config, "audio_activity") or {}
        features = aa.get("features") or {}
        activities = aa.get("activities")
        timeout = aa.get("inference_timeout", 5.0)

        return cls(
            enabled=bool(aa.get("enabled", False)),
            model_path=str(aa.get("model_path", cls.model_path)),
            mapping_path=str(aa.get("mapping_path", cls.mapping_path)),
            default_threshold=float(aa.get("default_threshold", 0.5)),
            sample_rate=int(aa.get("sample_rate", 16000)),
            inference_timeout=float(timeout) if timeout else None,
            silence_rms_threshold=float(aa.get("silence_rms_threshold", 0.0)),
            activities=[str(a) for a in activities] if activities is not None else None,
            features=FeatureConfig.from_config(features),
        )

    @classmethod
    def from_file(cls, config_path: Union[str, Path]) -> "AudioActivityConfig":
        """Create from a YAML file."""
        return cls.from_config(load_config(config_path))


# ============================================================
# Global Config Instance (lazy loaded)
# ============================================================

class Config:
    """Global configuration singleton."""

    _instance: Optional["Config"] = None
    _config: Dict[str, Any] = {}

    def __new__(cls) -> "Config":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._load()
        return cls._instance

    def _load(self) -> None:
        """Load configuration from file."""
        self._config = load_config()
        self._audio_activity: Optional[AudioActivityConfig] = None

    def reload(self, config_path: Optional[Path] = None) -> None:
        """Reload configuration from file."""
        self._config = load_config(config_path)
        self._audio_activity = None

    @property
    def audio_activity(self) -> AudioActivityConfig:
        """Get audio activity config."""
        if self._audio_activity is None:
            self._audio_activity = AudioActivityConfig.from_config(self._config)
        return self._audio_activity

    def get(self, *keys: str, default: Any = None) -> Any:
        """Get a config value by key path."""
        return _get_nested(self._config, *keys, default=default)


def get_config() -> Config:
    """Get the global configuration instance."""
    return Config()


def get_audio_activity_config() -> AudioActivityConfig:
    """Get audio activity configuration."""
    return get_config().audio_activity
