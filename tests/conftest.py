"""Pytest configuration and fixtures."""

import pytest
import numpy as np
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

SAMPLE_RATE = 16000


def make_tone(duration=1.0, sample_rate=SAMPLE_RATE, frequency=440.0, amplitude=0.5):
    """Sine tone as float samples."""
    t = np.arange(int(duration * sample_rate)) / sample_rate
    return amplitude * np.sin(2 * np.pi * frequency * t)


def to_pcm16(samples):
    """Float samples to 16-bit signed little-endian bytes."""
    return (np.asarray(samples) * 32767).astype("<i2").tobytes()


@pytest.fixture
def canonical_format():
    """Canonical 16 kHz mono 16-bit format."""
    from audio_activity.audio import AudioFormat
    return AudioFormat.canonical(SAMPLE_RATE)


@pytest.fixture
def tone_pcm():
    """One second of a 440 Hz tone in canonical PCM."""
    return to_pcm16(make_tone())


@pytest.fixture
def silence_pcm():
    """One second of digital silence in canonical PCM."""
    return np.zeros(SAMPLE_RATE, dtype="<i2").tobytes()


@pytest.fixture
def enabled_config():
    """Configuration with analysis switched on and no timeout."""
    from audio_activity.constants import AudioActivityConfig, FeatureConfig
    return AudioActivityConfig(
        enabled=True,
        inference_timeout=None,
        features=FeatureConfig(),
    )


@pytest.fixture
def score_backend():
    """Factory for a backend that always returns the given scores."""
    from audio_activity.inference import CallableBackend

    def _make(scores, **kwargs):
        output = np.asarray([scores], dtype=np.float32)
        kwargs.setdefault("output_width", len(scores))
        return CallableBackend(lambda tensor: output, **kwargs)

    return _make


@pytest.fixture
def mapping_file(tmp_path):
    """Mapping file with a few YAMNet-style records."""
    path = tmp_path / "activity_mapping.csv"
    path.write_text(
        "# index,activities\n"
        "0,Speaking*0.6|Conversation\n"
        "2,Conversation*0.4\n"
        "132,Music*0.6\n",
        encoding="utf-8",
    )
    return path
