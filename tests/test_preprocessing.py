"""Tests for audio format normalization and PCM decoding."""

import struct

import pytest
import numpy as np


class TestAudioFormat:
    """Test cases for AudioFormat."""

    def test_canonical_format(self):
        """Test canonical format is 16-bit mono signed little-endian."""
        from audio_activity.audio import AudioFormat

        fmt = AudioFormat.canonical(16000)

        assert fmt.sample_rate == 16000
        assert fmt.sample_width == 16
        assert fmt.channels == 1
        assert fmt.signed is True
        assert fmt.big_endian is False
        assert fmt.frame_size == 2

    @pytest.mark.parametrize("kwargs", [
        {"sample_rate": 0},
        {"sample_rate": 16000, "sample_width": 12},
        {"sample_rate": 16000, "channels": 0},
    ])
    def test_invalid_format_rejected(self, kwargs):
        """Test undecodable layouts raise UnsupportedAudioFormat."""
        from audio_activity.audio import AudioFormat
        from audio_activity.errors import UnsupportedAudioFormat

        with pytest.raises(UnsupportedAudioFormat):
            AudioFormat(**kwargs).validate()


class TestAudioPreprocessor:
    """Test cases for AudioPreprocessor."""

    def test_canonical_input_is_not_reencoded(self, canonical_format, tone_pcm):
        """Test matching input is returned unchanged."""
        from audio_activity.audio import AudioPreprocessor

        preprocessor = AudioPreprocessor(sample_rate=16000)

        assert preprocessor.normalize_format(tone_pcm, canonical_format) is tone_pcm

    def test_pcm_to_float_scaling(self):
        """Test samples are divided by 32768."""
        from audio_activity.audio import AudioPreprocessor

        pcm = struct.pack("<4h", 0, 16384, -32768, 32767)
        samples = AudioPreprocessor.pcm_to_float(pcm)

        np.testing.assert_allclose(samples, [0.0, 0.5, -1.0, 32767 / 32768])
        assert samples.dtype == np.float32

    def test_stereo_is_downmixed(self):
        """Test channels are averaged into mono."""
        from audio_activity.audio import AudioFormat, AudioPreprocessor

        preprocessor = AudioPreprocessor(sample_rate=16000)
        stereo = AudioFormat(16000, 16, channels=2)
        pcm = struct.pack("<4h", 16384, 0, 16384, 0)

        out = preprocessor.normalize_format(pcm, stereo)

        assert struct.unpack("<2h", out) == (8192, 8192)

    def test_unsigned_8bit(self):
        """Test unsigned 8-bit samples are centered."""
        from audio_activity.audio import AudioFormat, AudioPreprocessor

        preprocessor = AudioPreprocessor(sample_rate=16000)
        fmt = AudioFormat(16000, 8, signed=False)

        out = preprocessor.normalize_format(bytes([128, 255, 0]), fmt)

        assert struct.unpack("<3h", out) == (0, 32512, -32768)

    def test_signed_24bit(self):
        """Test packed 24-bit samples are decoded."""
        from audio_activity.audio import AudioFormat, AudioPreprocessor

        preprocessor = AudioPreprocessor(sample_rate=16000)
        fmt = AudioFormat(16000, 24)

        out = preprocessor.normalize_format(bytes([0, 0, 0x40, 0, 0, 0x80]), fmt)

        assert struct.unpack("<2h", out) == (16384, -32768)

    def test_big_endian_16bit(self):
        """Test big-endian input is converted to little-endian."""
        from audio_activity.audio import AudioFormat, AudioPreprocessor

        preprocessor = AudioPreprocessor(sample_rate=16000)
        fmt = AudioFormat(16000, 16, big_endian=True)

        out = preprocessor.normalize_format(struct.pack(">2h", 1000, -1000), fmt)

        assert struct.unpack("<2h", out) == (1000, -1000)

    def test_resampling(self):
        """Test other sample rates are resampled to the canonical rate."""
        from audio_activity.audio import AudioFormat, AudioPreprocessor

        preprocessor = AudioPreprocessor(sample_rate=16000)
        pcm = (np.sin(np.arange(8000) / 10) * 10000).astype("<i2").tobytes()

        out = preprocessor.normalize_format(pcm, AudioFormat(8000))

        assert abs(len(out) // 2 - 16000) <= 1

    def test_partial_frame_dropped(self, canonical_format):
        """Test a trailing odd byte is ignored."""
        from audio_activity.audio import AudioPreprocessor

        preprocessor = AudioPreprocessor(sample_rate=16000)
        samples = preprocessor.decode(struct.pack("<2h", 1, 2) + b"\x01", canonical_format)

        assert len(samples) == 2

    @pytest.mark.parametrize("data", [b"", b"\x01"])
    def test_empty_audio(self, canonical_format, data):
        """Test zero decoded samples raise EmptyAudioInput."""
        from audio_activity.audio import AudioPreprocessor
        from audio_activity.errors import EmptyAudioInput

        preprocessor = AudioPreprocessor(sample_rate=16000)

        with pytest.raises(EmptyAudioInput):
            preprocessor.decode(data, canonical_format)

    def test_unsupported_format(self):
        """Test unsupported sample widths raise UnsupportedAudioFormat."""
        from audio_activity.audio import AudioFormat, AudioPreprocessor
        from audio_activity.errors import UnsupportedAudioFormat

        preprocessor = AudioPreprocessor(sample_rate=16000)

        with pytest.raises(UnsupportedAudioFormat):
            preprocessor.decode(b"\x00" * 12, AudioFormat(16000, sample_width=12))

    def test_rms(self):
        """Test RMS of a constant signal."""
        from audio_activity.audio import AudioPreprocessor

        assert AudioPreprocessor.rms(np.full(100, 0.5)) == pytest.approx(0.5)
        assert AudioPreprocessor.rms(np.array([])) == 0.0


class TestLoadWav:
    """Test cases for WAV loading."""

    def test_int16_wav(self, tmp_path):
        """Test 16-bit WAV files pass through unchanged."""
        from scipy.io import wavfile
        from audio_activity.audio import AudioFormat, load_wav

        samples = np.array([0, 100, -100, 32767], dtype=np.int16)
        path = tmp_path / "clip.wav"
        wavfile.write(str(path), 22050, samples)

        data, fmt = load_wav(path)

        assert fmt == AudioFormat(22050, 16, 1)
        assert data == samples.astype("<i2").tobytes()

    def test_float_wav_quantized(self, tmp_path):
        """Test float WAV files are quantized to 16-bit."""
        from scipy.io import wavfile
        from audio_activity.audio import load_wav

        samples = np.array([[0.5, -0.5], [0.0, 0.25]], dtype=np.float32)
        path = tmp_path / "stereo.wav"
        wavfile.write(str(path), 16000, samples)

        data, fmt = load_wav(path)

        assert fmt.sample_width == 16
        assert fmt.channels == 2
        assert struct.unpack("<4h", data) == (16384, -16384, 0, 8192)
