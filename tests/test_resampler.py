"""
Unit tests for the telephony/model sample rate converters.
"""

import numpy as np
import pytest

from clinic_agent.audio.resampler import (
    downsample_16k_to_8k,
    downsample_24k_to_8k,
    upsample_8k_to_16k,
)


def pcm(*samples):
    return np.array(samples, dtype="<i2").tobytes()


def samples_of(data):
    return np.frombuffer(data, dtype="<i2").tolist()


@pytest.fixture
def sine_8k():
    t = np.arange(800) / 8000
    return (np.sin(2 * np.pi * 440 * t) * 12000).astype("<i2").tobytes()


class TestLengthLaws:
    @pytest.mark.parametrize("length", [0, 2, 4, 6, 320])
    def test_upsample_doubles_length(self, length):
        assert len(upsample_8k_to_16k(bytes(length))) == 2 * length

    @pytest.mark.parametrize("length", [0, 2, 4, 6, 8, 640, 642])
    def test_downsample_16k_halves_whole_samples(self, length):
        assert len(downsample_16k_to_8k(bytes(length))) == 2 * (length // 4)

    @pytest.mark.parametrize("length", [0, 4, 6, 12, 960, 964])
    def test_downsample_24k_thirds_whole_samples(self, length):
        assert len(downsample_24k_to_8k(bytes(length))) == 2 * (length // 6)


class TestConversion:
    def test_upsample_duplicates_samples(self):
        assert samples_of(upsample_8k_to_16k(pcm(1, -2, 300))) == [1, 1, -2, -2, 300, 300]

    def test_round_trip_is_identity(self, sine_8k):
        assert downsample_16k_to_8k(upsample_8k_to_16k(sine_8k)) == sine_8k

    def test_extremes_survive_round_trip(self):
        data = pcm(-32768, 32767, 0)
        assert downsample_16k_to_8k(upsample_8k_to_16k(data)) == data

    def test_downsample_averages_pairs(self):
        assert samples_of(downsample_16k_to_8k(pcm(100, 200, -32768, -32768))) == [150, -32768]

    def test_mean_rounds_half_away_from_zero(self):
        assert samples_of(downsample_16k_to_8k(pcm(1, 2, -1, -2, 0, 1))) == [2, -2, 1]

    def test_downsample_24k_averages_triples(self):
        assert samples_of(downsample_24k_to_8k(pcm(3, 6, 9, -1, -1, -2, 5))) == [6, -1]


class TestOddLengths:
    def test_odd_trailing_byte_dropped_with_warning(self, caplog):
        with caplog.at_level("WARNING"):
            result = upsample_8k_to_16k(pcm(7) + b"\x00")
        assert samples_of(result) == [7, 7]
        assert "Odd PCM frame length" in caplog.text

    def test_unpaired_sample_dropped(self):
        assert samples_of(downsample_16k_to_8k(pcm(10, 20, 30))) == [15]
