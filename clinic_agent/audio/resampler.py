"""
Simple sample rate conversion between telephony and model audio rates.

These converters are cheap and streaming-safe: every frame is converted on its
own with no state carried between frames. Upsampling duplicates samples
(zero-order hold) and downsampling averages neighbouring samples, which is
adequate for voice intelligibility but not for music.
"""

import logging

import numpy as np

from clinic_agent.config.constants import LOGGER_NAME

logger = logging.getLogger(LOGGER_NAME)

INT16_MIN = -32768
INT16_MAX = 32767


def _samples(pcm: bytes) -> np.ndarray:
    if len(pcm) % 2:
        logger.warning(f"Odd PCM frame length {len(pcm)}, dropping trailing byte")
        pcm = pcm[:-1]
    return np.frombuffer(pcm, dtype="<i2")


def _average_groups(samples: np.ndarray, factor: int) -> bytes:
    """Average each run of ``factor`` samples, rounding half away from zero."""
    usable = len(samples) - len(samples) % factor
    groups = samples[:usable].astype(np.int32).reshape(-1, factor)
    totals = groups.sum(axis=1)
    means = np.sign(totals) * ((np.abs(totals) + factor // 2) // factor)
    return np.clip(means, INT16_MIN, INT16_MAX).astype("<i2").tobytes()


def upsample_8k_to_16k(pcm8k: bytes) -> bytes:
    """
    Upsample 8 kHz linear16 audio to 16 kHz by duplicating each sample.

    Args:
        pcm8k: 8 kHz, 16-bit little-endian PCM

    Returns:
        bytes: 16 kHz PCM, twice the input length
    """
    return np.repeat(_samples(pcm8k), 2).astype("<i2").tobytes()


def downsample_16k_to_8k(pcm16k: bytes) -> bytes:
    """
    Downsample 16 kHz linear16 audio to 8 kHz by averaging sample pairs.

    A trailing unpaired sample is truncated, so the output is
    ``2 * (len(pcm16k) // 4)`` bytes long.
    """
    return _average_groups(_samples(pcm16k), 2)


def downsample_24k_to_8k(pcm24k: bytes) -> bytes:
    """Downsample 24 kHz linear16 audio to 8 kHz by averaging sample triples."""
    return _average_groups(_samples(pcm24k), 3)
