"""
G.711 mu-law companding between Twilio's 8-bit telephony audio and 16-bit linear PCM.

Twilio Media Streams carry mono 8 kHz mu-law; the speech model speaks 16-bit
little-endian linear PCM. Conversion is integer-only and bit-exact with the
G.711 reference table: one mu-law byte always corresponds to one PCM sample.
"""

import logging

import numpy as np

from clinic_agent.config.constants import LOGGER_NAME

logger = logging.getLogger(LOGGER_NAME)

BIAS = 0x84  # 132
CLIP = 32635

# Segment (exponent) for each value of the biased magnitude's top byte
_EXPONENT_TABLE = np.array(
    [0] + [i.bit_length() - 1 for i in range(1, 256)], dtype=np.int32
)


def linear16_to_mulaw_sample(sample: int) -> int:
    """Compress one signed 16-bit sample to a mu-law byte."""
    sign = 0x80 if sample < 0 else 0
    magnitude = min(abs(sample), CLIP) + BIAS
    exponent = int(_EXPONENT_TABLE[(magnitude >> 7) & 0xFF])
    mantissa = (magnitude >> (exponent + 3)) & 0x0F
    return ~(sign | (exponent << 4) | mantissa) & 0xFF


def mulaw_to_linear16_sample(code: int) -> int:
    """Expand one mu-law byte to a signed 16-bit sample."""
    code = ~code & 0xFF
    sign = code & 0x80
    exponent = (code >> 4) & 0x07
    mantissa = code & 0x0F
    sample = (((mantissa << 3) + BIAS) << exponent) - BIAS
    return -sample if sign else sample


# Full expansion table, indexed by mu-law code
_DECODE_TABLE = np.array(
    [mulaw_to_linear16_sample(code) for code in range(256)], dtype="<i2"
)


def encode(pcm: bytes) -> bytes:
    """
    Convert 16-bit little-endian linear PCM to mu-law.

    Args:
        pcm: Linear16 audio; an odd trailing byte is dropped

    Returns:
        bytes: One mu-law byte per input sample
    """
    if len(pcm) % 2:
        logger.warning(f"Odd PCM frame length {len(pcm)}, dropping trailing byte")
        pcm = pcm[:-1]

    samples = np.frombuffer(pcm, dtype="<i2").astype(np.int32)
    sign = np.where(samples < 0, 0x80, 0)
    magnitude = np.minimum(np.abs(samples), CLIP) + BIAS
    exponent = _EXPONENT_TABLE[(magnitude >> 7) & 0xFF]
    mantissa = (magnitude >> (exponent + 3)) & 0x0F
    companded = ~(sign | (exponent << 4) | mantissa) & 0xFF
    return companded.astype(np.uint8).tobytes()


def decode(mulaw: bytes) -> bytes:
    """
    Convert mu-law audio to 16-bit little-endian linear PCM.

    Args:
        mulaw: mu-law encoded audio

    Returns:
        bytes: Two bytes of linear16 per input byte
    """
    codes = np.frombuffer(mulaw, dtype=np.uint8)
    return _DECODE_TABLE[codes].tobytes()
