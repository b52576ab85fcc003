"""
Audio conversion between Twilio telephony audio and Gemini Live model audio.

Key components:
- mulaw: G.711 mu-law encode/decode between 8-bit companded and 16-bit linear PCM.
- resampler: 8 kHz <-> 16 kHz (and 24 kHz -> 8 kHz) linear PCM conversion.

Inbound path:  mu-law 8 kHz -> decode -> upsample_8k_to_16k -> model
Outbound path: model 16 kHz -> downsample_16k_to_8k -> encode -> Twilio
"""

from clinic_agent.audio import mulaw
from clinic_agent.audio.resampler import (
    downsample_16k_to_8k,
    downsample_24k_to_8k,
    upsample_8k_to_16k,
)

__all__ = ["mulaw", "upsample_8k_to_16k", "downsample_16k_to_8k", "downsample_24k_to_8k"]
