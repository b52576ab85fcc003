"""
Pydantic models for the Twilio Media Streams WebSocket protocol.

This module defines structured data models for the events Twilio sends over a
bidirectional media stream (connected, start, media, stop, mark, dtmf) and for
the events the relay sends back (media, clear), providing type validation and
documentation.
"""

import base64
import binascii
import logging
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from clinic_agent.config.constants import LOGGER_NAME

logger = logging.getLogger(LOGGER_NAME)

SUPPORTED_ENCODINGS = ["audio/x-mulaw"]


class BaseEvent(BaseModel):
    """Base model for all Twilio Media Streams events."""

    model_config = ConfigDict(extra="allow")

    event: str = Field(..., description="Event type identifier")
    sequenceNumber: Optional[str] = Field(
        None, description="Position of the event within the stream"
    )


# Inbound events
class ConnectedEvent(BaseEvent):
    """First event on a new media stream connection."""

    event: Literal["connected"]
    protocol: Optional[str] = None
    version: Optional[str] = None


class MediaFormat(BaseModel):
    """Audio format announced in the start event."""

    encoding: str = "audio/x-mulaw"
    sampleRate: int = 8000
    channels: int = 1

    @field_validator("encoding")
    def validate_encoding(cls, v):
        """Warn when Twilio announces an encoding the relay does not transcode."""
        if v not in SUPPORTED_ENCODINGS:
            logger.warning(f"Unexpected media encoding announced: {v}")
        return v


class StartMetadata(BaseModel):
    """Stream metadata carried by the start event."""

    model_config = ConfigDict(extra="allow")

    streamSid: str = Field(..., description="Identifier of this media stream")
    callSid: Optional[str] = Field(None, description="Identifier of the phone call")
    accountSid: Optional[str] = None
    tracks: List[str] = Field(default_factory=list)
    customParameters: Dict[str, Any] = Field(default_factory=dict)
    mediaFormat: MediaFormat = Field(default_factory=MediaFormat)

    @field_validator("streamSid")
    def validate_stream_sid(cls, v):
        """Validate that the stream identifier is not empty."""
        if not v.strip():
            raise ValueError("streamSid cannot be empty")
        return v


class StartEvent(BaseEvent):
    """Sent once when the media stream starts."""

    event: Literal["start"]
    start: StartMetadata
    streamSid: Optional[str] = None


class MediaPayload(BaseModel):
    """One chunk of caller audio."""

    track: Optional[str] = None
    chunk: Optional[str] = None
    timestamp: Optional[str] = None
    payload: str = Field(..., description="Base64-encoded mu-law audio")

    @field_validator("payload")
    def validate_payload(cls, v):
        """Validate that the payload is valid base64."""
        try:
            base64.b64decode(v, validate=True)
        except (binascii.Error, ValueError):
            raise ValueError("Invalid base64 encoded audio data")
        return v


class MediaEvent(BaseEvent):
    """Caller audio frame."""

    event: Literal["media"]
    media: MediaPayload
    streamSid: Optional[str] = None


class StopMetadata(BaseModel):
    """Metadata carried by the stop event."""

    model_config = ConfigDict(extra="allow")

    accountSid: Optional[str] = None
    callSid: Optional[str] = None


class StopEvent(BaseEvent):
    """Sent when the stream ends (hang-up or <Stop>)."""

    event: Literal["stop"]
    stop: StopMetadata = Field(default_factory=StopMetadata)
    streamSid: Optional[str] = None


class MarkEvent(BaseEvent):
    """Acknowledges that audio tagged with a mark has played."""

    event: Literal["mark"]
    mark: Dict[str, Any] = Field(default_factory=dict)
    streamSid: Optional[str] = None


class DtmfEvent(BaseEvent):
    """Keypad digit pressed by the caller."""

    event: Literal["dtmf"]
    dtmf: Dict[str, Any] = Field(default_factory=dict)
    streamSid: Optional[str] = None


# Outbound events
class OutboundMediaPayload(BaseModel):
    """Audio chunk sent back to the caller."""

    payload: str = Field(..., description="Base64-encoded mu-law audio")


class OutboundMediaEvent(BaseModel):
    """Media event sent to Twilio for playback."""

    event: Literal["media"] = "media"
    streamSid: str
    media: OutboundMediaPayload

    @classmethod
    def from_audio(cls, stream_sid: str, mulaw_audio: bytes) -> "OutboundMediaEvent":
        """Build a media event from raw mu-law bytes."""
        return cls(
            streamSid=stream_sid,
            media=OutboundMediaPayload(
                payload=base64.b64encode(mulaw_audio).decode("utf-8")
            ),
        )


class ClearEvent(BaseModel):
    """Asks Twilio to discard audio buffered for playback."""

    event: Literal["clear"] = "clear"
    streamSid: str


# Union type for all possible incoming events
InboundEvent = Union[
    ConnectedEvent,
    StartEvent,
    MediaEvent,
    StopEvent,
    MarkEvent,
    DtmfEvent,
]

# Union type for all possible outgoing events
OutboundEvent = Union[
    OutboundMediaEvent,
    ClearEvent,
]
