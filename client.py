"""
Twilio Media Streams call simulator.

Connects to the relay's /media endpoint the way Twilio does, plays a WAV file
(or a generated tone) as 20 ms mu-law frames, and records what the agent says
back to a WAV file.

Usage:
    python client.py [--url ws://localhost:8080/media] [--wav caller.wav]
                     [--record agent_reply.wav] [--listen-seconds 10]
"""

import argparse
import asyncio
import base64
import json
import logging
import uuid
import wave
from typing import List, Optional

import numpy as np
import websockets

from clinic_agent.audio import mulaw
from clinic_agent.audio.resampler import downsample_16k_to_8k
from clinic_agent.config.constants import TELEPHONY_SAMPLE_RATE

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("twilio_sim")

FRAME_BYTES = 160  # 20 ms of 8 kHz mu-law
FRAME_SECONDS = 0.02


def connected_event() -> dict:
    return {"event": "connected", "protocol": "Call", "version": "1.0.0"}


def start_event(stream_sid: str, call_sid: str) -> dict:
    return {
        "event": "start",
        "sequenceNumber": "1",
        "start": {
            "streamSid": stream_sid,
            "callSid": call_sid,
            "accountSid": "AC" + "0" * 32,
            "tracks": ["inbound"],
            "customParameters": {},
            "mediaFormat": {"encoding": "audio/x-mulaw", "sampleRate": 8000, "channels": 1},
        },
        "streamSid": stream_sid,
    }


def media_event(stream_sid: str, frame: bytes, chunk: int) -> dict:
    return {
        "event": "media",
        "sequenceNumber": str(chunk + 1),
        "media": {
            "track": "inbound",
            "chunk": str(chunk),
            "timestamp": str(chunk * 20),
            "payload": base64.b64encode(frame).decode("utf-8"),
        },
        "streamSid": stream_sid,
    }


def stop_event(stream_sid: str, call_sid: str) -> dict:
    return {
        "event": "stop",
        "stop": {"accountSid": "AC" + "0" * 32, "callSid": call_sid},
        "streamSid": stream_sid,
    }


def generate_tone(seconds: float = 2.0, frequency: float = 440.0) -> bytes:
    """8 kHz linear16 sine tone."""
    t = np.arange(int(TELEPHONY_SAMPLE_RATE * seconds)) / TELEPHONY_SAMPLE_RATE
    return (np.sin(2 * np.pi * frequency * t) * 8000).astype("<i2").tobytes()


def load_caller_audio(path: str) -> bytes:
    """Load a mono 16-bit WAV at 8 kHz or 16 kHz as 8 kHz linear16."""
    with wave.open(path, "rb") as wav_file:
        if wav_file.getnchannels() != 1 or wav_file.getsampwidth() != 2:
            raise ValueError("Caller audio must be mono 16-bit PCM")
        rate = wav_file.getframerate()
        frames = wav_file.readframes(wav_file.getnframes())
    if rate == 16000:
        return downsample_16k_to_8k(frames)
    if rate != TELEPHONY_SAMPLE_RATE:
        raise ValueError(f"Unsupported sample rate {rate}; use 8000 or 16000 Hz")
    return frames


def split_frames(mulaw_audio: bytes) -> List[bytes]:
    return [mulaw_audio[i:i + FRAME_BYTES] for i in range(0, len(mulaw_audio), FRAME_BYTES)]


async def receive_agent_audio(websocket, received: List[bytes]) -> None:
    """Collect media frames sent back by the relay."""
    try:
        async for message in websocket:
            data = json.loads(message)
            if data.get("event") == "media":
                received.append(base64.b64decode(data["media"]["payload"]))
                if len(received) % 50 == 1:
                    logger.info(f"Received {len(received)} agent audio frame(s)")
            elif data.get("event") == "clear":
                logger.info("Relay asked to clear buffered playback")
    except websockets.exceptions.ConnectionClosed:
        logger.info("Relay closed the connection")


def save_agent_audio(path: str, frames: List[bytes]) -> None:
    with wave.open(path, "wb") as wav_file:
        wav_file.setnchannels(1)
        wav_file.setsampwidth(2)
        wav_file.setframerate(TELEPHONY_SAMPLE_RATE)
        wav_file.writeframes(mulaw.decode(b"".join(frames)))
    logger.info(f"Saved {len(frames)} agent frame(s) to {path}")


async def run_call(url: str, pcm8k: bytes, listen_seconds: float, record: Optional[str]) -> None:
    stream_sid = "MZ" + uuid.uuid4().hex
    call_sid = "CA" + uuid.uuid4().hex
    received: List[bytes] = []

    async with websockets.connect(url) as websocket:
        logger.info(f"Connected to {url} as stream {stream_sid}")
        receiver = asyncio.create_task(receive_agent_audio(websocket, received))

        await websocket.send(json.dumps(connected_event()))
        await websocket.send(json.dumps(start_event(stream_sid, call_sid)))

        frames = split_frames(mulaw.encode(pcm8k))
        logger.info(f"Streaming {len(frames)} caller frame(s)")
        for chunk, frame in enumerate(frames):
            await websocket.send(json.dumps(media_event(stream_sid, frame, chunk)))
            await asyncio.sleep(FRAME_SECONDS)

        logger.info(f"Listening for the agent for {listen_seconds:.0f}s")
        await asyncio.sleep(listen_seconds)

        await websocket.send(json.dumps(stop_event(stream_sid, call_sid)))
        receiver.cancel()
        try:
            await receiver
        except asyncio.CancelledError:
            pass

    if record and received:
        save_agent_audio(record, received)
    logger.info(f"Call finished: {len(received)} agent frame(s) received")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Simulate a Twilio call against the media relay")
    parser.add_argument("--url", default="ws://localhost:8080/media", help="Relay WebSocket URL")
    parser.add_argument("--wav", help="Mono 16-bit WAV (8 or 16 kHz) to play as the caller")
    parser.add_argument("--record", default="agent_reply.wav", help="Where to save the agent's audio")
    parser.add_argument("--listen-seconds", type=float, default=10.0)
    return parser.parse_args(argv)


if __name__ == "__main__":
    args = parse_args()
    caller_audio = load_caller_audio(args.wav) if args.wav else generate_tone()
    asyncio.run(run_call(args.url, caller_audio, args.listen_seconds, args.record))
