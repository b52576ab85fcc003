"""
FastAPI server for the clinic appointment voice agent.

This module initializes and configures the FastAPI application that Twilio talks
to during a call:
- POST /voice answers the inbound-call webhook with TwiML that connects the call
  to a bidirectional media stream on this server.
- WS /media carries the call audio; each connection is relayed to its own
  Gemini Live session.
- GET /health and GET / report service status.
"""

import os
from contextlib import asynccontextmanager
from pathlib import Path

import dotenv
from fastapi import FastAPI, Request, WebSocket
from fastapi.responses import PlainTextResponse, Response
from twilio.twiml.voice_response import Connect, VoiceResponse

from clinic_agent.config.logging_config import configure_logging

# Load environment variables from .env file if it exists
env_path = Path(".") / ".env"
if env_path.exists():
    dotenv.load_dotenv(env_path)

from clinic_agent.websocket_manager import MediaStreamManager, get_gemini_api_key  # noqa: E402

logger = configure_logging()

PORT = int(os.getenv("PORT", "8080"))
HOST = os.getenv("HOST", "0.0.0.0")

media_stream_manager = MediaStreamManager()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    public_url = os.getenv("PUBLIC_URL")
    if public_url:
        logger.info(f"Configure the Twilio number's voice webhook as: {public_url.rstrip('/')}/voice")
    else:
        logger.warning("PUBLIC_URL is not set; the /voice webhook will fail until it is")
    yield
    await media_stream_manager.aclose()


app = FastAPI(
    title="Clinic Voice Agent",
    description="Books clinic appointments over the phone by relaying Twilio Media Streams to Gemini Live",
    version="1.0.0",
    lifespan=lifespan,
)


def build_stream_url(public_url: str) -> str:
    """Turn PUBLIC_URL (with or without scheme) into the media stream's wss:// URL."""
    host = public_url.strip()
    for scheme in ("https://", "http://"):
        if host.startswith(scheme):
            host = host[len(scheme):]
    return f"wss://{host.rstrip('/')}/media"


@app.post("/voice")
async def voice_webhook(request: Request):
    """Answer Twilio's inbound-call webhook.

    Returns TwiML that connects the call to this server's /media stream. A
    missing PUBLIC_URL is a server configuration error and returns 500.
    """
    logger.info("Received incoming call")
    public_url = os.getenv("PUBLIC_URL")
    if not public_url:
        logger.error("PUBLIC_URL environment variable is not set")
        return PlainTextResponse(
            "Server configuration error: PUBLIC_URL is not set.", status_code=500
        )

    stream_url = build_stream_url(public_url)
    logger.info(f"Connecting call to media stream: {stream_url}")

    response = VoiceResponse()
    connect = Connect()
    connect.stream(url=stream_url)
    response.append(connect)
    return Response(content=str(response), media_type="text/xml")


@app.websocket("/media")
async def media_stream_endpoint(websocket: WebSocket):
    """WebSocket endpoint for Twilio bidirectional Media Streams.

    Handles one call for its whole duration: start/media/stop events in, model
    audio out as media events tagged with the stream id.
    """
    await media_stream_manager.handle_websocket(websocket)


@app.get("/health")
async def health_check():
    """Health check endpoint for monitoring system status.

    Returns:
        dict: Status information including configuration flags and active calls.
    """
    return {
        "status": "healthy",
        "gemini_api_key_configured": bool(get_gemini_api_key()),
        "public_url_configured": bool(os.getenv("PUBLIC_URL")),
        "active_calls": len(media_stream_manager.calls),
    }


@app.get("/")
async def root():
    """Root endpoint to display basic information about the API.

    Returns:
        dict: Basic information about the API and its purpose.
    """
    return {
        "name": "Clinic Voice Agent",
        "description": "Phone appointment booking with Twilio Media Streams and Gemini Live",
        "version": "1.0.0",
        "endpoints": {
            "/voice": "Twilio inbound-call webhook (TwiML)",
            "/media": "WebSocket endpoint for Twilio Media Streams",
            "/health": "Health check endpoint",
        },
    }


if __name__ == "__main__":
    import uvicorn

    logger.info(f"Starting server on http://{HOST}:{PORT}")
    uvicorn.run(
        app,
        host=HOST,
        port=PORT,
        websocket_ping_interval=5,
        websocket_ping_timeout=20,
        http="h11"
    )
