"""
Run script for starting the Clinic Voice Agent server.

This script configures and starts the FastAPI server with WebSocket settings
suited to real-time call audio between Twilio and Gemini Live.

Usage:
    python run.py [--port PORT] [--host HOST] [--log-level LEVEL]
"""

import argparse
import os
import sys
from pathlib import Path

import dotenv
import uvicorn

sys.path.append(str(Path(__file__).parent))

dotenv.load_dotenv(Path(__file__).parent / ".env")

from clinic_agent.config.logging_config import configure_logging  # noqa: E402

logger = configure_logging()


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Start the Clinic Voice Agent server"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=int(os.getenv("PORT", "8080")),
        help="Port to run the server on (default: 8080 or PORT env var)",
    )
    parser.add_argument(
        "--host",
        default=os.getenv("HOST", "0.0.0.0"),
        help="Host to bind the server to (default: 0.0.0.0 or HOST env var)",
    )
    parser.add_argument(
        "--log-level",
        default=os.getenv("LOG_LEVEL", "INFO").upper(),
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: INFO or LOG_LEVEL env var)",
    )
    return parser.parse_args(argv)


def main():
    """Main entry point for starting the server."""
    args = parse_args()

    if not (os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY")):
        logger.error("GEMINI_API_KEY environment variable not set")
        print("Error: GEMINI_API_KEY environment variable is required")
        sys.exit(1)

    public_url = os.getenv("PUBLIC_URL")
    logger.info(f"Starting server on http://{args.host}:{args.port}")
    logger.info(f"Log level: {args.log_level}")
    if public_url:
        logger.info(f"Twilio voice webhook URL: {public_url.rstrip('/')}/voice")
    else:
        logger.warning("PUBLIC_URL is not set; Twilio cannot be routed to the media stream")

    uvicorn.run(
        "clinic_agent.main:app",
        host=args.host,
        port=args.port,
        log_level=args.log_level.lower(),
        http="h11",
        # We have our own call logging
        access_log=False,
        reload=os.getenv("ENV", "production").lower() == "development",
    )


if __name__ == "__main__":
    main()
