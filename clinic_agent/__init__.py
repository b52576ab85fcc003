"""
Clinic Voice Agent - Twilio Media Streams to Gemini Live bridge

Callers phone the clinic and book an appointment by talking to a Gemini Live
speech-to-speech model. The application answers Twilio's inbound-call webhook,
accepts the call's bidirectional media stream, and relays audio both ways in
real time while the model uses three tools against the clinic's booking backend.

Architecture Overview:
- FastAPI server exposing the /voice webhook and the /media WebSocket
- Per-call CallSession owning one Gemini Live session
- mu-law <-> linear16 transcoding and 8 kHz <-> 16 kHz resampling per frame
- Tool dispatch to the clinic backend with an error payload for every failure

Key Components:
- audio: G.711 mu-law codec and sample rate conversion
- bot: Gemini Live session, tool declarations and prompts
- config: Constants and logging setup
- handlers: Twilio event handlers and the tool dispatcher
- models: Twilio event schemas, CallSession, ToolInvocation
- services: Clinic booking backend client
- websocket_manager: Per-connection relay between Twilio and Gemini Live

Getting Started:
1. Set up environment variables (or a .env file):
   - GEMINI_API_KEY: Your Gemini API key
   - PUBLIC_URL: Public https URL of this server (used in the TwiML stream URL)
   - CLINIC_API_BASE_URL / CLINIC_PUBLIC_GUID: Booking backend (defaults provided)
   - CONVERSATION_START_POLICY: "greet" (default) or "listen"
   - PORT, HOST, LOG_LEVEL

2. Start the server:
   ```bash
   python run.py
   ```

3. Point the Twilio number's voice webhook at: https://your-host/voice
"""
