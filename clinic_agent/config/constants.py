"""
Constants and configuration values used throughout the application.

This module defines constants that are used across different parts of the application,
providing a centralized location for configuration values and making it easier to
maintain consistent naming throughout the codebase.
"""

# Logger name used throughout the application
LOGGER_NAME = "clinic_voice_agent"

# Default Gemini Live model for speech-to-speech sessions
DEFAULT_LIVE_MODEL = "gemini-2.5-flash-native-audio-preview-12-2025"

# Audio format constants
TELEPHONY_SAMPLE_RATE = 8000
MODEL_INPUT_SAMPLE_RATE = 16000
MODEL_INPUT_MIME_TYPE = "audio/pcm;rate=16000"

# Twilio Media Streams event names
EVENT_CONNECTED = "connected"
EVENT_START = "start"
EVENT_MEDIA = "media"
EVENT_STOP = "stop"
EVENT_MARK = "mark"
EVENT_DTMF = "dtmf"

# Items placed on a model session's output queue
OUTPUT_AUDIO = "audio"
OUTPUT_INTERRUPTED = "interrupted"

# Conversation start policies
START_POLICY_GREET = "greet"
START_POLICY_LISTEN = "listen"
DEFAULT_START_POLICY = START_POLICY_GREET

# Clinic booking backend
DEFAULT_CLINIC_API_BASE_URL = "https://dev.startmanager.ro/appointmentsmanager_api/api"
DEFAULT_CLINIC_PUBLIC_GUID = "795ab5b1-c687-4248-b3f6-aff091e11b19"
DEFAULT_CLINIC_API_TIMEOUT = 15.0  # seconds
APPOINTMENT_STATUS_BOOKED = 1

# Tool names exposed to the speech model
TOOL_LIST_CATEGORIES = "listCategories"
TOOL_LIST_AVAILABLE_SLOTS = "listAvailableSlots"
TOOL_BOOK_APPOINTMENT = "bookAppointment"
