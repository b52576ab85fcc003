"""
Function declarations offered to the Gemini Live model.
"""

from google.genai import types

from clinic_agent.config.constants import (
    TOOL_BOOK_APPOINTMENT,
    TOOL_LIST_AVAILABLE_SLOTS,
    TOOL_LIST_CATEGORIES,
)

LIST_CATEGORIES = types.FunctionDeclaration(
    name=TOOL_LIST_CATEGORIES,
    description=(
        "Get the list of medical departments (categories) available at the clinic, "
        "with their IDs. Use this first to find out which departments exist and to "
        "get the ID needed for the following steps."
    ),
    parameters=types.Schema(type=types.Type.OBJECT, properties={}),
)

LIST_AVAILABLE_SLOTS = types.FunctionDeclaration(
    name=TOOL_LIST_AVAILABLE_SLOTS,
    description=(
        "Get the free time slots for a department (category) within a date range. "
        "Use the category ID obtained earlier."
    ),
    parameters=types.Schema(
        type=types.Type.OBJECT,
        properties={
            "categoryId": types.Schema(
                type=types.Type.NUMBER,
                description="Numeric ID of the department to search.",
            ),
            "startDate": types.Schema(
                type=types.Type.STRING,
                description='Start of the search range, YYYY-MM-DD. For example "2024-05-21".',
            ),
            "endDate": types.Schema(
                type=types.Type.STRING,
                description="End of the search range, YYYY-MM-DD. Usually the same as the start date.",
            ),
        },
        required=["categoryId", "startDate", "endDate"],
    ),
)

BOOK_APPOINTMENT = types.FunctionDeclaration(
    name=TOOL_BOOK_APPOINTMENT,
    description=(
        "Create the final appointment once ALL details have been collected and "
        "confirmed: department, date, time, name, CNP and phone. Call this only "
        "once, at the end of the conversation."
    ),
    parameters=types.Schema(
        type=types.Type.OBJECT,
        properties={
            "categoryId": types.Schema(
                type=types.Type.NUMBER,
                description="Numeric ID of the chosen department.",
            ),
            "patientName": types.Schema(
                type=types.Type.STRING,
                description="The patient's full name.",
            ),
            "personalIdentificationNumber": types.Schema(
                type=types.Type.STRING,
                description="The patient's personal identification number (CNP). Required.",
            ),
            "phone": types.Schema(
                type=types.Type.STRING,
                description="The patient's phone number.",
            ),
            "appointmentDate": types.Schema(
                type=types.Type.STRING,
                description="Chosen appointment date, YYYY-MM-DD.",
            ),
            "startTime": types.Schema(
                type=types.Type.STRING,
                description='Chosen start time exactly as returned by listAvailableSlots (e.g. "09:00").',
            ),
        },
        required=[
            "categoryId",
            "patientName",
            "personalIdentificationNumber",
            "phone",
            "appointmentDate",
            "startTime",
        ],
    ),
)

CLINIC_TOOLS = types.Tool(
    function_declarations=[LIST_CATEGORIES, LIST_AVAILABLE_SLOTS, BOOK_APPOINTMENT]
)
