"""
Dispatches function calls requested by the speech model to clinic operations.

Every call produces a result payload: backend failures, unknown function names
and missing arguments become ``{"error": ...}`` so the model can tell the caller
what went wrong and the conversation can continue.
"""

import logging
from typing import Any, Awaitable, Callable, Dict

from clinic_agent.config.constants import (
    LOGGER_NAME,
    TOOL_BOOK_APPOINTMENT,
    TOOL_LIST_AVAILABLE_SLOTS,
    TOOL_LIST_CATEGORIES,
)
from clinic_agent.models.tool_schemas import ToolError
from clinic_agent.services.clinic_client import ClinicService

logger = logging.getLogger(LOGGER_NAME)

ToolFunc = Callable[[Dict[str, Any]], Awaitable[Any]]


class MissingArgumentError(ValueError):
    """Raised when the model leaves out a required tool argument."""

    def __init__(self, argument: str):
        super().__init__(f"Missing argument: {argument}")
        self.argument = argument


def require(args: Dict[str, Any], name: str) -> Any:
    """Read a required argument from the model's call."""
    if name not in args:
        raise MissingArgumentError(name)
    return args[name]


class ToolDispatcher:
    """Maps tool names to ClinicService operations."""

    def __init__(self, clinic_service: ClinicService):
        self.clinic_service = clinic_service
        self.handlers: Dict[str, ToolFunc] = {
            TOOL_LIST_CATEGORIES: self._list_categories,
            TOOL_LIST_AVAILABLE_SLOTS: self._list_available_slots,
            TOOL_BOOK_APPOINTMENT: self._book_appointment,
        }

    async def dispatch(self, name: str, args: Dict[str, Any]) -> Any:
        """
        Run one tool call.

        Args:
            name: Function name from the model
            args: Function arguments from the model

        Returns:
            The operation's result, or an error payload; never raises
        """
        handler = self.handlers.get(name)
        if handler is None:
            logger.warning(f"Model requested unknown tool: {name}")
            return ToolError(error=f"Unknown function: {name}").model_dump()

        try:
            return await handler(args or {})
        except MissingArgumentError as e:
            logger.warning(f"Tool {name} called without argument {e.argument}")
            return ToolError(error=str(e)).model_dump()
        except Exception as e:
            logger.error(f"Error executing tool {name}: {e}", exc_info=True)
            return ToolError(error=str(e)).model_dump()

    async def _list_categories(self, args: Dict[str, Any]) -> Any:
        return await self.clinic_service.get_categories()

    async def _list_available_slots(self, args: Dict[str, Any]) -> Any:
        category_id = require(args, "categoryId")
        start_date = require(args, "startDate")
        end_date = require(args, "endDate")
        return await self.clinic_service.get_available_slots(category_id, start_date, end_date)

    async def _book_appointment(self, args: Dict[str, Any]) -> Any:
        booking = {
            "category_id": require(args, "categoryId"),
            "patient_name": require(args, "patientName"),
            "personal_id": require(args, "personalIdentificationNumber"),
            "phone": args.get("phone", ""),
            "appointment_date": require(args, "appointmentDate"),
            "start_time": require(args, "startTime"),
        }
        return await self.clinic_service.book_appointment(**booking)
