"""
Models for function calls requested by the speech model.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class ToolInvocation(BaseModel):
    """One function call from the model, awaiting exactly one correlated result."""

    key: str = Field(..., description="Correlation key, unique within the session")
    id: str = Field("", description="Invocation identifier assigned by the model, may be empty")
    name: str = Field(..., description="Name of the requested function")
    args: Dict[str, Any] = Field(default_factory=dict)
    result: Optional[Any] = None


class ToolError(BaseModel):
    """Error payload returned to the model instead of a result."""

    error: str
