"""
Request and response schemas for place creation.

Field names on the wire are camelCase (userId, displayName, placeId);
the Python attributes are snake_case and mapped through aliases.
"""

from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictInt, StrictStr

# Passed through as received; no coercion between numbers and strings
UserId = Union[StrictInt, StrictFloat, StrictStr]


class CreatePlaceRequest(BaseModel):
    """
    Body of POST /create_place.

    Both fields are optional at the schema level so that a missing value is
    reported by the handler as a 400 rather than a schema error.
    """

    model_config = ConfigDict(populate_by_name=True)

    user_id: Optional[UserId] = Field(
        default=None,
        alias="userId",
        description="Caller-supplied user identifier"
    )
    display_name: Optional[str] = Field(
        default=None,
        alias="displayName",
        description="Name used to title the new place"
    )

    @property
    def is_complete(self) -> bool:
        """Both userId and displayName are present and non-empty."""
        return bool(self.user_id) and bool(self.display_name)


class CreatePlaceResponse(BaseModel):
    """Successful place creation."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    place_id: int = Field(..., alias="placeId")
    user_id: UserId = Field(..., alias="userId")
    display_name: str = Field(..., alias="displayName")


class ErrorResponse(BaseModel):
    """Error body shared by every failing response."""

    error: str = Field(..., min_length=1, description="Error category")
    message: str = Field(..., description="Human-readable explanation")
    details: Optional[Any] = Field(
        default=None,
        description="Upstream payload or underlying error message"
    )


class HealthResponse(BaseModel):
    """Liveness probe body."""

    status: str = "ok"
    message: str
