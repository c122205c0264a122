"""
Shared Pydantic schemas for error payloads.

Documented on each route so the OpenAPI schema shows the error contract,
not just the happy path.
"""

from typing import List

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Standard error envelope returned by all non-validation error handlers."""

    error: bool = Field(default=True, description="Always ``true`` for errors")
    kind: str = Field(
        ...,
        description="Machine-readable error kind",
        examples=["NotFound", "StoreUnavailable"],
    )
    message: str = Field(
        ...,
        description="Human-readable error description",
        examples=["Investment with id 'abc' not found"],
    )


class ValidationErrorDetail(BaseModel):
    """Single field-level validation failure."""

    field: str = Field(
        ...,
        description="Path to the invalid field",
        examples=["body -> investment_amount"],
    )
    message: str = Field(
        ...,
        description="Explanation of the validation failure",
        examples=["Input should be greater than or equal to 0"],
    )


class ValidationErrorResponse(BaseModel):
    """Response body for 422 ``InvalidArgument`` caused by request validation."""

    error: bool = Field(default=True, description="Always ``true`` for errors")
    kind: str = Field(default="InvalidArgument", description="Machine-readable error kind")
    message: str = Field(default="Validation failed", description="Summary message")
    details: List[ValidationErrorDetail] = Field(..., description="Per-field validation failures")
