"""
Response DTOs for authentication endpoints.

LoginResponse   — POST /auth/login  (200)
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class LoginResponse(BaseModel):
    """Response body for POST /auth/login (200)."""

    model_config = ConfigDict(populate_by_name=True)

    token: str
