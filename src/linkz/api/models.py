"""Pydantic request models for the Simple Linkz API."""

from typing import Optional

from pydantic import BaseModel

USERNAME_MIN = 3
USERNAME_MAX = 50
PASSWORD_MIN = 8


class CredentialsRequest(BaseModel):
    """Body of POST /api/setup and POST /api/login. Lengths are checked by the route."""

    username: Optional[str] = None
    password: Optional[str] = None
