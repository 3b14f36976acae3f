"""Wire models for payloads the client itself has to understand."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict


class SpotifyModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class RegularErrorObject(SpotifyModel):
    message: str
    # unvalidated: only message decides whether the envelope parses
    status: Any = None


class RegularError(SpotifyModel):
    """Standard Spotify error envelope: ``{"error": {"message": ..., "status": ...}}``."""

    error: RegularErrorObject
