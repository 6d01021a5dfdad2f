"""Health and statistics schemas."""
from pydantic import BaseModel


class StatusResponse(BaseModel):
    redis: bool
    db: bool


class StatsResponse(BaseModel):
    users: int
    files: int
