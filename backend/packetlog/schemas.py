from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class PacketOut(BaseModel):
    id: int
    timestamp: datetime
    message: str
    frequency: Optional[float] = None
    model_config = ConfigDict(from_attributes=True)


class PacketPage(BaseModel):
    packets: list[PacketOut]
    total: int
    page: int
    pages: int


class ErrorOut(BaseModel):
    error: str


class LivePacket(BaseModel):
    """What the live feed pushes for each newly stored packet."""

    timestamp: datetime
    message: str
    frequency: Optional[float] = None
