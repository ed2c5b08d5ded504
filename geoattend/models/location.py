from typing import Optional

from pydantic import BaseModel, Field


class Coordinates(BaseModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)


class ReportedLocation(Coordinates):
    """Device position sent by the mobile client; address is its own reverse-geocode, if any."""
    address: Optional[str] = None
