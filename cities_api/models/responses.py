"""Response payloads for the city endpoints."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class CitiesResponse(BaseModel):
    """A list of raw city records."""

    cities: list[dict]


class DistanceResponse(BaseModel):
    """Distance between two cities, in kilometers."""

    model_config = ConfigDict(populate_by_name=True)

    distance: float
    unit: Literal["km"] = "km"
    from_: dict = Field(alias="from")
    to: dict


class AreaAcceptedResponse(BaseModel):
    """Handle for polling an area search."""

    resultsUrl: str
