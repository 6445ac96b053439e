from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field


class TeamCreate(BaseModel):
    id: Optional[str] = Field(default=None, min_length=1, max_length=64)
    name: str = Field(min_length=1, max_length=128)
    short_name: str = Field(min_length=1, max_length=32)
    color: str = Field(default="#888888", max_length=32)
    description: str = ""


class TeamUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=128)
    short_name: Optional[str] = Field(default=None, min_length=1, max_length=32)
    color: Optional[str] = Field(default=None, max_length=32)
    description: Optional[str] = None


class DriverCreate(BaseModel):
    id: Optional[str] = Field(default=None, min_length=1, max_length=64)
    name: str = Field(min_length=1, max_length=128)
    number: int = Field(ge=0)
    team_id: str = Field(min_length=1, max_length=64)
    nationality: str = ""
    bio: str = ""
    photo_url: Optional[str] = None


class DriverUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=128)
    number: Optional[int] = Field(default=None, ge=0)
    team_id: Optional[str] = Field(default=None, min_length=1, max_length=64)
    nationality: Optional[str] = None
    bio: Optional[str] = None
    photo_url: Optional[str] = None


class ResultIn(BaseModel):
    position: int = Field(ge=1)
    driver_id: str = Field(min_length=1)
    team_id: str = Field(min_length=1)
    laps: int = Field(default=0, ge=0)
    total_time: str = "00:00:000"
    points: int = Field(default=0, ge=0)
    fastest_lap: bool = False


class ResultCreate(ResultIn):
    # Missing points are filled from the schedule.
    points: Optional[int] = Field(default=None, ge=0)


class SessionUpdate(BaseModel):
    session_type: Optional[str] = Field(default=None, min_length=1, max_length=64)
    name: Optional[str] = Field(default=None, min_length=1, max_length=128)


class SessionIn(BaseModel):
    session_type: str = Field(min_length=1, max_length=64)
    name: Optional[str] = Field(default=None, max_length=128)
    results: list[ResultIn] = []


class RaceCreate(BaseModel):
    id: Optional[str] = Field(default=None, min_length=1, max_length=64)
    round: int = Field(ge=1)
    name: str = Field(min_length=1, max_length=128)
    circuit: str = ""
    date: str = Field(pattern=r"^\d{4}-\d{2}-\d{2}$")
    country: str = ""
    sessions: list[SessionIn] = []


class RaceReplace(BaseModel):
    round: int = Field(ge=1)
    name: str = Field(min_length=1, max_length=128)
    circuit: str = ""
    date: str = Field(pattern=r"^\d{4}-\d{2}-\d{2}$")
    country: str = ""
    sessions: list[SessionIn] = []


class ResultUpdate(BaseModel):
    # Raw form values; position and points are coerced by the service layer.
    position: Optional[Any] = None
    points: Optional[Any] = None
    driver_id: Optional[str] = Field(default=None, min_length=1)
    team_id: Optional[str] = Field(default=None, min_length=1)
    laps: Optional[int] = Field(default=None, ge=0)
    total_time: Optional[str] = None
    fastest_lap: Optional[bool] = None


class PointsScheduleReplace(BaseModel):
    schedule: dict[int, int]


class DriverStandingOut(BaseModel):
    rank: int
    driver_id: str
    driver_name: str
    driver_number: int
    team_id: str
    team_name: str
    team_short_name: str
    points: int
    wins: int
    podiums: int


class TeamStandingOut(BaseModel):
    rank: int
    team_id: str
    team_name: str
    team_short_name: str
    team_color: Optional[str] = None
    points: int
    wins: int
    drivers: list[str]
    driver_names: list[str]
