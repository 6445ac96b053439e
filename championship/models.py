from __future__ import annotations

from sqlalchemy import Boolean, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from championship.database import Base


class Team(Base):
    __tablename__ = "teams"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    short_name: Mapped[str] = mapped_column(String(32), nullable=False)
    color: Mapped[str] = mapped_column(String(32), nullable=False, default="#888888")
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")


class Driver(Base):
    __tablename__ = "drivers"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    number: Mapped[int] = mapped_column(Integer, unique=True, nullable=False)
    # Current team. Results keep their own snapshot in RaceResult.team_id.
    team_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    nationality: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    bio: Mapped[str] = mapped_column(Text, nullable=False, default="")
    photo_url: Mapped[str | None] = mapped_column(String(512), nullable=True)


class Race(Base):
    __tablename__ = "races"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    round: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    circuit: Mapped[str] = mapped_column(String(128), nullable=False, default="")
    date: Mapped[str] = mapped_column(String(10), nullable=False)  # YYYY-MM-DD
    country: Mapped[str] = mapped_column(String(64), nullable=False, default="")

    sessions: Mapped[list["RaceSession"]] = relationship(
        "RaceSession",
        back_populates="race",
        cascade="all, delete-orphan",
        order_by="RaceSession.id",
    )

    @property
    def status(self) -> str:
        return "completed" if self.sessions else "scheduled"


class RaceSession(Base):
    __tablename__ = "race_sessions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    race_id: Mapped[str] = mapped_column(
        ForeignKey("races.id", ondelete="CASCADE"), nullable=False, index=True
    )
    session_type: Mapped[str] = mapped_column(String(64), nullable=False)  # RACE 1, RACE 2, ...
    name: Mapped[str] = mapped_column(String(128), nullable=False)

    race: Mapped[Race] = relationship("Race", back_populates="sessions")
    results: Mapped[list["RaceResult"]] = relationship(
        "RaceResult",
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="RaceResult.id",
    )


class RaceResult(Base):
    __tablename__ = "race_results"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    session_id: Mapped[int] = mapped_column(
        ForeignKey("race_sessions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    # Plain references: drivers and teams are not owned by results and may dangle.
    driver_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    team_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    laps: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_time: Mapped[str] = mapped_column(String(32), nullable=False, default="00:00:000")
    points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    fastest_lap: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    session: Mapped[RaceSession] = relationship("RaceSession", back_populates="results")


class PointsScheduleEntry(Base):
    __tablename__ = "points_schedule"

    position: Mapped[int] = mapped_column(Integer, primary_key=True)
    points: Mapped[int] = mapped_column(Integer, nullable=False)
