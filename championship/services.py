from __future__ import annotations

import logging
import re
from datetime import date
from typing import Any, Optional

from fastapi import HTTPException
from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session, selectinload

from championship.config import settings
from championship.models import Driver, PointsScheduleEntry, Race, RaceResult, RaceSession, Team
from championship.rules import (
    UNKNOWN_LABEL,
    coerce_points,
    coerce_position,
    compute_driver_standings,
    compute_team_standings,
    normalize_schedule,
    points_for_position,
    seed_session_results,
    session_label,
    suggest_points,
)


logger = logging.getLogger(__name__)

DRIVER_FIELDS = ("name", "number", "team_id", "nationality", "bio", "photo_url")
TEAM_FIELDS = ("name", "short_name", "color", "description")
RACE_FIELDS = ("round", "name", "circuit", "date", "country")
RESULT_FIELDS = ("driver_id", "team_id", "laps", "total_time", "fastest_lap")


def get_or_404(db: Session, model: Any, obj_id: Any, label: str):
    obj = db.get(model, obj_id)
    if not obj:
        raise HTTPException(status_code=404, detail=f"{label} not found")
    return obj


def get_team_or_404(db: Session, team_id: str) -> Team:
    return get_or_404(db, Team, team_id, "Team")


def get_driver_or_404(db: Session, driver_id: str) -> Driver:
    return get_or_404(db, Driver, driver_id, "Driver")


def get_race_or_404(db: Session, race_id: str) -> Race:
    return get_or_404(db, Race, race_id, "Race")


def get_session_or_404(db: Session, session_id: int) -> RaceSession:
    return get_or_404(db, RaceSession, session_id, "Session")


def get_result_or_404(db: Session, result_id: int) -> RaceResult:
    return get_or_404(db, RaceResult, result_id, "Result")


def _slugify(text: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", text.strip().lower()).strip("-")
    return slug or "item"


def _unique_id(db: Session, model: Any, base: str) -> str:
    candidate = base
    suffix = 2
    while db.get(model, candidate) is not None:
        candidate = f"{base}-{suffix}"
        suffix += 1
    return candidate


def _claim_id(db: Session, model: Any, requested: Optional[str], fallback_base: str, label: str) -> str:
    if requested:
        requested = requested.strip()
        if db.get(model, requested) is not None:
            raise HTTPException(status_code=400, detail=f"{label} id already exists")
        return requested
    return _unique_id(db, model, fallback_base)


def team_to_dict(team: Team) -> dict[str, Any]:
    return {
        "id": team.id,
        "name": team.name,
        "short_name": team.short_name,
        "color": team.color,
        "description": team.description,
    }


def driver_to_dict(driver: Driver) -> dict[str, Any]:
    return {
        "id": driver.id,
        "name": driver.name,
        "number": driver.number,
        "team_id": driver.team_id,
        "nationality": driver.nationality,
        "bio": driver.bio,
        "photo_url": driver.photo_url,
    }


def result_to_dict(result: RaceResult) -> dict[str, Any]:
    return {
        "id": result.id,
        "session_id": result.session_id,
        "position": result.position,
        "driver_id": result.driver_id,
        "team_id": result.team_id,
        "laps": result.laps,
        "total_time": result.total_time,
        "points": result.points,
        "fastest_lap": bool(result.fastest_lap),
    }


def session_to_dict(session: RaceSession) -> dict[str, Any]:
    return {
        "id": session.id,
        "race_id": session.race_id,
        "session_type": session.session_type,
        "name": session.name,
        "results": [result_to_dict(r) for r in session.results],
    }


def race_to_dict(race: Race, include_sessions: bool = True) -> dict[str, Any]:
    row: dict[str, Any] = {
        "id": race.id,
        "round": race.round,
        "name": race.name,
        "circuit": race.circuit,
        "date": race.date,
        "country": race.country,
        "status": race.status,
        "session_count": len(race.sessions),
    }
    if include_sessions:
        row["sessions"] = [session_to_dict(s) for s in race.sessions]
    return row


def list_teams(db: Session) -> list[Team]:
    return list(db.scalars(select(Team).order_by(Team.name.asc(), Team.id.asc())).all())


def list_drivers(db: Session) -> list[Driver]:
    return list(db.scalars(select(Driver).order_by(Driver.number.asc(), Driver.id.asc())).all())


def list_races(db: Session) -> list[Race]:
    query = (
        select(Race)
        .options(selectinload(Race.sessions).selectinload(RaceSession.results))
        .order_by(Race.round.asc(), Race.id.asc())
    )
    return list(db.scalars(query).all())


def points_schedule(db: Session) -> dict[int, int]:
    rows = db.scalars(select(PointsScheduleEntry).order_by(PointsScheduleEntry.position.asc())).all()
    if not rows:
        return normalize_schedule(settings.points_schedule)
    return {row.position: row.points for row in rows}


def replace_points_schedule(db: Session, schedule: dict[Any, Any]) -> dict[int, int]:
    try:
        normalized = normalize_schedule(schedule)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    db.execute(delete(PointsScheduleEntry))
    for position, points in normalized.items():
        db.add(PointsScheduleEntry(position=position, points=points))
    db.flush()
    return normalized


def lookup_points(db: Session, raw_position: Any) -> dict[str, Any]:
    position = coerce_position(raw_position)
    return {"position": position, "points": suggest_points(points_schedule(db), raw_position)}


def create_team(db: Session, data: dict[str, Any]) -> Team:
    team_id = _claim_id(db, Team, data.get("id"), _slugify(data["name"]), "Team")
    team = Team(id=team_id, **{k: data[k] for k in TEAM_FIELDS if data.get(k) is not None})
    db.add(team)
    db.flush()
    return team


def update_team(db: Session, team_id: str, changes: dict[str, Any]) -> Team:
    team = get_team_or_404(db, team_id)
    for key in TEAM_FIELDS:
        if key in changes and changes[key] is not None:
            setattr(team, key, changes[key])
    db.flush()
    return team


def delete_team(db: Session, team_id: str) -> None:
    # Drivers and results keep their references; they degrade to unresolved.
    team = get_team_or_404(db, team_id)
    db.delete(team)
    db.flush()


def _require_team(db: Session, team_id: str) -> None:
    if db.get(Team, team_id) is None:
        raise HTTPException(status_code=400, detail=f"Unknown team: {team_id}")


def _require_number_free(db: Session, number: int, driver_id: Optional[str] = None) -> None:
    existing = db.scalar(select(Driver).where(Driver.number == number))
    if existing and existing.id != driver_id:
        raise HTTPException(status_code=400, detail="Driver number already exists")


def create_driver(db: Session, data: dict[str, Any]) -> Driver:
    _require_team(db, data["team_id"])
    _require_number_free(db, data["number"])
    driver_id = _claim_id(db, Driver, data.get("id"), _slugify(data["name"]), "Driver")
    driver = Driver(id=driver_id, **{k: data[k] for k in DRIVER_FIELDS if data.get(k) is not None})
    db.add(driver)
    db.flush()
    return driver


def on_driver_team_changed(db: Session, driver_id: str, old_team_id: str, new_team_id: str) -> int:
    """
    Rewrite the team snapshot on every result of the driver, across all races.

    This is retroactive on purpose: there is no notion of "team as of a
    date", so a transfer recolors the driver's whole history. Returns the
    number of results rewritten.
    """
    if old_team_id == new_team_id:
        return 0
    outcome = db.execute(
        update(RaceResult)
        .where(RaceResult.driver_id == driver_id)
        .values(team_id=new_team_id)
        .execution_options(synchronize_session="evaluate")
    )
    rewritten = outcome.rowcount or 0
    logger.info(
        "Reassigned %d results of driver %s from team %s to %s",
        rewritten,
        driver_id,
        old_team_id,
        new_team_id,
    )
    return rewritten


def update_driver(db: Session, driver_id: str, changes: dict[str, Any]) -> Driver:
    driver = get_driver_or_404(db, driver_id)
    new_team_id = changes.get("team_id")
    if new_team_id is not None:
        _require_team(db, new_team_id)
    if changes.get("number") is not None:
        _require_number_free(db, changes["number"], driver_id=driver.id)

    old_team_id = driver.team_id
    for key in DRIVER_FIELDS:
        if key in changes and (changes[key] is not None or key == "photo_url"):
            setattr(driver, key, changes[key])
    db.flush()

    if new_team_id is not None and new_team_id != old_team_id:
        on_driver_team_changed(db, driver.id, old_team_id, new_team_id)
    return driver


def delete_driver(db: Session, driver_id: str) -> None:
    # Results are not owned by the driver and stay in place.
    driver = get_driver_or_404(db, driver_id)
    db.delete(driver)
    db.flush()


def _build_session(race: Race, session_data: dict[str, Any]) -> RaceSession:
    session = RaceSession(
        session_type=session_data["session_type"],
        name=session_data.get("name") or session_data["session_type"],
    )
    for result_data in session_data.get("results") or []:
        session.results.append(
            RaceResult(
                position=result_data["position"],
                driver_id=result_data["driver_id"],
                team_id=result_data["team_id"],
                laps=result_data.get("laps", 0),
                total_time=result_data.get("total_time", "00:00:000"),
                points=result_data.get("points", 0),
                fastest_lap=bool(result_data.get("fastest_lap", False)),
            )
        )
    race.sessions.append(session)
    return session


def create_race(db: Session, data: dict[str, Any]) -> Race:
    race_id = _claim_id(db, Race, data.get("id"), f"rd{data['round']}", "Race")
    race = Race(id=race_id, **{k: data[k] for k in RACE_FIELDS if k in data})
    db.add(race)
    for session_data in data.get("sessions") or []:
        _build_session(race, session_data)
    db.flush()
    return race


def replace_race(db: Session, race_id: str, data: dict[str, Any]) -> Race:
    """
    Overwrite race fields and swap its sessions/results for the submitted ones.
    Runs inside the caller's transaction, so a failure leaves the race untouched.
    """
    race = get_race_or_404(db, race_id)
    for key in RACE_FIELDS:
        if key in data:
            setattr(race, key, data[key])

    race.sessions.clear()
    db.flush()
    for session_data in data.get("sessions") or []:
        _build_session(race, session_data)
    db.flush()

    logger.info("Replaced race %s with %d sessions", race.id, len(race.sessions))
    return race


def delete_race(db: Session, race_id: str) -> None:
    race = get_race_or_404(db, race_id)
    db.delete(race)
    db.flush()


def next_round(db: Session) -> int:
    current = db.scalar(select(func.max(Race.round)))
    return int(current) + 1 if current is not None else 1


def draft_race(db: Session) -> dict[str, Any]:
    round_number = next_round(db)
    drivers = list_drivers(db)
    label = session_label(1)
    return {
        "id": f"rd{round_number}-tbd",
        "round": round_number,
        "name": f"Rd.{round_number} TBD",
        "circuit": "",
        "date": date.today().isoformat(),
        "country": settings.default_country,
        "sessions": [
            {"session_type": label, "name": label, "results": seed_session_results(drivers)}
        ],
    }


def add_session(db: Session, race_id: str) -> RaceSession:
    race = get_race_or_404(db, race_id)
    label = session_label(len(race.sessions) + 1)
    session = _build_session(
        race,
        {"session_type": label, "name": label, "results": seed_session_results(list_drivers(db))},
    )
    db.flush()
    return session


def delete_session(db: Session, session_id: int) -> None:
    session = get_session_or_404(db, session_id)
    race = session.race
    race.sessions.remove(session)
    db.flush()


def update_session(db: Session, session_id: int, changes: dict[str, Any]) -> RaceSession:
    session = get_session_or_404(db, session_id)
    for key in ("session_type", "name"):
        if changes.get(key) is not None:
            setattr(session, key, changes[key])
    db.flush()
    return session


def add_result(db: Session, session_id: int, data: dict[str, Any]) -> RaceResult:
    """Append one result to a session; points default to the schedule value for its position."""
    session = get_session_or_404(db, session_id)
    points = data.get("points")
    if points is None:
        points = points_for_position(points_schedule(db), data["position"])
    result = RaceResult(
        position=data["position"],
        driver_id=data["driver_id"],
        team_id=data["team_id"],
        laps=data.get("laps", 0),
        total_time=data.get("total_time", "00:00:000"),
        points=points,
        fastest_lap=bool(data.get("fastest_lap", False)),
    )
    session.results.append(result)
    db.flush()
    return result


def update_result(db: Session, result_id: int, changes: dict[str, Any]) -> RaceResult:
    """
    Apply an edit to a single result.

    A changed position re-derives points from the schedule and overwrites the
    stored value, unless the same edit carries explicit points.
    """
    result = get_result_or_404(db, result_id)

    if "position" in changes:
        position = coerce_position(changes["position"])
        if position is None:
            raise HTTPException(
                status_code=400,
                detail="A position (positive whole number) is required to store a result",
            )
        if position != result.position:
            result.position = position
            result.points = points_for_position(points_schedule(db), position)

    if changes.get("points") is not None:
        result.points = coerce_points(changes["points"], default=result.points)

    for key in RESULT_FIELDS:
        if changes.get(key) is not None:
            setattr(result, key, changes[key])
    db.flush()
    return result


def delete_result(db: Session, result_id: int) -> None:
    result = get_result_or_404(db, result_id)
    result.session.results.remove(result)
    db.flush()


def driver_standings(db: Session) -> list[dict[str, Any]]:
    rows: list[dict[str, Any]] = []
    standings = compute_driver_standings(list_drivers(db), list_teams(db), list_races(db))
    for idx, standing in enumerate(standings, start=1):
        rows.append(
            {
                "rank": idx,
                "driver_id": standing.driver.id,
                "driver_name": standing.driver.name,
                "driver_number": standing.driver.number,
                "team_id": standing.team.id,
                "team_name": standing.team.name,
                "team_short_name": standing.team.short_name,
                "points": standing.points,
                "wins": standing.wins,
                "podiums": standing.podiums,
            }
        )
    return rows


def team_standings(db: Session) -> list[dict[str, Any]]:
    drivers = list_drivers(db)
    names = {d.id: d.name for d in drivers}
    standings = compute_team_standings(drivers, list_teams(db), list_races(db))

    rows: list[dict[str, Any]] = []
    for idx, standing in enumerate(standings, start=1):
        team = standing.team
        rows.append(
            {
                "rank": idx,
                "team_id": standing.team_id,
                "team_name": team.name if team else UNKNOWN_LABEL,
                "team_short_name": team.short_name if team else UNKNOWN_LABEL,
                "team_color": team.color if team else None,
                "points": standing.points,
                "wins": standing.wins,
                "drivers": standing.drivers,
                "driver_names": [names.get(d, UNKNOWN_LABEL) for d in standing.drivers],
            }
        )
    return rows


def _results_by_race(races: list[Race], keep) -> list[dict[str, Any]]:
    grouped: list[dict[str, Any]] = []
    for race in races:
        results = [
            {**result_to_dict(result), "session_name": session.name}
            for session in race.sessions
            for result in session.results
            if keep(result)
        ]
        if results:
            grouped.append({"race": race_to_dict(race, include_sessions=False), "results": results})
    return grouped


def driver_results(db: Session, driver_id: str) -> list[dict[str, Any]]:
    get_driver_or_404(db, driver_id)
    return _results_by_race(list_races(db), lambda r: r.driver_id == driver_id)


def team_results(db: Session, team_id: str) -> list[dict[str, Any]]:
    get_team_or_404(db, team_id)
    return _results_by_race(list_races(db), lambda r: r.team_id == team_id)


def driver_profile(db: Session, driver_id: str) -> dict[str, Any]:
    driver = get_driver_or_404(db, driver_id)
    team = db.get(Team, driver.team_id)
    standing = next((row for row in driver_standings(db) if row["driver_id"] == driver.id), None)
    return {
        "driver": driver_to_dict(driver),
        "team": team_to_dict(team) if team else None,
        "championship_rank": standing["rank"] if standing else None,
        "points": standing["points"] if standing else 0,
        "wins": standing["wins"] if standing else 0,
        "podiums": standing["podiums"] if standing else 0,
    }
