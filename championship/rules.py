from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence


PODIUM_POSITIONS = 3
UNKNOWN_LABEL = "Unknown"


@dataclass(frozen=True)
class DriverStanding:
    driver: Any
    team: Any
    points: int
    wins: int
    podiums: int


@dataclass(frozen=True)
class TeamStanding:
    team_id: str
    team: Any  # None when team_id does not resolve
    points: int
    wins: int
    drivers: List[str] = field(default_factory=list)


@dataclass
class _Tally:
    points: int = 0
    wins: int = 0
    podiums: int = 0
    drivers: Dict[str, None] = field(default_factory=dict)


def _require_collection(name: str, value: Any) -> None:
    if isinstance(value, (str, bytes, Mapping)) or not isinstance(value, Iterable):
        raise TypeError(f"{name} must be a collection, got {type(value).__name__}")


def _iter_results(races: Iterable[Any]):
    for race in races:
        for session in race.sessions or ():
            for result in session.results or ():
                yield result


def is_win(position: Optional[int]) -> bool:
    return position == 1


def is_podium(position: Optional[int]) -> bool:
    return position is not None and 1 <= position <= PODIUM_POSITIONS


def compute_driver_standings(
    drivers: Iterable[Any],
    teams: Iterable[Any],
    races: Iterable[Any],
) -> List[DriverStanding]:
    """
    Fold every result of every session of every race by driver id.

    The team on each standing is the driver's *current* team, not the
    snapshot stored on the results. Drivers that do not resolve, or whose
    current team does not resolve, are left out.

    Ordering: points, then wins, then podiums, all descending. Exact ties
    keep first-appearance order (stable sort over an insertion-ordered dict).
    """
    for name, value in (("drivers", drivers), ("teams", teams), ("races", races)):
        _require_collection(name, value)

    tallies: Dict[str, _Tally] = {}
    for result in _iter_results(races):
        tally = tallies.setdefault(result.driver_id, _Tally())
        tally.points += int(result.points or 0)
        if is_win(result.position):
            tally.wins += 1
        if is_podium(result.position):
            tally.podiums += 1

    drivers_by_id = {d.id: d for d in drivers}
    teams_by_id = {t.id: t for t in teams}

    standings: List[DriverStanding] = []
    for driver_id, tally in tallies.items():
        driver = drivers_by_id.get(driver_id)
        team = teams_by_id.get(driver.team_id) if driver is not None else None
        if driver is None or team is None:
            continue
        standings.append(
            DriverStanding(
                driver=driver,
                team=team,
                points=tally.points,
                wins=tally.wins,
                podiums=tally.podiums,
            )
        )

    standings.sort(key=lambda s: (-s.points, -s.wins, -s.podiums))
    return standings


def compute_team_standings(
    drivers: Iterable[Any],
    teams: Iterable[Any],
    races: Iterable[Any],
) -> List[TeamStanding]:
    """
    Fold every result by its snapshot team id.

    ``drivers`` is not consulted: attribution follows ``result.team_id``.
    Unresolved team ids are kept with ``team=None``.
    Ordering: points, then wins, descending; exact ties keep first-appearance order.
    """
    for name, value in (("drivers", drivers), ("teams", teams), ("races", races)):
        _require_collection(name, value)

    tallies: Dict[str, _Tally] = {}
    for result in _iter_results(races):
        tally = tallies.setdefault(result.team_id, _Tally())
        tally.points += int(result.points or 0)
        if is_win(result.position):
            tally.wins += 1
        tally.drivers.setdefault(result.driver_id, None)

    teams_by_id = {t.id: t for t in teams}
    standings = [
        TeamStanding(
            team_id=team_id,
            team=teams_by_id.get(team_id),
            points=tally.points,
            wins=tally.wins,
            drivers=list(tally.drivers),
        )
        for team_id, tally in tallies.items()
    ]
    standings.sort(key=lambda s: (-s.points, -s.wins))
    return standings


def _coerce_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        text = value.strip()
        if text.isdigit():
            return int(text)
    return None


def coerce_position(value: Any) -> Optional[int]:
    """
    Explicit coercion for a position coming from an edit form.
    Returns None for anything that is not a positive whole number.
    """
    position = _coerce_int(value)
    if position is None or position < 1:
        return None
    return position


def coerce_points(value: Any, default: int = 0) -> int:
    points = _coerce_int(value)
    if points is None or points < 0:
        return default
    return points


def points_for_position(schedule: Mapping[Any, Any], position: Optional[int]) -> int:
    """
    Points the schedule awards for an exact position, 0 when it has no entry.
    Keys may be ints or numeric strings.
    """
    if position is None:
        return 0
    if position in schedule:
        return int(schedule[position])
    key = str(position)
    if key in schedule:
        return int(schedule[key])
    return 0


def suggest_points(schedule: Mapping[Any, Any], raw_position: Any) -> int:
    """Edit-time default: malformed or missing positions suggest 0 points."""
    return points_for_position(schedule, coerce_position(raw_position))


def normalize_schedule(schedule: Mapping[Any, Any]) -> Dict[int, int]:
    normalized: Dict[int, int] = {}
    for key, value in schedule.items():
        position = coerce_position(key)
        if position is None:
            raise ValueError(f"Invalid schedule position: {key!r}")
        points = _coerce_int(value)
        if points is None or points < 0:
            raise ValueError(f"Invalid points for position {position}: {value!r}")
        normalized[position] = points
    return dict(sorted(normalized.items()))


def session_label(session_number: int) -> str:
    return f"RACE {session_number}"


def seed_session_results(drivers: Sequence[Any]) -> List[Dict[str, Any]]:
    """
    Blank result rows for a new session: every driver in the given order,
    positions 1..N, no points yet.
    """
    return [
        {
            "position": idx,
            "driver_id": driver.id,
            "team_id": driver.team_id,
            "laps": 0,
            "total_time": "00:00:000",
            "points": 0,
            "fastest_lap": False,
        }
        for idx, driver in enumerate(drivers, start=1)
    ]
