from types import SimpleNamespace

import pytest

from championship.rules import (
    coerce_points,
    coerce_position,
    compute_driver_standings,
    compute_team_standings,
    is_podium,
    is_win,
    normalize_schedule,
    points_for_position,
    seed_session_results,
    suggest_points,
)


SCHEDULE = {1: 25, 2: 18, 3: 15, 4: 12, 5: 10, 6: 8, 7: 6, 8: 4, 9: 2, 10: 1}


def _team(team_id):
    return SimpleNamespace(id=team_id, name=team_id.upper(), short_name=team_id[:3].upper())


def _driver(driver_id, team_id):
    return SimpleNamespace(id=driver_id, name=driver_id.title(), team_id=team_id)


def _result(driver_id, team_id, position, points):
    return SimpleNamespace(driver_id=driver_id, team_id=team_id, position=position, points=points)


def _race(*sessions):
    return SimpleNamespace(sessions=[SimpleNamespace(results=list(s)) for s in sessions])


def test_points_beat_number_of_wins_and_events():
    teams = [_team("x"), _team("y")]
    drivers = [_driver("a", "x"), _driver("b", "y")]
    races = [
        _race([_result("a", "x", 1, 25)]),
        _race([_result("b", "y", 1, 25), _result("a", "x", 2, 18)]),
        _race([_result("b", "y", 1, 25), _result("a", "x", 12, 0)]),
    ]

    standings = compute_driver_standings(drivers, teams, races)

    assert [s.driver.id for s in standings] == ["b", "a"]
    assert standings[0].points == 50
    assert standings[0].wins == 2
    assert standings[1].points == 43
    assert standings[1].wins == 1
    assert standings[1].podiums == 2


def test_win_and_podium_classification():
    assert is_win(1) and is_podium(1)
    assert not is_win(3) and is_podium(3)
    assert not is_win(4) and not is_podium(4)
    assert not is_podium(0)
    assert not is_podium(None)

    teams = [_team("x")]
    drivers = [_driver("p1", "x"), _driver("p3", "x"), _driver("p4", "x")]
    races = [_race([_result("p1", "x", 1, 0), _result("p3", "x", 3, 0), _result("p4", "x", 4, 0)])]
    by_id = {s.driver.id: s for s in compute_driver_standings(drivers, teams, races)}

    assert (by_id["p1"].wins, by_id["p1"].podiums) == (1, 1)
    assert (by_id["p3"].wins, by_id["p3"].podiums) == (0, 1)
    assert (by_id["p4"].wins, by_id["p4"].podiums) == (0, 0)


def test_driver_tie_breaks_on_wins_then_podiums():
    teams = [_team("x")]
    drivers = [_driver("c", "x"), _driver("d", "x"), _driver("e", "x"), _driver("f", "x")]
    races = [
        _race(
            # c and d level on points, d has the win.
            [_result("c", "x", 2, 30), _result("d", "x", 1, 30)],
            # e and f level on points and wins, f has the podium.
            [_result("e", "x", 4, 10), _result("f", "x", 3, 10)],
        )
    ]

    standings = compute_driver_standings(drivers, teams, races)

    assert [s.driver.id for s in standings] == ["d", "c", "f", "e"]


def test_team_tie_breaks_on_wins():
    teams = [_team("x"), _team("y")]
    drivers = [_driver("a", "x"), _driver("b", "y")]
    races = [_race([_result("a", "x", 2, 20)]), _race([_result("b", "y", 1, 20)])]

    standings = compute_team_standings(drivers, teams, races)

    assert [s.team_id for s in standings] == ["y", "x"]
    assert standings[0].wins == 1


def test_team_standings_use_result_snapshot_team():
    teams = [_team("x"), _team("y")]
    # Driver now races for y, but the result was scored for x.
    drivers = [_driver("a", "y")]
    races = [_race([_result("a", "x", 1, 25)])]

    team_rows = compute_team_standings(drivers, teams, races)
    driver_rows = compute_driver_standings(drivers, teams, races)

    assert [s.team_id for s in team_rows] == ["x"]
    assert driver_rows[0].team.id == "y"


def test_team_standings_collect_distinct_drivers_in_order():
    teams = [_team("x")]
    drivers = [_driver("a", "x"), _driver("b", "x")]
    races = [
        _race([_result("b", "x", 1, 25), _result("a", "x", 2, 18)]),
        _race([_result("a", "x", 1, 25), _result("b", "x", 2, 18)]),
    ]

    [standing] = compute_team_standings(drivers, teams, races)

    assert standing.drivers == ["b", "a"]
    assert standing.points == 86
    assert standing.wins == 2


def test_points_conservation_excludes_only_orphans():
    teams = [_team("x")]
    drivers = [_driver("a", "x"), _driver("b", "x"), _driver("lost", "gone")]
    races = [
        _race(
            [_result("a", "x", 1, 25), _result("b", "x", 2, 18), _result("ghost", "x", 3, 15)],
            [_result("lost", "gone", 1, 25), _result("a", "x", 2, 18)],
        )
    ]
    total = sum(r.points for race in races for s in race.sessions for r in s.results)
    orphaned = 15 + 25

    standings = compute_driver_standings(drivers, teams, races)

    assert {s.driver.id for s in standings} == {"a", "b"}
    assert sum(s.points for s in standings) == total - orphaned


def test_unresolved_team_is_kept_without_record():
    teams = [_team("x")]
    drivers = [_driver("a", "x")]
    races = [_race([_result("a", "ghost", 1, 25), _result("a", "x", 2, 18)])]

    standings = compute_team_standings(drivers, teams, races)

    assert [s.team_id for s in standings] == ["ghost", "x"]
    assert standings[0].team is None
    assert sum(s.points for s in standings) == 43


def test_standings_are_idempotent():
    teams = [_team("x"), _team("y")]
    drivers = [_driver("a", "x"), _driver("b", "y"), _driver("c", "y")]
    races = [
        _race([_result("a", "x", 1, 25), _result("b", "y", 2, 18), _result("c", "y", 3, 15)]),
        _race([_result("c", "y", 1, 25), _result("b", "y", 2, 18), _result("a", "x", 3, 15)]),
    ]

    first = compute_driver_standings(drivers, teams, races)
    second = compute_driver_standings(drivers, teams, races)

    assert first == second
    assert compute_team_standings(drivers, teams, races) == compute_team_standings(drivers, teams, races)


def test_empty_races_and_sessions_contribute_nothing():
    teams = [_team("x")]
    drivers = [_driver("a", "x")]
    scheduled = SimpleNamespace(sessions=[])
    empty_session = _race([])

    assert compute_driver_standings(drivers, teams, [scheduled, empty_session]) == []
    assert compute_team_standings(drivers, teams, [scheduled, empty_session]) == []
    assert compute_driver_standings([], [], []) == []


def test_non_collection_input_fails_fast():
    with pytest.raises(TypeError):
        compute_driver_standings([], [], None)
    with pytest.raises(TypeError):
        compute_team_standings("drivers", [], [])
    with pytest.raises(TypeError):
        compute_team_standings([], {"x": 1}, [])


def test_points_lookup():
    assert points_for_position(SCHEDULE, 1) == 25
    assert points_for_position(SCHEDULE, 10) == 1
    assert points_for_position(SCHEDULE, 11) == 0
    assert points_for_position(SCHEDULE, None) == 0
    assert points_for_position({"1": 25, "2": 18}, 2) == 18
    assert points_for_position({}, 1) == 0


def test_position_and_points_coercion():
    assert coerce_position(3) == 3
    assert coerce_position(" 7 ") == 7
    assert coerce_position(2.0) == 2
    assert coerce_position(2.5) is None
    assert coerce_position("") is None
    assert coerce_position("3rd") is None
    assert coerce_position("-1") is None
    assert coerce_position(0) is None
    assert coerce_position(True) is None
    assert coerce_position(None) is None

    assert coerce_points("12") == 12
    assert coerce_points(0) == 0
    assert coerce_points("x", default=5) == 5
    assert coerce_points(-3) == 0


def test_suggest_points_falls_back_to_zero():
    assert suggest_points(SCHEDULE, "1") == 25
    assert suggest_points(SCHEDULE, "abc") == 0
    assert suggest_points(SCHEDULE, None) == 0
    assert suggest_points(SCHEDULE, 42) == 0


def test_normalize_schedule():
    assert normalize_schedule({"2": "18", 1: 25}) == {1: 25, 2: 18}
    with pytest.raises(ValueError):
        normalize_schedule({"first": 25})
    with pytest.raises(ValueError):
        normalize_schedule({1: -5})
    with pytest.raises(ValueError):
        normalize_schedule({1: "lots"})


def test_seed_session_results():
    rows = seed_session_results([_driver("a", "x"), _driver("b", "y")])
    assert [(r["position"], r["driver_id"], r["team_id"], r["points"]) for r in rows] == [
        (1, "a", "x", 0),
        (2, "b", "y", 0),
    ]
