from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from championship.config import configure_logging, settings
from championship.database import Base, engine, get_db
from championship.schemas import (
    DriverCreate,
    DriverStandingOut,
    DriverUpdate,
    PointsScheduleReplace,
    RaceCreate,
    RaceReplace,
    ResultCreate,
    ResultUpdate,
    SessionUpdate,
    TeamCreate,
    TeamStandingOut,
    TeamUpdate,
)
from championship.services import (
    add_result,
    add_session,
    create_driver,
    create_race,
    create_team,
    delete_driver,
    delete_race,
    delete_result,
    delete_session,
    delete_team,
    draft_race,
    driver_profile,
    driver_results,
    driver_standings,
    driver_to_dict,
    get_driver_or_404,
    get_race_or_404,
    get_team_or_404,
    list_drivers,
    list_races,
    list_teams,
    lookup_points,
    points_schedule,
    race_to_dict,
    replace_points_schedule,
    replace_race,
    result_to_dict,
    session_to_dict,
    team_results,
    team_standings,
    team_to_dict,
    update_driver,
    update_result,
    update_session,
    update_team,
)


logger = logging.getLogger(__name__)

app = FastAPI(
    title="Race Championship",
    version="1.0.0",
    description=(
        "Drivers, teams, races, sessions and results for a multi-round championship, "
        "with drivers' and constructors' standings derived from raw results."
    ),
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def on_startup() -> None:
    configure_logging()
    Base.metadata.create_all(bind=engine)


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("Database operation failed on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Database operation failed"})


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/teams")
def get_teams(db: Session = Depends(get_db)):
    return [team_to_dict(t) for t in list_teams(db)]


@app.post("/teams", status_code=201)
def post_team(payload: TeamCreate, db: Session = Depends(get_db)):
    team = create_team(db, payload.model_dump())
    db.commit()
    return team_to_dict(team)


@app.get("/teams/{team_id}")
def get_team(team_id: str, db: Session = Depends(get_db)):
    return team_to_dict(get_team_or_404(db, team_id))


@app.put("/teams/{team_id}")
def put_team(team_id: str, payload: TeamUpdate, db: Session = Depends(get_db)):
    team = update_team(db, team_id, payload.model_dump(exclude_unset=True))
    db.commit()
    return team_to_dict(team)


@app.delete("/teams/{team_id}")
def remove_team(team_id: str, db: Session = Depends(get_db)):
    delete_team(db, team_id)
    db.commit()
    return {"success": True}


@app.get("/teams/{team_id}/results")
def get_team_results(team_id: str, db: Session = Depends(get_db)):
    return {"team_id": team_id, "races": team_results(db, team_id)}


@app.get("/drivers")
def get_drivers(db: Session = Depends(get_db)):
    return [driver_to_dict(d) for d in list_drivers(db)]


@app.post("/drivers", status_code=201)
def post_driver(payload: DriverCreate, db: Session = Depends(get_db)):
    driver = create_driver(db, payload.model_dump())
    db.commit()
    return driver_to_dict(driver)


@app.get("/drivers/{driver_id}")
def get_driver(driver_id: str, db: Session = Depends(get_db)):
    return driver_to_dict(get_driver_or_404(db, driver_id))


@app.put("/drivers/{driver_id}")
def put_driver(driver_id: str, payload: DriverUpdate, db: Session = Depends(get_db)):
    # Driver update and result reassignment commit together.
    driver = update_driver(db, driver_id, payload.model_dump(exclude_unset=True))
    db.commit()
    return driver_to_dict(driver)


@app.delete("/drivers/{driver_id}")
def remove_driver(driver_id: str, db: Session = Depends(get_db)):
    delete_driver(db, driver_id)
    db.commit()
    return {"success": True}


@app.get("/drivers/{driver_id}/results")
def get_driver_results(driver_id: str, db: Session = Depends(get_db)):
    return {"driver_id": driver_id, "races": driver_results(db, driver_id)}


@app.get("/drivers/{driver_id}/profile")
def get_driver_profile(driver_id: str, db: Session = Depends(get_db)):
    return driver_profile(db, driver_id)


@app.get("/races")
def get_races(db: Session = Depends(get_db)):
    return [race_to_dict(r) for r in list_races(db)]


@app.get("/races/draft")
def get_race_draft(db: Session = Depends(get_db)):
    return draft_race(db)


@app.post("/races", status_code=201)
def post_race(payload: RaceCreate, db: Session = Depends(get_db)):
    race = create_race(db, payload.model_dump())
    db.commit()
    return race_to_dict(race)


@app.get("/races/{race_id}")
def get_race(race_id: str, db: Session = Depends(get_db)):
    return race_to_dict(get_race_or_404(db, race_id))


@app.put("/races/{race_id}")
def put_race(race_id: str, payload: RaceReplace, db: Session = Depends(get_db)):
    race = replace_race(db, race_id, payload.model_dump())
    db.commit()
    return race_to_dict(race)


@app.delete("/races/{race_id}")
def remove_race(race_id: str, db: Session = Depends(get_db)):
    delete_race(db, race_id)
    db.commit()
    return {"success": True}


@app.post("/races/{race_id}/sessions", status_code=201)
def post_session(race_id: str, db: Session = Depends(get_db)):
    session = add_session(db, race_id)
    db.commit()
    return session_to_dict(session)


@app.patch("/sessions/{session_id}")
def patch_session(session_id: int, payload: SessionUpdate, db: Session = Depends(get_db)):
    session = update_session(db, session_id, payload.model_dump(exclude_unset=True))
    db.commit()
    return session_to_dict(session)


@app.post("/sessions/{session_id}/results", status_code=201)
def post_result(session_id: int, payload: ResultCreate, db: Session = Depends(get_db)):
    result = add_result(db, session_id, payload.model_dump())
    db.commit()
    return result_to_dict(result)


@app.delete("/sessions/{session_id}")
def remove_session(session_id: int, db: Session = Depends(get_db)):
    delete_session(db, session_id)
    db.commit()
    return {"success": True}


@app.patch("/results/{result_id}")
def patch_result(result_id: int, payload: ResultUpdate, db: Session = Depends(get_db)):
    result = update_result(db, result_id, payload.model_dump(exclude_unset=True))
    db.commit()
    return result_to_dict(result)


@app.delete("/results/{result_id}")
def remove_result(result_id: int, db: Session = Depends(get_db)):
    delete_result(db, result_id)
    db.commit()
    return {"success": True}


@app.get("/points-schedule")
def get_points_schedule(db: Session = Depends(get_db)):
    return {"schedule": points_schedule(db)}


@app.put("/points-schedule")
def put_points_schedule(payload: PointsScheduleReplace, db: Session = Depends(get_db)):
    schedule = replace_points_schedule(db, payload.schedule)
    db.commit()
    return {"schedule": schedule}


@app.get("/points-schedule/lookup")
def get_points_lookup(
    position: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    return lookup_points(db, position)


@app.get("/standings/drivers", response_model=list[DriverStandingOut])
def get_driver_standings(db: Session = Depends(get_db)):
    return driver_standings(db)


@app.get("/standings/teams", response_model=list[TeamStandingOut])
def get_team_standings(db: Session = Depends(get_db)):
    return team_standings(db)
