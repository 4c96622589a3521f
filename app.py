# app.py
import logging
from functools import lru_cache

import pendulum
from fastapi import Body, Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from engine import TimelineRequest, compute_timeline, next_common_slot
from errors import (ComputationTimeout, IntervalConflict, InvalidInput, InvariantViolation, TimelineError,
                    UnknownUser, UpstreamFetchFailure)
from settings import Settings, load_settings
from store import JsonStore, interval_from_dict


@lru_cache
def get_settings() -> Settings:
    return load_settings()


@lru_cache
def get_store():
    return JsonStore(get_settings().store_file)


def configure_logging(level: str = "INFO") -> logging.Logger:
    root = logging.getLogger()
    if not any(getattr(h, "_timeline", False) for h in root.handlers):
        # avoid duplicate handlers on reload
        ch = logging.StreamHandler()
        ch.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        ch._timeline = True
        root.addHandler(ch)
    root.setLevel(level)
    return logging.getLogger("timeline")


logger = configure_logging(get_settings().log_level)

# most specific kinds first
STATUS_BY_KIND = [
    (UnknownUser, 404),
    (IntervalConflict, 409),
    (InvalidInput, 400),
    (ComputationTimeout, 504),
    (UpstreamFetchFailure, 500),
    (InvariantViolation, 500),
]


def status_for(err: TimelineError) -> int:
    for kind, status in STATUS_BY_KIND:
        if isinstance(err, kind):
            return status
    return 500


app = FastAPI(title="availability-timeline")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


@app.exception_handler(TimelineError)
async def timeline_error_handler(request: Request, exc: TimelineError):
    status = status_for(exc)
    if status >= 500:
        logger.error("%s %s -> %s (%s)", request.method, request.url.path, exc.code, status)
    return JSONResponse(exc.to_dict(), status_code=status)


@app.get("/healthz")
def health():
    return {"ok": True}


@app.get("/timezone_check")
def timezone_check(settings: Settings = Depends(get_settings)):
    now_local = pendulum.now(settings.time_zone)
    return {"TIME_ZONE": settings.time_zone, "now_local": now_local.to_iso8601_string()}


def reference_zone(referenceTimezone: str | None, userIds: str, store, settings: Settings) -> str:
    """Explicit zone, else the viewer's own zone, else TIME_ZONE when there is no viewer."""
    if referenceTimezone:
        return referenceTimezone
    viewer = next((uid.strip() for uid in userIds.split(",") if uid.strip()), None)
    return store.timezone_of(viewer) if viewer else settings.time_zone


@app.get("/timeline")
async def timeline(
    date: str = Query(...),
    userIds: str = Query(...),
    referenceTimezone: str | None = Query(None),
    settings: Settings = Depends(get_settings),
    store=Depends(get_store),
):
    """
    Segments covering `date` in referenceTimezone, or in the viewer's own zone.

    userIds is comma separated; the first id is the viewer. With more than one
    user the response carries "match" segments where everyone is free.
    """
    tz = reference_zone(referenceTimezone, userIds, store, settings)
    req = TimelineRequest.parse(date, userIds, tz, settings.max_users)
    return await compute_timeline(req, store, settings.timeline_timeout)


@app.get("/slots/next")
async def slots_next(
    date: str = Query(...),
    userIds: str = Query(...),
    referenceTimezone: str | None = Query(None),
    from_: str = Query("00:00", alias="from"),
    settings: Settings = Depends(get_settings),
    store=Depends(get_store),
):
    tz = reference_zone(referenceTimezone, userIds, store, settings)
    req = TimelineRequest.parse(date, userIds, tz, settings.max_users)
    return await next_common_slot(req, store, settings.timeline_timeout, from_)


@app.post("/intervals/validate")
def intervals_validate(body: dict = Body(...), store=Depends(get_store)):
    """
    Body: userId, start, end (ISO instants), optional category, recurrence,
    excludeId. Reports whether storing it would overlap the user's intervals.
    """
    user_id = str(body.get("userId") or "").strip()
    if not user_id:
        raise InvalidInput("userId is required")
    try:
        candidate = interval_from_dict({**body, "id": body.get("id") or "__candidate__"}, user_id)
    except (KeyError, ValueError) as e:
        raise InvalidInput(f"Invalid interval: {e}") from None
    conflicts = store.conflicts_for(candidate, body.get("excludeId"))
    return {"overlap": bool(conflicts), "conflicts": conflicts}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app:app", host="0.0.0.0", port=get_settings().port)
