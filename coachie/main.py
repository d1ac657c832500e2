from fastapi import FastAPI

from coachie.api.checkins import router as checkins_router
from coachie.api.food import router as food_router
from coachie.api.plans import router as plans_router
from coachie.api.profiles import router as profiles_router
from coachie.api.sms import router as sms_router
from coachie.api.weekly import router as weekly_router
from coachie.db.session import create_tables

app = FastAPI(title="CoachIE")


@app.on_event("startup")
def on_startup() -> None:
    create_tables()


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/api")
def api_root() -> dict[str, str]:
    return {"service": "CoachIE API", "status": "ok"}


app.include_router(profiles_router)
app.include_router(checkins_router)
app.include_router(food_router)
app.include_router(sms_router)
app.include_router(plans_router)
app.include_router(weekly_router)
