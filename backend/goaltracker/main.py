import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from goaltracker.api.goals import router as goals_router
from goaltracker.api.workouts import router as workouts_router
from goaltracker.db import Base, engine
from goaltracker.models.goal import Goal, GoalProgress  # noqa: F401  (import ensures tables are registered)
from goaltracker.core.config import settings
from goaltracker.core.errors import InvalidArgument, NotFound, StoreError


logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Goal Tracker")

# Allow CORS for local frontend
origins = ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Create DB tables (goals, goal_progress) on startup
Base.metadata.create_all(bind=engine)

app.include_router(goals_router)
app.include_router(workouts_router)


@app.exception_handler(NotFound)
def not_found_handler(request: Request, exc: NotFound):
    return JSONResponse(status_code=404, content={"detail": "Goal not found"})


@app.exception_handler(InvalidArgument)
def invalid_argument_handler(request: Request, exc: InvalidArgument):
    return JSONResponse(status_code=422, content={"detail": str(exc)})


@app.exception_handler(RequestValidationError)
def validation_error_handler(request: Request, exc: RequestValidationError):
    # The rejected input is left out: it may be NaN/inf, which JSON can't carry
    errors = [{k: v for k, v in err.items() if k != "input"} for err in exc.errors()]
    return JSONResponse(status_code=422, content={"detail": jsonable_encoder(errors)})


@app.exception_handler(StoreError)
def store_error_handler(request: Request, exc: StoreError):
    logger.error("store failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": "Couldn't update goal"})


@app.get("/")
def root():
    return {"message": "Goal tracker backend is running"}
