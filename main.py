import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.cors import CORSMiddleware

from config import settings
from api.v1.router import api_router
from core.errors import MealPlanError

_LOG = logging.getLogger(__name__)

# failure reason -> HTTP status
ERROR_STATUS = {
    "configuration": 503,
    "transport": 502,
    "parse": 502,
    "no_candidates": 404,
}

app = FastAPI(title="Weight-Based Meal Planner API", version="1.0.0")

# CORS (public demo only – lock down in prod)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api/v1")


@app.exception_handler(MealPlanError)
async def meal_plan_error(request: Request, exc: MealPlanError) -> JSONResponse:
    code = ERROR_STATUS.get(exc.reason, 500)
    _LOG.error("%s %s failed (%s): %s", request.method, request.url.path, exc.reason, exc.message)
    return JSONResponse(
        status_code=code,
        content={"detail": {"reason": exc.reason, "message": exc.message}},
    )


@app.get("/health", tags=["meta"])
def health() -> dict[str, str]:
    return {"status": "ok", "env": settings.env_name}
