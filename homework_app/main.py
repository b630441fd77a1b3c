"""FastAPI entrypoint for the homework feedback service."""

import logging

from homework_app.config import settings
from homework_app.database import create_db_and_tables, engine
from homework_app.deps import get_llm_client
from homework_app.exceptions import HomeworkError
from homework_app.logging_config import configure_logging
from homework_app.routers import assignments as assignments_router_module
from homework_app.routers import auth as auth_router_module
from homework_app.routers import homework as homework_router_module
from homework_app.routers import misconceptions as misconceptions_router_module
from homework_app.services.llm_client import LLMClient
from homework_app.services.misconception_catalog import seed_misconceptions
from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from sqlmodel import Session
from starlette.middleware.sessions import SessionMiddleware

logger = logging.getLogger(__name__)

app = FastAPI(title="Homework Feedback")


@app.exception_handler(HomeworkError)
async def homework_error_handler(request: Request, exc: HomeworkError):
    """Map service-layer errors to JSON responses with a user-facing message."""
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


# Session middleware for simple cookie-based teacher authentication
app.add_middleware(SessionMiddleware, secret_key=settings.secret_key)

# Routers
app.include_router(auth_router_module.router, prefix="/auth", tags=["auth"])
app.include_router(assignments_router_module.router, prefix="/assignments", tags=["assignments"])
app.include_router(misconceptions_router_module.router, prefix="/misconceptions", tags=["misconceptions"])
app.include_router(homework_router_module.router, prefix="/homework", tags=["homework"])


@app.get("/health")
def health(llm: LLMClient = Depends(get_llm_client)):
    """Liveness plus whether the text generation backend currently answers."""
    return {"status": "ok", "llm_available": llm.is_available()}


@app.on_event("startup")
def on_startup():
    """Initialize logging, the database schema and the misconception catalog."""
    configure_logging(settings.log_level)
    create_db_and_tables()
    with Session(engine) as session:
        seed_misconceptions(session)
    if not settings.llm.enabled:
        logger.info("LLM backend disabled; static feedback only")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("homework_app.main:app", host="0.0.0.0", port=8000, reload=True)
