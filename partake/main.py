"""FastAPI application entry point."""
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from partake.config import settings
from partake.database import Base, engine
from partake.exceptions import PartakeError

# Import routers
from partake.routers import users, events, attendees, account, contributions, admin

# Import all models so Base.metadata knows about them
from partake.models.user import User                  # noqa: F401
from partake.models.event import Event                # noqa: F401
from partake.models.attendee import EventAttendee     # noqa: F401
from partake.models.contribution import ContributionItem  # noqa: F401

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Partake",
    description="Shared-event participation: join requests, capacity and waitlists, cost sharing",
    version="0.1.0",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(PartakeError)
async def handle_partake_error(request: Request, exc: PartakeError) -> JSONResponse:
    """Map typed service failures to their HTTP status."""
    logger.info("%s %s -> %d %s", request.method, request.url.path, exc.status_code, exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


# Register routers
app.include_router(users.router, prefix="/api/users", tags=["Users"])
app.include_router(events.router, prefix="/api/events", tags=["Events"])
app.include_router(attendees.router, prefix="/api/attendees", tags=["Attendees"])
app.include_router(account.router, prefix="/api/account", tags=["Account"])
app.include_router(contributions.router, prefix="/api/contributions", tags=["Contributions"])
app.include_router(admin.router, prefix="/api/admin", tags=["Admin"])


@app.on_event("startup")
def on_startup():
    """Create database tables on startup (for SQLite dev mode)."""
    if settings.DATABASE_URL.startswith("sqlite"):
        Base.metadata.create_all(bind=engine)


@app.get("/api/health")
def health_check():
    return {"status": "ok"}
