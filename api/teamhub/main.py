"""FastAPI application entry point."""
import logging

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from teamhub.api import (
    audit_logs,
    auth,
    availability,
    capabilities,
    changes,
    hierarchy,
    skills,
    team_members,
    teams,
    users,
)
from teamhub.core.config import settings
from teamhub.core.errors import (
    ConflictError,
    ForbiddenError,
    IntegrityError,
    InvalidStateError,
    NotFoundError,
    TeamHubError,
    ValidationError,
)

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

ERROR_STATUS = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    ConflictError: status.HTTP_400_BAD_REQUEST,
    ForbiddenError: status.HTTP_403_FORBIDDEN,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    InvalidStateError: status.HTTP_409_CONFLICT,
    IntegrityError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

app = FastAPI(title="Team Hub API", version="1.0.0")

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(TeamHubError)
async def team_hub_error_handler(request: Request, exc: TeamHubError):
    status_code = ERROR_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST)
    if status_code >= 500:
        logger.error("%s %s failed: %s %s", request.method, request.url.path, exc.message, exc.details)
    return JSONResponse(
        status_code=status_code,
        content={"error": exc.code, "detail": exc.message, "details": exc.details},
    )


# Routes
app.include_router(auth.router, prefix="/auth", tags=["auth"])
app.include_router(users.router, prefix="/users", tags=["users"])
app.include_router(teams.router, prefix="/teams", tags=["teams"])
app.include_router(team_members.router, prefix="/team-members", tags=["team-members"])
app.include_router(changes.router, prefix="/changes", tags=["changes"])
app.include_router(hierarchy.router, prefix="/hierarchy", tags=["hierarchy"])
app.include_router(skills.router, prefix="/skills", tags=["skills"])
app.include_router(capabilities.router, prefix="/capabilities", tags=["capabilities"])
app.include_router(availability.router, prefix="/availability", tags=["availability"])
app.include_router(audit_logs.router, prefix="/audit-logs", tags=["audit-logs"])


@app.get("/")
def root():
    return {"message": "Team Hub API"}


@app.get("/health")
def health():
    return {"status": "healthy"}
