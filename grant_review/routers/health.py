"""
Health Check Router - Grant Review Engine
grant_review/routers/health.py

Reports whether Snowflake is reachable and the review tables are in place.
"""
from contextlib import closing
from datetime import datetime, timezone
from typing import Dict

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from grant_review import __version__
from grant_review.services.snowflake import get_snowflake_connection

router = APIRouter(tags=["Health"])

REVIEW_TABLES = ("ASSESSORS", "FUNDING_CALLS", "APPLICATIONS", "ASSIGNMENTS", "ASSESSMENTS")


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
    version: str
    dependencies: Dict[str, str]


def _short(exc: Exception, limit: int = 100) -> str:
    text = str(exc)
    return text if len(text) <= limit else text[:limit] + "..."


def check_dependencies() -> Dict[str, str]:
    """
    One Snowflake round trip covering the session and the review schema.

    Returns a status string per dependency; anything not starting with
    "healthy" marks the service as degraded.
    """
    try:
        with closing(get_snowflake_connection()) as conn, closing(conn.cursor()) as cursor:
            cursor.execute("SELECT CURRENT_USER(), CURRENT_ROLE()")
            user = cursor.fetchone()[0]

            cursor.execute(
                "SELECT TABLE_NAME FROM INFORMATION_SCHEMA.TABLES "
                "WHERE TABLE_SCHEMA = CURRENT_SCHEMA()"
            )
            present = {row[0].upper() for row in cursor.fetchall()}
    except Exception as e:
        reason = f"unhealthy: {_short(e)}"
        return {"snowflake": reason, "review_schema": "unknown"}

    missing = [t for t in REVIEW_TABLES if t not in present]
    schema = f"unhealthy: missing {', '.join(missing)}" if missing else "healthy"
    return {"snowflake": f"healthy (User: {user})", "review_schema": schema}


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={
        200: {"description": "Snowflake reachable and review tables present"},
        503: {"description": "Snowflake unreachable or review tables missing"},
    },
    summary="Health check",
)
async def health_check():
    dependencies = check_dependencies()
    healthy = all(v.startswith("healthy") for v in dependencies.values())

    body = HealthResponse(
        status="healthy" if healthy else "degraded",
        timestamp=datetime.now(timezone.utc),
        version=__version__,
        dependencies=dependencies,
    )
    if healthy:
        return body

    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content=body.model_dump(mode="json"),
    )
