from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from lightfriend.db.session import get_db

router = APIRouter(tags=["health"])


def _check_db(db: Session) -> bool:
    db.execute(text("SELECT 1"))
    return True


@router.get("/healthz")
def healthz(db: Annotated[Session, Depends(get_db)]):
    """Liveness probe with a database round trip."""
    try:
        _check_db(db)
    except SQLAlchemyError:
        return JSONResponse(status_code=503, content={"error": "Database connectivity check failed"})
    return {"status": "ok"}
