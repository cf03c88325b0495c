from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..core.db import get_db
from ..services.briefs import delete_briefs_matching
from .routes_briefs import verify_api_key

router = APIRouter(tags=["admin"])


@router.delete("/admin/briefs")
def delete_briefs(
    pattern: str,
    db: Session = Depends(get_db),
    _: None = Depends(verify_api_key),
):
    """
    Delete briefs whose id matches a SQL LIKE pattern, e.g. `brief_sample%`.

    A bare `%` is refused so one request cannot wipe the table.
    """
    if not pattern.strip("%").strip():
        raise HTTPException(status_code=400, detail="Pattern must contain more than wildcards")

    deleted = delete_briefs_matching(db, pattern)
    return {"deleted": deleted, "pattern": pattern}
