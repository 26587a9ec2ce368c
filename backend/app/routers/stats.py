from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
import logging

from app.database import get_db
from app.core.auth import get_current_user
from app.models import User
from app.schemas.stats import StatsResponse
from app.services.stats_service import compute_reading_stats

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/stats", tags=["stats"])


@router.get("", response_model=StatsResponse)
def get_stats(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Aggregation snapshot of the current user's reading activity."""
    return compute_reading_stats(db, user.id)
