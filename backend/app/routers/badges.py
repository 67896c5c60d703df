"""
Badge endpoints for the current user.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from badge_core.models import User
from badge_core.repositories import RepoRepository
from badge_core.services import BadgeAwardingEngine, BadgeCatalog

from ..auth.dependencies import get_current_user
from ..database import get_db
from ..schemas import AwardResponse

router = APIRouter(prefix="/badges", tags=["badges"])


@router.post("/check/{repository_id}")
def check_badges(
    repository_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Evaluate the current user against the repository's active badges and
    award whatever they now qualify for.
    """
    repository = RepoRepository(db).require_active(repository_id)
    result = BadgeAwardingEngine(db).check_and_award(current_user, repository)
    db.commit()
    return result


@router.post("/awards/{award_id}/acknowledge", response_model=AwardResponse)
def acknowledge_award(
    award_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    award = BadgeAwardingEngine(db).acknowledge_award(current_user, award_id)
    db.commit()
    return award


@router.get("/{badge_id}/stats")
def badge_stats(
    badge_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return BadgeCatalog(db).get_badge_stats(badge_id)
