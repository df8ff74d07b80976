import logging

from fastapi import APIRouter, Depends

from evoting.config import MIN_REVIEW_LENGTH
from evoting.database.connection import get_storage, serialize
from evoting.dependencies import get_current_user, require_admin
from evoting.errors import ConflictError, ForbiddenError, ValidationError
from evoting.models.review_model import SENTIMENTS, ReviewIn
from evoting.sentiment import classify_sentiment

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/review", tags=["Review"])


@router.post("")
def submit_review(review: ReviewIn, user=Depends(get_current_user), storage=Depends(get_storage)):
    if user.get("role") == "admin":
        raise ForbiddenError("Admin cannot submit reviews")
    if not user.get("isVoted"):
        raise ConflictError("You can only review after voting")

    text = review.reviewText.strip()
    if len(text) < MIN_REVIEW_LENGTH:
        raise ValidationError(f"Review must be at least {MIN_REVIEW_LENGTH} characters long")

    created = storage.insert_review({
        "user": str(user["_id"]),
        "candidateName": review.candidateName,
        "reviewText": text,
        "sentiment": classify_sentiment(text),
    })
    logger.info(f"Review {created['_id']} from user {user['_id']} tagged {created['sentiment']}")
    return {"response": serialize(created, exclude=("user",))}


@router.get("/statistics")
def review_statistics(admin=Depends(require_admin), storage=Depends(get_storage)):
    counts = storage.count_reviews_by_sentiment()
    statistics = {label: counts.get(label, 0) for label in SENTIMENTS}
    statistics["total"] = sum(statistics.values())
    return {"statistics": statistics}


@router.get("/all")
def all_reviews(admin=Depends(require_admin), storage=Depends(get_storage)):
    return {"reviews": [serialize(r, exclude=("user",)) for r in storage.list_reviews()]}


@router.get("/by-sentiment/{label}")
def reviews_by_sentiment(label: str, admin=Depends(require_admin), storage=Depends(get_storage)):
    if label == "all":
        return all_reviews(admin, storage)
    if label not in SENTIMENTS:
        raise ValidationError(f"Sentiment must be one of: all, {', '.join(SENTIMENTS)}")
    return {"reviews": [serialize(r, exclude=("user",)) for r in storage.list_reviews(label)]}
