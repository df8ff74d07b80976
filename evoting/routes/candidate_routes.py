import logging

from fastapi import APIRouter, Depends

from evoting.database.connection import get_storage, serialize
from evoting.dependencies import get_current_user, require_admin
from evoting.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from evoting.models.candidate_model import Candidate, CandidateUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/candidate", tags=["Candidate"])

# votes holds voter ids and stays server-side
HIDDEN_FIELDS = ("votes",)


def public_candidate(candidate: dict) -> dict:
    return serialize(candidate, exclude=HIDDEN_FIELDS)


@router.get("")
def list_candidates(storage=Depends(get_storage)):
    return [
        {"_id": c["_id"], "name": c["name"], "party": c["party"], "age": c["age"]}
        for c in map(public_candidate, storage.list_candidates())
    ]


@router.post("")
def add_candidate(candidate: Candidate, admin=Depends(require_admin), storage=Depends(get_storage)):
    created = storage.insert_candidate(candidate.model_dump())
    logger.info(f"Candidate {created['_id']} ({candidate.name}) added by admin {admin['_id']}")
    return {"response": public_candidate(created)}


@router.get("/vote/count")
def vote_count(storage=Depends(get_storage)):
    """
    Candidates ordered by descending vote count, ties in insertion order.
    """
    return [
        {"_id": c["_id"], "name": c["name"], "party": c["party"], "count": c.get("voteCount", 0)}
        for c in map(public_candidate, storage.vote_tally())
    ]


@router.post("/vote/{candidate_id}")
def cast_vote(candidate_id: str, user=Depends(get_current_user), storage=Depends(get_storage)):
    if user.get("role") == "admin":
        raise ForbiddenError("Admin is not allowed to vote")
    if user.get("isVoted"):
        raise ConflictError("You have already voted")
    if storage.find_candidate(candidate_id) is None:
        raise NotFoundError("Candidate not found")

    # Re-checked atomically by the storage layer
    candidate = storage.cast_vote(str(user["_id"]), candidate_id)
    logger.info(f"User {user['_id']} voted for candidate {candidate_id}")
    return {"message": "Vote recorded successfully", "candidateName": candidate["name"]}


@router.put("/{candidate_id}")
def update_candidate(
    candidate_id: str, changes: CandidateUpdate, admin=Depends(require_admin), storage=Depends(get_storage)
):
    update_data = changes.model_dump(exclude_unset=True, exclude_none=True)
    if not update_data:
        raise ValidationError("No candidate fields to update")
    updated = storage.update_candidate(candidate_id, update_data)
    if updated is None:
        raise NotFoundError("Candidate not found")
    logger.info(f"Candidate {candidate_id} updated by admin {admin['_id']}")
    return {"response": public_candidate(updated)}


@router.delete("/{candidate_id}")
def delete_candidate(candidate_id: str, admin=Depends(require_admin), storage=Depends(get_storage)):
    if not storage.delete_candidate(candidate_id):
        raise NotFoundError("Candidate not found")
    logger.info(f"Candidate {candidate_id} deleted by admin {admin['_id']}")
    return {"message": "Candidate deleted successfully"}
