# evoting/storage_mongo.py
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ASCENDING, DESCENDING, MongoClient, ReturnDocument
from pymongo.errors import DuplicateKeyError

from evoting.config import (
    CANDIDATES_COLLECTION_NAME,
    MONGO_DB,
    MONGO_TRANSACTIONS,
    MONGO_URI,
    REVIEWS_COLLECTION_NAME,
    USERS_COLLECTION_NAME,
)
from evoting.errors import ConflictError, ForbiddenError, NotFoundError

logger = logging.getLogger(__name__)

# Index name -> message returned when an insert/update trips it
DUPLICATE_KEY_MESSAGES = {
    "aadharCardNumber_1": "User with the same Aadhar Card Number already exists",
    "mobile_1": "User with the same mobile number already exists",
    "email_1": "User with the same email already exists",
    "single_admin": "Only one admin is allowed",
    "user_1": "You have already submitted a review",
}


def _object_id(value: str) -> Optional[ObjectId]:
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


def _duplicate_message(error: DuplicateKeyError) -> str:
    details = error.details or {}
    message = details.get("errmsg", str(error))
    for index_name, text in DUPLICATE_KEY_MESSAGES.items():
        if f"index: {index_name} " in message:
            return text
    return "Duplicate record"


class MongoStorage:
    def __init__(self, uri: str = MONGO_URI, db_name: str = MONGO_DB, use_transactions: bool = MONGO_TRANSACTIONS):
        """Initialize MongoDB connection and the indexes the invariants rely on"""
        try:
            self.client = MongoClient(uri)
            self.db = self.client[db_name]
            self.users = self.db[USERS_COLLECTION_NAME]
            self.candidates = self.db[CANDIDATES_COLLECTION_NAME]
            self.reviews = self.db[REVIEWS_COLLECTION_NAME]
            self.use_transactions = use_transactions

            self.users.create_index("aadharCardNumber", unique=True)
            self.users.create_index("mobile", unique=True)
            self.users.create_index(
                "email", unique=True, partialFilterExpression={"email": {"$type": "string"}}
            )
            # At most one document may hold role=admin
            self.users.create_index(
                "role", unique=True, name="single_admin", partialFilterExpression={"role": "admin"}
            )
            self.reviews.create_index("user", unique=True)
            self.reviews.create_index("sentiment")

            # Test connection
            self.client.server_info()
            logger.info(f"Connected to MongoDB at {uri}, database: {db_name}")
        except Exception as e:
            logger.error(f"Failed to connect to MongoDB: {e}")
            raise

    @staticmethod
    def _now() -> datetime:
        return datetime.now(timezone.utc)

    def ping(self) -> bool:
        try:
            self.client.admin.command("ping")
            return True
        except Exception as e:
            logger.error(f"MongoDB ping failed: {e}")
            return False

    def close(self) -> None:
        """Close MongoDB connection"""
        self.client.close()
        logger.info("MongoDB connection closed")

    # --- Users ---

    def count_admins(self, exclude_id: Optional[str] = None) -> int:
        query: Dict[str, Any] = {"role": "admin"}
        oid = _object_id(exclude_id) if exclude_id else None
        if oid is not None:
            query["_id"] = {"$ne": oid}
        return self.users.count_documents(query)

    def insert_user(self, user_data: Dict[str, Any]) -> Dict[str, Any]:
        try:
            result = self.users.insert_one(dict(user_data))
        except DuplicateKeyError as e:
            message = _duplicate_message(e)
            logger.warning(f"Rejected user insert: {message}")
            raise ConflictError(message)
        logger.info(f"User {result.inserted_id} saved successfully")
        return self.users.find_one({"_id": result.inserted_id})

    def find_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        oid = _object_id(user_id)
        if oid is None:
            return None
        return self.users.find_one({"_id": oid})

    def find_user_by(self, field: str, value: Any) -> Optional[Dict[str, Any]]:
        return self.users.find_one({field: value})

    def update_user(self, user_id: str, update_data: Dict[str, Any]) -> bool:
        oid = _object_id(user_id)
        if oid is None:
            return False
        try:
            result = self.users.update_one({"_id": oid}, {"$set": update_data})
        except DuplicateKeyError as e:
            raise ConflictError(_duplicate_message(e))
        return result.matched_count > 0

    # --- Candidates ---

    def insert_candidate(self, candidate_data: Dict[str, Any]) -> Dict[str, Any]:
        record = dict(candidate_data, voteCount=0, votes=[], createdAt=self._now())
        result = self.candidates.insert_one(record)
        return self.candidates.find_one({"_id": result.inserted_id})

    def list_candidates(self) -> List[Dict[str, Any]]:
        return list(self.candidates.find({}).sort("_id", ASCENDING))

    def find_candidate(self, candidate_id: str) -> Optional[Dict[str, Any]]:
        oid = _object_id(candidate_id)
        if oid is None:
            return None
        return self.candidates.find_one({"_id": oid})

    def update_candidate(self, candidate_id: str, update_data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        oid = _object_id(candidate_id)
        if oid is None:
            return None
        return self.candidates.find_one_and_update(
            {"_id": oid}, {"$set": update_data}, return_document=ReturnDocument.AFTER
        )

    def delete_candidate(self, candidate_id: str) -> bool:
        oid = _object_id(candidate_id)
        if oid is None:
            return False
        return self.candidates.delete_one({"_id": oid}).deleted_count > 0

    def vote_tally(self) -> List[Dict[str, Any]]:
        # ObjectIds grow with insertion time, so _id breaks ties by insertion order
        cursor = self.candidates.find({}, {"votes": 0}).sort([("voteCount", DESCENDING), ("_id", ASCENDING)])
        return list(cursor)

    def cast_vote(self, user_id: str, candidate_id: str) -> Dict[str, Any]:
        """
        Flip the user's isVoted flag and count the vote as one unit.

        With transactions enabled both writes commit together. Without them
        the flag is flipped with a compare-and-swap on isVoted=False, so a
        second concurrent request fails instead of double counting, and the
        flag is restored if the candidate disappeared before the increment.
        """
        user_oid = _object_id(user_id)
        candidate_oid = _object_id(candidate_id)
        if user_oid is None:
            raise NotFoundError("User not found")
        if candidate_oid is None:
            raise NotFoundError("Candidate not found")

        if self.use_transactions:
            with self.client.start_session() as session:
                with session.start_transaction():
                    return self._apply_vote(user_oid, candidate_oid, session)
        return self._apply_vote(user_oid, candidate_oid, None)

    def _apply_vote(self, user_oid: ObjectId, candidate_oid: ObjectId, session) -> Dict[str, Any]:
        user = self.users.find_one_and_update(
            {"_id": user_oid, "isVoted": False, "role": "voter"},
            {"$set": {"isVoted": True}},
            session=session,
        )
        if user is None:
            existing = self.users.find_one({"_id": user_oid}, session=session)
            if existing is None:
                raise NotFoundError("User not found")
            if existing.get("role") == "admin":
                raise ForbiddenError("Admin is not allowed to vote")
            raise ConflictError("You have already voted")

        candidate = self.candidates.find_one_and_update(
            {"_id": candidate_oid},
            {"$inc": {"voteCount": 1}, "$push": {"votes": {"user": user_oid, "votedAt": self._now()}}},
            return_document=ReturnDocument.AFTER,
            session=session,
        )
        if candidate is None:
            if session is None:
                self.users.update_one({"_id": user_oid}, {"$set": {"isVoted": False}})
                logger.warning(f"Candidate {candidate_oid} vanished mid-vote, restored flag for {user_oid}")
            # Inside a transaction the raise aborts both writes
            raise NotFoundError("Candidate not found")
        return candidate

    # --- Reviews ---

    def insert_review(self, review_data: Dict[str, Any]) -> Dict[str, Any]:
        record = dict(review_data, submittedAt=self._now())
        try:
            result = self.reviews.insert_one(record)
        except DuplicateKeyError as e:
            raise ConflictError(_duplicate_message(e))
        return self.reviews.find_one({"_id": result.inserted_id})

    def list_reviews(self, sentiment: Optional[str] = None) -> List[Dict[str, Any]]:
        query = {"sentiment": sentiment} if sentiment else {}
        return list(self.reviews.find(query).sort("submittedAt", DESCENDING))

    def count_reviews_by_sentiment(self) -> Dict[str, int]:
        pipeline = [{"$group": {"_id": "$sentiment", "count": {"$sum": 1}}}]
        return {row["_id"]: row["count"] for row in self.reviews.aggregate(pipeline)}
