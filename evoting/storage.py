# evoting/storage.py
# JSON-file dummy DB with the same interface as storage_mongo.MongoStorage.
# Used for local development (STORAGE_BACKEND=file) and the test-suite.
import json
import logging
import os
import threading
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from bson import ObjectId

from evoting.errors import ConflictError, ForbiddenError, NotFoundError, StorageError

logger = logging.getLogger(__name__)

EMPTY_DB = {"users": {}, "candidates": {}, "reviews": {}}
UNIQUE_USER_FIELDS = ("aadharCardNumber", "mobile", "email")


def _empty_db() -> Dict[str, Any]:
    return {name: {} for name in EMPTY_DB}


class FileStorage:
    def __init__(self, path: str):
        self.path = path
        # Every read-modify-write happens under this lock
        self._lock = threading.RLock()
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        if not os.path.exists(path):
            self._write_db(_empty_db())
        logger.info(f"Using JSON dummy DB at {path}")

    def _read_db(self) -> Dict[str, Any]:
        """
        Read the dummy DB file. A missing or empty file reads as an empty DB;
        a corrupted one raises StorageError and is left untouched on disk.
        """
        try:
            with open(self.path, "r") as f:
                raw = f.read()
        except FileNotFoundError:
            return _empty_db()
        if not raw.strip():
            return _empty_db()
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error(f"Dummy DB at {self.path} is corrupted: {e}")
            raise StorageError("Stored data is unreadable") from e
        for name in EMPTY_DB:
            data.setdefault(name, {})
        return data

    def _write_db(self, data: Dict[str, Any]) -> None:
        tmp_path = f"{self.path}.tmp"
        with open(tmp_path, "w") as f:
            json.dump(data, f, indent=2, default=str)
        os.replace(tmp_path, self.path)

    @staticmethod
    def _new_id() -> str:
        return str(ObjectId())

    @staticmethod
    def _now() -> str:
        return datetime.now(timezone.utc).isoformat()

    def ping(self) -> bool:
        return os.path.exists(self.path)

    def close(self) -> None:
        pass

    # --- Users ---

    def count_admins(self, exclude_id: Optional[str] = None) -> int:
        users = self._read_db()["users"]
        return sum(1 for uid, u in users.items() if u.get("role") == "admin" and uid != exclude_id)

    def insert_user(self, user_data: Dict[str, Any]) -> Dict[str, Any]:
        with self._lock:
            db = self._read_db()
            users = db["users"].values()
            # Same guarantees as the unique indexes in MongoDB
            if user_data.get("role") == "admin" and any(u.get("role") == "admin" for u in users):
                raise ConflictError("Only one admin is allowed")
            for field in UNIQUE_USER_FIELDS:
                value = user_data.get(field)
                if value is not None and any(u.get(field) == value for u in users):
                    raise ConflictError(f"User with the same {field} already exists")
            user_id = self._new_id()
            record = dict(user_data, _id=user_id)
            db["users"][user_id] = record
            self._write_db(db)
        logger.info(f"User {user_id} saved successfully")
        return record

    def find_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        return self._read_db()["users"].get(user_id)

    def find_user_by(self, field: str, value: Any) -> Optional[Dict[str, Any]]:
        for user in self._read_db()["users"].values():
            if user.get(field) == value:
                return user
        return None

    def update_user(self, user_id: str, update_data: Dict[str, Any]) -> bool:
        with self._lock:
            db = self._read_db()
            user = db["users"].get(user_id)
            if user is None:
                return False
            if update_data.get("role") == "admin" and self.count_admins(exclude_id=user_id):
                raise ConflictError("Only one admin is allowed")
            user.update(update_data)
            self._write_db(db)
        return True

    # --- Candidates ---

    def insert_candidate(self, candidate_data: Dict[str, Any]) -> Dict[str, Any]:
        with self._lock:
            db = self._read_db()
            candidate_id = self._new_id()
            record = dict(candidate_data, _id=candidate_id, voteCount=0, votes=[], createdAt=self._now())
            db["candidates"][candidate_id] = record
            self._write_db(db)
        return record

    def list_candidates(self) -> List[Dict[str, Any]]:
        return list(self._read_db()["candidates"].values())

    def find_candidate(self, candidate_id: str) -> Optional[Dict[str, Any]]:
        return self._read_db()["candidates"].get(candidate_id)

    def update_candidate(self, candidate_id: str, update_data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        with self._lock:
            db = self._read_db()
            candidate = db["candidates"].get(candidate_id)
            if candidate is None:
                return None
            candidate.update(update_data)
            self._write_db(db)
        return candidate

    def delete_candidate(self, candidate_id: str) -> bool:
        with self._lock:
            db = self._read_db()
            if db["candidates"].pop(candidate_id, None) is None:
                return False
            self._write_db(db)
        return True

    def vote_tally(self) -> List[Dict[str, Any]]:
        # sorted() is stable, so ties keep insertion order
        candidates = self.list_candidates()
        return sorted(candidates, key=lambda c: c.get("voteCount", 0), reverse=True)

    def cast_vote(self, user_id: str, candidate_id: str) -> Dict[str, Any]:
        """
        Flip the user's isVoted flag and count the vote in one step.

        The whole check-and-write runs under the store lock and is written in
        a single file replace, so either both changes land or neither does.
        """
        with self._lock:
            db = self._read_db()
            user = db["users"].get(user_id)
            if user is None:
                raise NotFoundError("User not found")
            if user.get("role") == "admin":
                raise ForbiddenError("Admin is not allowed to vote")
            if user.get("isVoted"):
                raise ConflictError("You have already voted")
            candidate = db["candidates"].get(candidate_id)
            if candidate is None:
                raise NotFoundError("Candidate not found")

            user["isVoted"] = True
            candidate["voteCount"] = candidate.get("voteCount", 0) + 1
            candidate.setdefault("votes", []).append({"user": user_id, "votedAt": self._now()})
            self._write_db(db)
        return candidate

    # --- Reviews ---

    def insert_review(self, review_data: Dict[str, Any]) -> Dict[str, Any]:
        with self._lock:
            db = self._read_db()
            if any(r.get("user") == review_data.get("user") for r in db["reviews"].values()):
                raise ConflictError("You have already submitted a review")
            review_id = self._new_id()
            record = dict(review_data, _id=review_id, submittedAt=self._now())
            db["reviews"][review_id] = record
            self._write_db(db)
        return record

    def list_reviews(self, sentiment: Optional[str] = None) -> List[Dict[str, Any]]:
        reviews = [
            r for r in self._read_db()["reviews"].values()
            if sentiment is None or r.get("sentiment") == sentiment
        ]
        # ISO timestamps sort chronologically
        return sorted(reviews, key=lambda r: r.get("submittedAt", ""), reverse=True)

    def count_reviews_by_sentiment(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for review in self._read_db()["reviews"].values():
            label = review.get("sentiment")
            counts[label] = counts.get(label, 0) + 1
        return counts
