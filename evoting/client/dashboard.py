"""Voter and admin dashboards: view state over the API, cached per data type."""
import logging
from typing import Any, Dict, List, Optional

from evoting.client.api import ApiClient
from evoting.client.cache import DataCache
from evoting.client.flows import validate_new_password
from evoting.config import MIN_REVIEW_LENGTH
from evoting.errors import ValidationError

logger = logging.getLogger(__name__)


class _Dashboard:
    def __init__(self, api: ApiClient, cache: Optional[DataCache] = None):
        self.api = api
        self.cache = cache or DataCache()

    def profile(self, force_refresh: bool = False) -> Dict[str, Any]:
        return self.cache.get("profile", self.api.get_profile, force_refresh)

    def candidates(self, force_refresh: bool = False) -> List[Dict[str, Any]]:
        return self.cache.get("candidates", self.api.list_candidates, force_refresh)

    def change_password(self, current: str, new: str, confirm: Optional[str] = None) -> str:
        validate_new_password(new, confirm)
        return self.api.change_password(current, new)

    def logout(self) -> None:
        self.api.token = None
        self.cache.clear()


class VoterDashboard(_Dashboard):
    def has_voted(self) -> bool:
        return bool(self.profile().get("isVoted"))

    def vote(self, candidate_id: str) -> Dict[str, Any]:
        if not candidate_id:
            raise ValidationError("Please select a candidate to vote for")
        result = self.api.vote(candidate_id)
        # The flag lives on the profile, so reload it
        self.profile(force_refresh=True)
        self.cache.invalidate("results")
        return result

    def submit_review(self, text: str, candidate_name: Optional[str] = None) -> Dict[str, Any]:
        text = (text or "").strip()
        if not text:
            raise ValidationError("Please write a review before submitting")
        if len(text) < MIN_REVIEW_LENGTH:
            raise ValidationError(f"Review must be at least {MIN_REVIEW_LENGTH} characters long")
        return self.api.submit_review(text, candidate_name)


class AdminDashboard(_Dashboard):
    def __init__(self, api: ApiClient, cache: Optional[DataCache] = None):
        super().__init__(api, cache)
        self.selected_sentiment = "all"

    # --- Candidates ---

    def add_candidate(self, name: str, party: str, age: int) -> Dict[str, Any]:
        created = self.api.add_candidate({"name": name, "party": party, "age": age})
        self.candidates(force_refresh=True)
        self.cache.invalidate("results")
        return created

    def update_candidate(self, candidate_id: str, **fields) -> Dict[str, Any]:
        updated = self.api.update_candidate(candidate_id, fields)
        self.candidates(force_refresh=True)
        self.cache.invalidate("results")
        return updated

    def delete_candidate(self, candidate_id: str) -> str:
        message = self.api.delete_candidate(candidate_id)
        self.candidates(force_refresh=True)
        self.cache.invalidate("results")
        return message

    # --- Results ---

    def results(self, force_refresh: bool = False) -> List[Dict[str, Any]]:
        return self.cache.get("results", self.api.vote_count, force_refresh)

    def total_votes(self) -> int:
        return sum(row["count"] for row in self.results())

    def leader(self) -> Optional[Dict[str, Any]]:
        results = self.results()
        if not results or results[0]["count"] == 0:
            return None
        return results[0]

    def vote_share(self, row: Dict[str, Any]) -> float:
        total = self.total_votes()
        return round(row["count"] * 100.0 / total, 1) if total else 0.0

    # --- Reviews ---

    def review_statistics(self, force_refresh: bool = False) -> Dict[str, int]:
        return self.cache.get("reviewStats", self.api.review_statistics, force_refresh)

    def reviews(self, sentiment: Optional[str] = None, force_refresh: bool = False) -> List[Dict[str, Any]]:
        if sentiment is not None and sentiment != self.selected_sentiment:
            self.selected_sentiment = sentiment
            force_refresh = True
        return self.cache.get("reviews", lambda: self.api.reviews(self.selected_sentiment), force_refresh)

    def refresh_reviews(self) -> None:
        self.review_statistics(force_refresh=True)
        self.reviews(force_refresh=True)
