"""Tests for review submission and the admin review views under /review."""

import pytest
from fastapi.testclient import TestClient

from conftest import auth


@pytest.fixture
def voted(client: TestClient, signup, add_candidate):
    """Factory: a fresh voter who has already voted; returns their token."""
    candidate = add_candidate("Asha Rao")

    def _voted() -> str:
        token = signup()["token"]
        response = client.post(f"/candidate/vote/{candidate['_id']}", headers=auth(token))
        assert response.status_code == 200
        return token

    return _voted


def submit(client: TestClient, token: str, text: str):
    return client.post(
        "/review", json={"reviewText": text, "candidateName": "Asha Rao"}, headers=auth(token)
    )


class TestSubmitReview:
    """Tests for POST /review."""

    def test_review_is_tagged_with_sentiment(self, client: TestClient, voted):
        response = submit(client, voted(), "Voting was quick and easy, great app")

        assert response.status_code == 200
        review = response.json()["response"]
        assert review["sentiment"] == "positive"
        assert review["reviewText"] == "Voting was quick and easy, great app"
        assert review["submittedAt"]
        assert "user" not in review

    def test_review_before_voting_is_rejected(self, client: TestClient, voter):
        response = submit(client, voter["token"], "Looks like a nice system")

        assert response.status_code == 400
        assert response.json()["error"] == "You can only review after voting"

    def test_one_review_per_voter(self, client: TestClient, voted):
        token = voted()
        assert submit(client, token, "The process was smooth").status_code == 200

        again = submit(client, token, "Second thoughts, it was slow")

        assert again.status_code == 400
        assert again.json()["error"] == "You have already submitted a review"

    def test_short_review_is_rejected(self, client: TestClient, voted):
        response = submit(client, voted(), "   ok     ")

        assert response.status_code == 400
        assert "at least 10" in response.json()["error"]

    def test_admin_cannot_review(self, client: TestClient, admin_token):
        response = submit(client, admin_token, "Admin thoughts on this")
        assert response.status_code == 403


class TestReviewViews:
    """Tests for the admin statistics and listing endpoints."""

    @pytest.fixture
    def reviews(self, client: TestClient, voted):
        texts = [
            "Great experience, very easy to use",
            "Terrible, the page was slow and confusing",
            "I voted for my candidate today",
            "Smooth and secure process overall",
        ]
        for text in texts:
            assert submit(client, voted(), text).status_code == 200
        return texts

    def test_statistics_count_by_sentiment(self, client: TestClient, admin_token, reviews):
        response = client.get("/review/statistics", headers=auth(admin_token))

        assert response.status_code == 200
        assert response.json()["statistics"] == {"positive": 2, "negative": 1, "neutral": 1, "total": 4}

    def test_statistics_with_no_reviews(self, client: TestClient, admin_token):
        response = client.get("/review/statistics", headers=auth(admin_token))
        assert response.json()["statistics"] == {"positive": 0, "negative": 0, "neutral": 0, "total": 0}

    def test_all_reviews_newest_first(self, client: TestClient, admin_token, reviews):
        response = client.get("/review/all", headers=auth(admin_token))

        assert response.status_code == 200
        assert [r["reviewText"] for r in response.json()["reviews"]] == list(reversed(reviews))

    def test_filter_by_sentiment(self, client: TestClient, admin_token, reviews):
        response = client.get("/review/by-sentiment/negative", headers=auth(admin_token))

        assert response.status_code == 200
        listed = response.json()["reviews"]
        assert [r["reviewText"] for r in listed] == ["Terrible, the page was slow and confusing"]

    def test_filter_all_matches_all_endpoint(self, client: TestClient, admin_token, reviews):
        by_all = client.get("/review/by-sentiment/all", headers=auth(admin_token)).json()
        everything = client.get("/review/all", headers=auth(admin_token)).json()
        assert by_all == everything

    def test_unknown_sentiment_is_400(self, client: TestClient, admin_token):
        response = client.get("/review/by-sentiment/angry", headers=auth(admin_token))
        assert response.status_code == 400

    def test_voter_cannot_read_reviews(self, client: TestClient, voter):
        response = client.get("/review/all", headers=auth(voter["token"]))
        assert response.status_code == 403
