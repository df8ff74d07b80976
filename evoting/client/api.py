"""HTTP client for the voting API."""
import logging
from typing import Any, Dict, List, Optional

import httpx

from evoting.config import API_URL

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Non-2xx response from the API, carrying the server's error text."""

    def __init__(self, status_code: int, message: str):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message


class ApiClient:
    """
    One method per endpoint. The bearer token is kept on the client once a
    login or signup completes; ``token=`` overrides it for a single call.
    """

    def __init__(self, base_url: str = API_URL, token: Optional[str] = None,
                 http: Optional[httpx.Client] = None, timeout: float = 10.0):
        self.http = http or httpx.Client(base_url=base_url, timeout=timeout)
        self.token = token

    def close(self) -> None:
        self.http.close()

    def _request(self, method: str, path: str, auth: bool = False,
                 token: Optional[str] = None, **kwargs) -> Any:
        headers = {}
        bearer = token or self.token
        if auth or token:
            if not bearer:
                raise ApiError(401, "Not logged in")
            headers["Authorization"] = f"Bearer {bearer}"

        response = self.http.request(method, path, headers=headers, **kwargs)
        try:
            data = response.json()
        except ValueError:
            data = {"error": response.text}

        if not response.is_success:
            message = data.get("error") if isinstance(data, dict) else None
            logger.debug(f"{method} {path} -> {response.status_code}: {message}")
            raise ApiError(response.status_code, message or response.reason_phrase)
        return data

    # --- Accounts ---

    def signup(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        data = self._request("POST", "/user/signup", json=fields)
        self.token = data["token"]
        return data

    def login(self, aadhar: str, password: str) -> str:
        """Returns the token without activating it; the login flow decides when."""
        data = self._request("POST", "/user/login", json={"aadharCardNumber": aadhar, "password": password})
        return data["token"]

    def get_profile(self, token: Optional[str] = None) -> Dict[str, Any]:
        return self._request("GET", "/user/profile", auth=True, token=token)["user"]

    def change_password(self, current: str, new: str) -> str:
        data = self._request("PUT", "/user/profile/password", auth=True,
                             json={"currentPassword": current, "newPassword": new})
        return data["message"]

    def verify_aadhar(self, aadhar: str) -> Dict[str, str]:
        return self._request("POST", "/user/forgot-password/verify-aadhar", json={"aadharCardNumber": aadhar})

    def reset_password(self, aadhar: str, new: str) -> str:
        data = self._request("POST", "/user/forgot-password/reset",
                             json={"aadharCardNumber": aadhar, "newPassword": new})
        return data["message"]

    # --- Candidates & votes ---

    def list_candidates(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/candidate")

    def add_candidate(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", "/candidate", auth=True, json=fields)["response"]

    def update_candidate(self, candidate_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("PUT", f"/candidate/{candidate_id}", auth=True, json=fields)["response"]

    def delete_candidate(self, candidate_id: str) -> str:
        return self._request("DELETE", f"/candidate/{candidate_id}", auth=True)["message"]

    def vote(self, candidate_id: str) -> Dict[str, Any]:
        return self._request("POST", f"/candidate/vote/{candidate_id}", auth=True)

    def vote_count(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/candidate/vote/count")

    # --- Reviews ---

    def submit_review(self, text: str, candidate_name: Optional[str] = None) -> Dict[str, Any]:
        return self._request("POST", "/review", auth=True,
                             json={"reviewText": text, "candidateName": candidate_name})["response"]

    def review_statistics(self) -> Dict[str, int]:
        return self._request("GET", "/review/statistics", auth=True)["statistics"]

    def reviews(self, sentiment: str = "all") -> List[Dict[str, Any]]:
        path = "/review/all" if sentiment == "all" else f"/review/by-sentiment/{sentiment}"
        return self._request("GET", path, auth=True)["reviews"]
