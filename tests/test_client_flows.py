"""End-to-end tests for the client flows and dashboards against the in-process API."""

import pytest
from fastapi.testclient import TestClient

from evoting.client.api import ApiClient, ApiError
from evoting.client.cache import DataCache
from evoting.client.dashboard import AdminDashboard, VoterDashboard
from evoting.client.flows import LoginFlow, PasswordResetFlow, SignupFlow
from evoting.client.otp import OTPError, OTPVerifier
from evoting.errors import ValidationError

from test_client_otp import FakeClock, RecordingProvider


@pytest.fixture
def provider():
    return RecordingProvider()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def verifier(provider, clock):
    return OTPVerifier(provider, clock=clock)


@pytest.fixture
def api(client: TestClient) -> ApiClient:
    return ApiClient(http=client)


def signed_up(client: TestClient, verifier, provider, form) -> ApiClient:
    """Run a full signup flow on a fresh ApiClient and return it logged in."""
    api = ApiClient(http=client)
    flow = SignupFlow(api, verifier)
    flow.submit(form)
    flow.confirm(provider.last_code())
    return api


class TestSignupFlow:
    def test_account_is_created_only_after_otp(self, api, verifier, provider, make_user_payload, storage):
        form = make_user_payload()
        flow = SignupFlow(api, verifier)

        flow.submit(form)
        assert storage.find_user_by("aadharCardNumber", form["aadharCardNumber"]) is None
        assert provider.sent[-1][0] == f"+91{form['mobile']}"

        account = flow.confirm(provider.last_code())

        assert account["aadharCardNumber"] == form["aadharCardNumber"]
        assert api.token
        assert api.get_profile()["name"] == form["name"]

    def test_wrong_code_does_not_create_account(self, api, verifier, make_user_payload, storage):
        form = make_user_payload()
        flow = SignupFlow(api, verifier)
        flow.submit(form)

        with pytest.raises(OTPError):
            flow.confirm("999999")
        assert storage.find_user_by("aadharCardNumber", form["aadharCardNumber"]) is None

    def test_cancel_discards_pending_form(self, api, verifier, provider, make_user_payload):
        flow = SignupFlow(api, verifier)
        flow.submit(make_user_payload())

        flow.cancel()

        assert flow.pending is None
        with pytest.raises(OTPError) as exc:
            flow.confirm(provider.last_code())
        assert exc.value.code == "NO_SESSION"

    @pytest.mark.parametrize(
        "overrides",
        [
            {"aadharCardNumber": "1234"},
            {"aadharCardNumber": "123456789012\n"},
            {"mobile": "12345"},
            {"mobile": "\u0669" * 10},
            {"age": 16},
            {"email": ""},
        ],
    )
    def test_local_validation_happens_before_otp(self, api, verifier, provider, make_user_payload, overrides):
        with pytest.raises(ValidationError):
            SignupFlow(api, verifier).submit(make_user_payload(**overrides))
        assert provider.sent == []

    def test_server_rejection_surfaces_as_api_error(self, client, verifier, provider, make_user_payload):
        signed_up(client, verifier, provider, make_user_payload(role="admin"))

        with pytest.raises(ApiError) as exc:
            signed_up(client, verifier, provider, make_user_payload(role="admin"))
        assert exc.value.status_code == 400
        assert exc.value.message == "Admin user already exists"


class TestLoginFlow:
    def test_token_activates_after_otp(self, client, api, verifier, provider, signup):
        user = signup(mobile="9876543210")["payload"]
        flow = LoginFlow(api, verifier)

        flow.submit(user["aadharCardNumber"], user["password"])
        assert api.token is None
        assert provider.sent[-1][0] == "+919876543210"

        account = flow.confirm(provider.last_code())

        assert account["aadharCardNumber"] == user["aadharCardNumber"]
        assert api.get_profile()["_id"] == account["_id"]

    def test_bad_credentials_send_no_otp(self, api, verifier, provider, signup):
        user = signup()["payload"]

        with pytest.raises(ApiError) as exc:
            LoginFlow(api, verifier).submit(user["aadharCardNumber"], "wrong-password")
        assert exc.value.status_code == 401
        assert provider.sent == []

    def test_resend_restarts_after_too_many_attempts(self, api, verifier, provider, clock, signup):
        user = signup()["payload"]
        flow = LoginFlow(api, verifier)
        flow.submit(user["aadharCardNumber"], user["password"])
        for _ in range(verifier.max_attempts - 1):
            with pytest.raises(OTPError):
                flow.confirm("999999")
        with pytest.raises(OTPError) as exc:
            flow.confirm("999999")
        assert exc.value.code == "TOO_MANY_ATTEMPTS"

        with pytest.raises(OTPError) as exc:
            flow.resend()
        assert exc.value.code == "RATE_LIMITED"

        clock.advance(verifier.cooldown)
        session = flow.resend()

        assert not session.closed
        assert flow.confirm(provider.last_code())["aadharCardNumber"] == user["aadharCardNumber"]
        assert api.token

    def test_resend_restarts_expired_session(self, api, verifier, provider, clock, signup):
        user = signup()["payload"]
        flow = LoginFlow(api, verifier)
        flow.submit(user["aadharCardNumber"], user["password"])
        clock.advance(verifier.ttl + 1)
        with pytest.raises(OTPError) as exc:
            flow.confirm(provider.last_code())
        assert exc.value.code == "SESSION_EXPIRED"

        flow.resend()

        assert flow.confirm(provider.last_code())
        assert api.token

    def test_cancel_keeps_client_logged_out(self, api, verifier, signup):
        user = signup()["payload"]
        flow = LoginFlow(api, verifier)
        flow.submit(user["aadharCardNumber"], user["password"])

        flow.cancel()

        assert api.token is None
        assert flow.pending_token is None


class TestPasswordResetFlow:
    def test_reset_after_phone_verification(self, client, api, verifier, provider, signup):
        user = signup(mobile="9876543210")["payload"]
        flow = PasswordResetFlow(api, verifier)

        flow.submit(user["aadharCardNumber"])
        assert flow.masked_mobile == "98****3210"
        flow.confirm(provider.last_code())
        flow.reset("brand-new", "brand-new")

        assert api.login(user["aadharCardNumber"], "brand-new")
        with pytest.raises(ApiError):
            api.login(user["aadharCardNumber"], user["password"])

    def test_reset_requires_verified_phone(self, api, verifier, signup):
        user = signup()["payload"]
        flow = PasswordResetFlow(api, verifier)
        flow.submit(user["aadharCardNumber"])

        with pytest.raises(ValidationError):
            flow.reset("brand-new")

    def test_mismatched_confirmation(self, api, verifier, provider, signup):
        flow = PasswordResetFlow(api, verifier)
        flow.submit(signup()["payload"]["aadharCardNumber"])
        flow.confirm(provider.last_code())

        with pytest.raises(ValidationError):
            flow.reset("brand-new", "brand-old")

    def test_unknown_aadhar(self, api, verifier):
        with pytest.raises(ApiError) as exc:
            PasswordResetFlow(api, verifier).submit("111122223333")
        assert exc.value.status_code == 404


class TestDashboards:
    @pytest.fixture
    def admin(self, client, verifier, provider, make_user_payload) -> AdminDashboard:
        return AdminDashboard(signed_up(client, verifier, provider, make_user_payload(role="admin")))

    @pytest.fixture
    def voter(self, client, verifier, provider, make_user_payload) -> VoterDashboard:
        return VoterDashboard(signed_up(client, verifier, provider, make_user_payload()))

    def test_cache_serves_stale_until_forced(self, admin, voter):
        assert voter.candidates() == []
        admin.add_candidate("Asha Rao", "Green", 45)

        assert voter.candidates() == []
        assert [c["name"] for c in voter.candidates(force_refresh=True)] == ["Asha Rao"]

    def test_admin_mutations_refresh_candidates(self, admin):
        created = admin.add_candidate("Asha Rao", "Green", 45)
        assert [c["name"] for c in admin.candidates()] == ["Asha Rao"]

        admin.update_candidate(created["_id"], party="Blue")
        assert admin.candidates()[0]["party"] == "Blue"

        admin.delete_candidate(created["_id"])
        assert admin.candidates() == []

    def test_candidate_changes_refresh_results(self, admin):
        created = admin.add_candidate("Asha Rao", "Green", 45)
        assert [row["name"] for row in admin.results()] == ["Asha Rao"]

        admin.add_candidate("Ravi Kumar", "Blue", 50)
        assert [row["name"] for row in admin.results()] == ["Asha Rao", "Ravi Kumar"]

        admin.update_candidate(created["_id"], name="Asha R.")
        assert [row["name"] for row in admin.results()] == ["Asha R.", "Ravi Kumar"]

    def test_vote_and_review_round_trip(self, admin, voter):
        first = admin.add_candidate("Asha Rao", "Green", 45)
        admin.add_candidate("Ravi Kumar", "Blue", 50)
        assert not voter.has_voted()

        voter.vote(first["_id"])

        assert voter.has_voted()
        with pytest.raises(ApiError):
            voter.vote(first["_id"])
        assert admin.leader()["name"] == "Asha Rao"
        assert admin.total_votes() == 1
        assert admin.vote_share(admin.results()[0]) == 100.0

        voter.submit_review("Easy and smooth experience", "Asha Rao")
        assert admin.review_statistics()["positive"] == 1
        assert len(admin.reviews("positive")) == 1
        assert admin.reviews("negative") == []

    def test_review_is_validated_locally(self, voter):
        with pytest.raises(ValidationError):
            voter.submit_review("too short")

    def test_no_leader_without_votes(self, admin):
        admin.add_candidate("Asha Rao", "Green", 45)
        assert admin.leader() is None
        assert admin.vote_share(admin.results()[0]) == 0.0

    def test_logout_clears_cache_and_token(self, voter):
        voter.profile()
        voter.logout()

        assert voter.api.token is None
        assert not voter.cache.is_loaded("profile")


class TestDataCache:
    def test_loader_called_once_until_invalidated(self):
        calls = []
        cache = DataCache()

        def loader():
            calls.append(1)
            return len(calls)

        assert cache.get("results", loader) == 1
        assert cache.get("results", loader) == 1
        cache.invalidate("results")
        assert cache.get("results", loader) == 2
        assert cache.get("results", loader, force_refresh=True) == 3

    def test_unknown_kind(self):
        with pytest.raises(KeyError):
            DataCache().get("elections", lambda: None)
