"""
Multi-step account flows that interleave the API with the OTP step-up.

Signup only reaches the server after the phone is verified, so cancelling
leaves nothing behind. Login checks credentials first (the OTP goes to the
mobile on record) and only activates the token after the code is confirmed.
Password reset looks the account up, verifies its phone, then resets.
"""
import logging
import re
from typing import Any, Dict, Optional

from evoting.client.api import ApiClient
from evoting.client.otp import OTPVerifier, VerificationSession
from evoting.config import AADHAR_LENGTH, MIN_PASSWORD_LENGTH, MIN_VOTER_AGE, MOBILE_LENGTH
from evoting.errors import ValidationError

logger = logging.getLogger(__name__)

SIGNUP_REQUIRED = ("name", "age", "address", "mobile", "email", "aadharCardNumber", "password")


def _digits(value: Any, length: int) -> bool:
    return re.fullmatch(rf"[0-9]{{{length}}}", str(value or "")) is not None


def validate_signup_form(form: Dict[str, Any]) -> None:
    if any(not str(form.get(key) or "").strip() for key in SIGNUP_REQUIRED):
        raise ValidationError("Please fill in all required fields")
    if not _digits(form["aadharCardNumber"], AADHAR_LENGTH):
        raise ValidationError(f"Aadhar card number must be {AADHAR_LENGTH} digits")
    if not _digits(form["mobile"], MOBILE_LENGTH):
        raise ValidationError(f"Mobile number must be {MOBILE_LENGTH} digits")
    try:
        age = int(form["age"])
    except (TypeError, ValueError):
        raise ValidationError("Age must be a number")
    if age < MIN_VOTER_AGE:
        raise ValidationError(f"Age must be {MIN_VOTER_AGE} or above")


def validate_new_password(password: str, confirm: Optional[str] = None) -> None:
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    if confirm is not None and confirm != password:
        raise ValidationError("Passwords do not match")


class _OTPFlow:
    def __init__(self, api: ApiClient, verifier: OTPVerifier):
        self.api = api
        self.verifier = verifier
        self.session: Optional[VerificationSession] = None

    def resend(self) -> VerificationSession:
        """
        Send a fresh code. A session closed by expiry or too many attempts is
        replaced by a new one for the same number, once the cooldown allows.
        """
        if self.session is None:
            raise ValidationError("Nothing to resend, start the flow first")
        if self.session.closed and not self.session.verified:
            self.verifier.check_cooldown(self.session)
            self.session = self.verifier.start(self.session.phone_number)
            return self.session
        return self.verifier.resend(self.session)

    def remaining_cooldown(self) -> int:
        return self.verifier.remaining_cooldown(self.session) if self.session else 0

    def cancel(self) -> None:
        self.verifier.cancel(self.session)
        self.session = None
        self._discard()

    def _discard(self) -> None:
        pass


class SignupFlow(_OTPFlow):
    def __init__(self, api: ApiClient, verifier: OTPVerifier):
        super().__init__(api, verifier)
        self.pending: Optional[Dict[str, Any]] = None

    def submit(self, form: Dict[str, Any]) -> VerificationSession:
        validate_signup_form(form)
        self.session = self.verifier.start(str(form["mobile"]))
        self.pending = dict(form)
        return self.session

    def confirm(self, code: str) -> Dict[str, Any]:
        """Verify the code, then create the account. Returns the new account."""
        self.verifier.verify(self.session, code)
        data = self.api.signup(self.pending)
        self.pending = None
        self.session = None
        logger.info(f"Signed up as {data['response']['role']}")
        return data["response"]

    def _discard(self) -> None:
        self.pending = None


class LoginFlow(_OTPFlow):
    def __init__(self, api: ApiClient, verifier: OTPVerifier):
        super().__init__(api, verifier)
        self.pending_token: Optional[str] = None
        self.pending_user: Optional[Dict[str, Any]] = None

    def submit(self, aadhar: str, password: str) -> VerificationSession:
        if not aadhar or not password:
            raise ValidationError("Please enter both Aadhar number and password")
        if not _digits(aadhar, AADHAR_LENGTH):
            raise ValidationError(f"Aadhar card number must be {AADHAR_LENGTH} digits")

        token = self.api.login(aadhar, password)
        user = self.api.get_profile(token=token)
        self.session = self.verifier.start(user["mobile"])
        self.pending_token, self.pending_user = token, user
        return self.session

    def confirm(self, code: str) -> Dict[str, Any]:
        """Verify the code and activate the session token. Returns the account."""
        self.verifier.verify(self.session, code)
        self.api.token = self.pending_token
        user = self.pending_user
        self._discard()
        self.session = None
        return user

    def _discard(self) -> None:
        self.pending_token = None
        self.pending_user = None


class PasswordResetFlow(_OTPFlow):
    def __init__(self, api: ApiClient, verifier: OTPVerifier):
        super().__init__(api, verifier)
        self.aadhar: Optional[str] = None
        self.masked_mobile: Optional[str] = None
        self.phone_verified = False

    def submit(self, aadhar: str) -> VerificationSession:
        if not _digits(aadhar, AADHAR_LENGTH):
            raise ValidationError(f"Please enter a valid {AADHAR_LENGTH}-digit Aadhar number")
        found = self.api.verify_aadhar(aadhar)
        self.session = self.verifier.start(found["mobile"])
        self.aadhar = aadhar
        self.masked_mobile = found["maskedMobile"]
        return self.session

    def confirm(self, code: str) -> None:
        self.verifier.verify(self.session, code)
        self.phone_verified = True

    def reset(self, new_password: str, confirm_password: Optional[str] = None) -> str:
        if not self.phone_verified:
            raise ValidationError("Verify your mobile number first")
        validate_new_password(new_password, confirm_password)
        message = self.api.reset_password(self.aadhar, new_password)
        self._discard()
        self.session = None
        return message

    def _discard(self) -> None:
        self.aadhar = None
        self.masked_mobile = None
        self.phone_verified = False
