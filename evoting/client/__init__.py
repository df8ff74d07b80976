"""Client side of the voting app: API calls, OTP step-up flows and dashboards."""
from evoting.client.api import ApiClient, ApiError
from evoting.client.cache import DataCache
from evoting.client.dashboard import AdminDashboard, VoterDashboard
from evoting.client.flows import LoginFlow, PasswordResetFlow, SignupFlow
from evoting.client.otp import ConsoleOTPProvider, OTPError, OTPVerifier, VerificationSession

__all__ = [
    "AdminDashboard",
    "ApiClient",
    "ApiError",
    "ConsoleOTPProvider",
    "DataCache",
    "LoginFlow",
    "OTPError",
    "OTPVerifier",
    "PasswordResetFlow",
    "SignupFlow",
    "VerificationSession",
    "VoterDashboard",
]
