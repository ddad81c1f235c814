# app/core/otp_client.py
import logging
from functools import lru_cache
from typing import Protocol

from twilio.rest import Client

from app.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

APPROVED = "approved"


class OTPGateway(Protocol):
    """
    Boundary to the one-time-code provider.

    Both calls return the provider's verification status string
    ("pending", "approved", "canceled", ...). Only "approved" means the
    code was accepted.
    """

    def send_verification(self, phone_number: str) -> str: ...

    def check_verification(self, phone_number: str, code: str) -> str: ...


class TwilioVerifyGateway:
    """
    OTP gateway backed by a Twilio Verify v2 service.

    The REST client is created on first use so that routes which never
    touch OTP keep working when Twilio is not configured.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self._client: Client | None = None

    @property
    def client(self) -> Client:
        if self._client is None:
            if not (
                self.settings.TWILIO_ACCOUNT_SID
                and self.settings.TWILIO_AUTH_TOKEN
                and self.settings.TWILIO_VERIFY_SERVICE_SID
            ):
                raise RuntimeError(
                    "Twilio Verify is not configured. Please set TWILIO_ACCOUNT_SID, "
                    "TWILIO_AUTH_TOKEN and TWILIO_VERIFY_SERVICE_SID in .env."
                )
            self._client = Client(
                self.settings.TWILIO_ACCOUNT_SID,
                self.settings.TWILIO_AUTH_TOKEN,
            )
        return self._client

    def _service(self):
        return self.client.verify.v2.services(self.settings.TWILIO_VERIFY_SERVICE_SID)

    def send_verification(self, phone_number: str) -> str:
        verification = self._service().verifications.create(to=phone_number, channel="sms")
        logger.info("OTP sent to %s: %s", phone_number, verification.status)
        return verification.status

    def check_verification(self, phone_number: str, code: str) -> str:
        check = self._service().verification_checks.create(to=phone_number, code=code)
        logger.info("OTP check for %s: %s", phone_number, check.status)
        return check.status


@lru_cache
def get_otp_gateway() -> OTPGateway:
    """
    FastAPI dependency returning the process-wide OTP gateway.

    Tests replace it through app.dependency_overrides.
    """
    return TwilioVerifyGateway(get_settings())
