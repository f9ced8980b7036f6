# snooker_api/services/notification_service.py
"""
Outgoing e-mail hand-off.

The API does not talk SMTP: messages are published to the ``email_outbox``
Redis channel, where the mailer picks them up.
"""
import logging

from snooker_api.core.config import settings
from snooker_api.db.models.one_time_passcode import OTPPurpose
from snooker_api.services.redis_service import redis_client

logger = logging.getLogger(__name__)

EMAIL_CHANNEL = "email_outbox"

OTP_SUBJECTS = {
    OTPPurpose.SIGNUP: "Verify your Snooker House account",
    OTPPurpose.LOGIN: "Your Snooker House login code",
    OTPPurpose.PASSWORD_RESET: "Reset your Snooker House password",
    OTPPurpose.EMAIL_VERIFICATION: "Verify your e-mail address",
}


async def send_otp_email(email: str, code: str, purpose: OTPPurpose, first_name: str = "") -> bool:
    if settings.ENVIRONMENT != "production":
        logger.info(f"OTP for {email} ({purpose.value}): {code}")
    delivered = await redis_client.publish_event(
        EMAIL_CHANNEL,
        "otp",
        {
            "to": email,
            "subject": OTP_SUBJECTS[purpose],
            "first_name": first_name,
            "code": code,
            "purpose": purpose.value,
            "expires_in_minutes": settings.OTP_EXPIRE_MINUTES,
        },
    )
    if not delivered:
        logger.warning(f"OTP e-mail for {email} could not be handed to the mailer")
    return delivered
