# snooker_api/crud/crud_otp.py
import logging
import math
from datetime import timedelta
from typing import Optional

from sqlalchemy.orm import Session

from snooker_api.auth import AuthService
from snooker_api.core.config import settings
from snooker_api.core.errors import RateLimitedError, ValidationFailedError
from snooker_api.core.timeutils import ensure_aware, utcnow
from snooker_api.db.models.one_time_passcode import OneTimePasscode, OTPPurpose

logger = logging.getLogger(__name__)


class CRUDOneTimePasscode:
    def get_live(self, db: Session, *, email: str, purpose: OTPPurpose) -> Optional[OneTimePasscode]:
        return (
            db.query(OneTimePasscode)
            .filter(
                OneTimePasscode.email == email.lower(),
                OneTimePasscode.purpose == purpose,
                OneTimePasscode.is_used.is_(False),
                OneTimePasscode.expires_at > utcnow(),
            )
            .order_by(OneTimePasscode.created_at.desc())
            .first()
        )

    def ensure_can_send(self, db: Session, *, email: str, purpose: OTPPurpose) -> None:
        """Refuse a new code inside the resend cooldown of the previous one."""
        cooldown = timedelta(seconds=settings.OTP_RESEND_COOLDOWN_SECONDS)
        recent = (
            db.query(OneTimePasscode)
            .filter(
                OneTimePasscode.email == email.lower(),
                OneTimePasscode.purpose == purpose,
                OneTimePasscode.created_at > utcnow() - cooldown,
            )
            .order_by(OneTimePasscode.created_at.desc())
            .first()
        )
        if recent:
            elapsed = (utcnow() - ensure_aware(recent.created_at)).total_seconds()
            wait_seconds = max(1, math.ceil(cooldown.total_seconds() - elapsed))
            raise RateLimitedError(
                f"Please wait {wait_seconds} seconds before requesting a new OTP",
                wait_seconds=wait_seconds,
            )

    def create(self, db: Session, *, email: str, purpose: OTPPurpose) -> OneTimePasscode:
        email = email.lower()
        db.query(OneTimePasscode).filter(
            OneTimePasscode.email == email, OneTimePasscode.purpose == purpose
        ).delete(synchronize_session=False)
        now = utcnow()
        db_obj = OneTimePasscode(
            email=email,
            code=AuthService.generate_otp(),
            purpose=purpose,
            attempts=0,
            is_used=False,
            created_at=now,
            expires_at=now + timedelta(minutes=settings.OTP_EXPIRE_MINUTES),
        )
        db.add(db_obj)
        db.commit()
        db.refresh(db_obj)
        return db_obj

    def verify(self, db: Session, *, email: str, code: str, purpose: OTPPurpose) -> OneTimePasscode:
        live = self.get_live(db, email=email, purpose=purpose)
        if live and live.code == code:
            live.is_used = True
            db.add(live)
            db.commit()
            return live
        if live:
            live.attempts += 1
            if live.attempts >= settings.OTP_MAX_ATTEMPTS:
                live.is_used = True
                logger.warning(f"OTP for {email} ({purpose.value}) burned after {live.attempts} attempts")
            db.add(live)
            db.commit()
        logger.warning(f"Invalid OTP submitted for {email} ({purpose.value})")
        raise ValidationFailedError("Invalid or expired OTP")


otp = CRUDOneTimePasscode()
