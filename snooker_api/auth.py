import hashlib
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from snooker_api.core.config import settings
from snooker_api.core.errors import AuthenticationError

logger = logging.getLogger(__name__)

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Checked in order; Chrome user agents also mention Safari.
_BROWSERS = ("Edge", "Opera", "Chrome", "Firefox", "Safari")
_OPERATING_SYSTEMS = (("Windows", "Windows"), ("Android", "Android"), ("iPhone", "iOS"),
                      ("iPad", "iOS"), ("Mac OS", "macOS"), ("Linux", "Linux"))


class AuthService:
    @staticmethod
    def verify_password(plain_password: str, hashed_password: str) -> bool:
        """Verify a password against a hash."""
        return pwd_context.verify(plain_password, hashed_password)

    @staticmethod
    def get_password_hash(password: str) -> str:
        """Generate a password hash."""
        return pwd_context.hash(password)

    @staticmethod
    def create_access_token(user_id, session_id: str, expires_delta: timedelta) -> str:
        """Sign a bearer token bound to one auth session."""
        expire = datetime.now(timezone.utc) + expires_delta
        to_encode = {"sub": str(user_id), "sid": session_id, "exp": expire, "type": "access"}
        return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

    @staticmethod
    def decode_token(token: str) -> dict:
        """Decode a JWT token."""
        try:
            payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        except JWTError as e:
            logger.warning(f"Token decode error: {str(e)}")
            raise AuthenticationError("Invalid token")
        if payload.get("type") != "access" or not payload.get("sub"):
            raise AuthenticationError("Invalid token")
        return payload

    @staticmethod
    def hash_token(token: str) -> str:
        return hashlib.sha256(token.encode()).hexdigest()

    @staticmethod
    def generate_session_id() -> str:
        return secrets.token_hex(32)

    @staticmethod
    def generate_otp() -> str:
        return f"{secrets.randbelow(1_000_000):06d}"

    @staticmethod
    def session_lifetime(remember_me: bool) -> timedelta:
        hours = settings.REMEMBER_ME_EXPIRE_HOURS if remember_me else settings.SESSION_EXPIRE_HOURS
        return timedelta(hours=hours)

    @staticmethod
    def parse_device_info(user_agent: Optional[str], ip: Optional[str], platform: Optional[str] = None) -> dict:
        """Rough browser/OS detection from the User-Agent header."""
        user_agent = user_agent or ""
        browser = next((name for name in _BROWSERS if name in user_agent), "Unknown")
        os_name = next((label for marker, label in _OPERATING_SYSTEMS if marker in user_agent), "Unknown")
        return {
            "user_agent": user_agent,
            "ip": ip,
            "platform": platform or "web",
            "browser": browser,
            "os": os_name,
        }
