# finance_tracker/auth.py
# JWT tokens, password hashing, one-time codes and CSRF helpers

from datetime import datetime, timedelta
from typing import Optional
from passlib.context import CryptContext
from jose import JWTError, jwt
from fastapi import HTTPException, status
import hashlib
import logging
import secrets
import uuid

from .config import get_settings

logger = logging.getLogger(__name__)

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

OTP_LENGTH = 6
RESET_FINGERPRINT_LENGTH = 10

class AuthManager:
    """Authentication manager with JWT tokens and security features."""

    def __init__(self, secret_key: Optional[str] = None):
        settings = get_settings()
        self.secret_key = secret_key or settings.secret_key
        self.algorithm = settings.algorithm
        self.access_token_expire_minutes = settings.access_token_expire_minutes
        self.refresh_token_expire_days = settings.refresh_token_expire_days

    def verify_password(self, plain_password: str, hashed_password: str) -> bool:
        """Verify a plaintext password against its hash."""
        return pwd_context.verify(plain_password, hashed_password)

    def get_password_hash(self, password: str) -> str:
        """Hash a password for storing."""
        return pwd_context.hash(password)

    def validate_password_strength(self, password: str) -> dict:
        """Validate password strength and return feedback."""
        issues = []
        score = 0

        if len(password) < 8:
            issues.append("Password must be at least 8 characters long")
        else:
            score += 1

        checks = [
            (any(c.isupper() for c in password), "Password must contain an uppercase letter"),
            (any(c.islower() for c in password), "Password must contain a lowercase letter"),
            (any(c.isdigit() for c in password), "Password must contain a number"),
        ]
        for passed, message in checks:
            if passed:
                score += 1
            else:
                issues.append(message)

        # Special characters only raise the score
        if any(c in "!@#$%^&*()_+-=[]{}|;:,.<>?" for c in password):
            score += 1

        if score >= 5:
            strength = "strong"
        elif score >= 4:
            strength = "medium"
        elif score >= 2:
            strength = "weak"
        else:
            strength = "very_weak"

        return {
            "valid": len(issues) == 0,
            "strength": strength,
            "score": score,
            "issues": issues
        }

    def _encode(self, data: dict, token_type: str, expire: datetime) -> str:
        to_encode = data.copy()
        to_encode.update({
            "exp": expire,
            "type": token_type,
            "iat": datetime.utcnow(),
            "jti": uuid.uuid4().hex
        })
        return jwt.encode(to_encode, self.secret_key, algorithm=self.algorithm)

    def create_access_token(self, data: dict, expires_delta: Optional[timedelta] = None) -> str:
        """Create a JWT access token."""
        expire = datetime.utcnow() + (expires_delta or timedelta(minutes=self.access_token_expire_minutes))
        return self._encode(data, "access", expire)

    def create_refresh_token(self, data: dict) -> str:
        """Create a JWT refresh token."""
        expire = datetime.utcnow() + timedelta(days=self.refresh_token_expire_days)
        return self._encode(data, "refresh", expire)

    def verify_token(self, token: str, token_type: str = "access") -> dict:
        """Verify and decode a JWT token. Expiry is checked by jose."""
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Could not validate credentials"
            )

        if payload.get("type") != token_type:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail=f"Invalid token type. Expected {token_type}"
            )
        if token_blacklist.is_blacklisted(payload.get("jti")):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Token has been revoked"
            )
        return payload

    def refresh_access_token(self, payload: dict) -> dict:
        """Create a new access token from a verified refresh token payload."""
        user_data = {k: v for k, v in payload.items() if k not in ["exp", "iat", "type", "jti"]}

        return {
            "access_token": self.create_access_token(user_data),
            "token_type": "bearer"
        }

    def generate_reset_token(self, user_email: str, password_hash: str) -> str:
        """
        Generate a password reset token valid for one hour.

        The token carries the tail of the current password hash, so it stops
        working once the password changes.
        """
        data = {
            "email": user_email,
            "pwd": password_hash[-RESET_FINGERPRINT_LENGTH:],
            "reset_token": secrets.token_urlsafe(32),
            "type": "password_reset",
            "exp": datetime.utcnow() + timedelta(hours=1)
        }
        return jwt.encode(data, self.secret_key, algorithm=self.algorithm)

    def verify_reset_token(self, token: str) -> dict:
        """Verify a password reset token."""
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid or expired reset token"
            )

        if payload.get("type") != "password_reset":
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid reset token"
            )
        return payload

    def reset_token_is_current(self, payload: dict, password_hash: str) -> bool:
        """False once the password has changed since the token was issued."""
        fingerprint = payload.get("pwd") or ""
        return secrets.compare_digest(fingerprint, password_hash[-RESET_FINGERPRINT_LENGTH:])

    def generate_otp(self) -> str:
        """Six-digit numeric sign-in code."""
        return "".join(secrets.choice("0123456789") for _ in range(OTP_LENGTH))

    def hash_otp(self, code: str) -> str:
        return hashlib.sha256(code.encode()).hexdigest()

    def verify_otp(self, code: str, code_hash: str) -> bool:
        return secrets.compare_digest(self.hash_otp(code), code_hash)


class TokenBlacklist:
    """Revoked access tokens, keyed by jti. Entries are dropped once the token would have expired anyway."""

    def __init__(self):
        self.blacklisted_tokens = {}  # jti -> exp timestamp

    def add_token(self, jti: str, exp: Optional[float] = None):
        """Add token to blacklist."""
        if jti:
            self.blacklisted_tokens[jti] = exp or datetime.utcnow().timestamp()
            self.cleanup_expired_tokens()

    def is_blacklisted(self, jti: Optional[str]) -> bool:
        """Check if token is blacklisted."""
        return bool(jti) and jti in self.blacklisted_tokens

    def cleanup_expired_tokens(self):
        now = datetime.utcnow().timestamp()
        expired = [jti for jti, exp in self.blacklisted_tokens.items() if exp < now]
        for jti in expired:
            del self.blacklisted_tokens[jti]

    def clear(self):
        self.blacklisted_tokens.clear()


class SecurityManager:
    """CSRF helpers for cookie-authenticated requests."""

    @staticmethod
    def generate_csrf_token() -> str:
        """Generate CSRF token."""
        return secrets.token_urlsafe(32)

    @staticmethod
    def validate_csrf_token(token: Optional[str], stored_token: Optional[str]) -> bool:
        """Validate CSRF token in constant time."""
        if not token or not stored_token:
            return False
        return secrets.compare_digest(token, stored_token)


# Global instances
token_blacklist = TokenBlacklist()
auth_manager = AuthManager()
security_manager = SecurityManager()

# Convenience functions
def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    return auth_manager.verify_password(plain_password, hashed_password)

def get_password_hash(password: str) -> str:
    """Hash a password."""
    return auth_manager.get_password_hash(password)

def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create an access token."""
    return auth_manager.create_access_token(data, expires_delta)

def create_refresh_token(data: dict) -> str:
    return auth_manager.create_refresh_token(data)

def verify_token(token: str) -> dict:
    """Verify an access token."""
    return auth_manager.verify_token(token, "access")

def revoke_token(payload: dict):
    """Blacklist the token described by a decoded payload."""
    token_blacklist.add_token(payload.get("jti"), payload.get("exp"))
    logger.info("Revoked token for %s", payload.get("sub"))
