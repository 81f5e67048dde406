from datetime import datetime, timedelta
from typing import Any, Dict, Optional, Tuple
from jose import JWTError, jwt
from passlib.context import CryptContext
import hashlib

from config import Settings, settings as default_settings
from domain.auth import TokenIssuer
from domain.exceptions import AuthenticationError
from domain.value_objects import utcnow

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__ident="2b"
)

def _prepare_password(password: str) -> str:
    """
    bcrypt only looks at the first 72 bytes of a password.
    Longer passwords are pre-hashed with SHA256 (64 hex chars).
    """
    password_bytes = password.encode('utf-8')
    if len(password_bytes) > 72:
        return hashlib.sha256(password_bytes).hexdigest()
    return password

def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password against hash"""
    return pwd_context.verify(_prepare_password(plain_password), hashed_password)

def get_password_hash(password: str) -> str:
    """Generate password hash"""
    return pwd_context.hash(_prepare_password(password))

def create_access_token(
    data: dict,
    expires_delta: Optional[timedelta] = None,
    now: Optional[datetime] = None,
    config: Settings = default_settings,
) -> str:
    """Create JWT access token"""
    to_encode = data.copy()
    issued_at = now or utcnow()
    if expires_delta:
        expire = issued_at + expires_delta
    else:
        expire = issued_at + timedelta(minutes=15)

    to_encode.update({"exp": expire, "iat": issued_at})
    return jwt.encode(to_encode, config.secret_key, algorithm=config.algorithm)


class JWTTokenIssuer(TokenIssuer):
    """HS256 bearer tokens signed with the configured secret"""

    def __init__(self, config: Settings = default_settings):
        self.config = config
        self.lifetime = timedelta(minutes=config.access_token_expire_minutes)

    def issue(self, subject: str, claims: Dict[str, Any], now: datetime) -> Tuple[str, datetime]:
        data = dict(claims, sub=subject)
        token = create_access_token(data, expires_delta=self.lifetime, now=now, config=self.config)
        return token, now + self.lifetime

    def decode(self, token: str) -> Dict[str, Any]:
        try:
            payload = jwt.decode(token, self.config.secret_key, algorithms=[self.config.algorithm])
        except JWTError as e:
            raise AuthenticationError("Could not validate credentials") from e
        if not payload.get("sub"):
            raise AuthenticationError("Could not validate credentials")
        return payload
