import base64
import hashlib
import time
from typing import Optional

import bcrypt
from jose import jwt, JWTError

from chatbot_platform.core.config import Settings, settings as default_settings
from chatbot_platform.core.exceptions import SessionDecodeError
from chatbot_platform.utils.logger import get_logger

logger = get_logger("chatbot_platform.core.security")

# ------ Password Digest -----
def _prehash(password: str) -> bytes:
    """SHA-256 the full password so bcrypt's 72-byte input limit never truncates it."""
    return base64.b64encode(hashlib.sha256(password.encode('utf-8')).digest())

def hash_password(password: str, rounds: int = 12) -> str:
    """Digest a password with bcrypt over a SHA-256 pre-hash of the whole password.

    Returns the digest as a string; the salt and cost are embedded in it.
    """
    if not isinstance(password, str):
        password = str(password)

    if not password:
        raise ValueError("Password cannot be empty")

    password_bytes = _prehash(password)

    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password_bytes, salt)

    return hashed.decode('utf-8')

def verify_password(plain_password: str, password_digest: str) -> bool:
    """Recompute the digest of ``plain_password`` with the stored salt and compare."""
    if not isinstance(plain_password, str):
        plain_password = str(plain_password)

    if not plain_password or not password_digest:
        return False

    password_bytes = _prehash(plain_password)

    if isinstance(password_digest, str):
        password_digest = password_digest.encode('utf-8')

    try:
        return bcrypt.checkpw(password_bytes, password_digest)
    except ValueError:
        # Stored digest is not a bcrypt hash
        return False

# ------ Session Token -----
def create_session_token(user_id: str, config: Optional[Settings] = None) -> str:
    """Mint a session token carrying the user id and issue time (epoch millis).

    The token has no expiry: it lives exactly as long as the session store
    holding it.
    """
    config = config or default_settings
    claims = {"sub": user_id, "iat_ms": int(time.time() * 1000)}
    token = jwt.encode(claims, config.SESSION_SECRET_KEY, algorithm=config.SESSION_ALGORITHM)
    logger.debug("Session token created", extra={"user_id": user_id})
    return token

def decode_session_token(token: str, config: Optional[Settings] = None) -> dict:
    """
    Decode a session token into ``{"userId", "issuedAtEpochMillis"}``.

    Raises SessionDecodeError for anything that is not a well-formed token
    carrying a user id.
    """
    config = config or default_settings
    if not isinstance(token, str) or not token:
        raise SessionDecodeError()
    try:
        payload = jwt.decode(token, config.SESSION_SECRET_KEY, algorithms=[config.SESSION_ALGORITHM])
    except JWTError as e:
        logger.warning("Session token decode failed", extra={"error": str(e)})
        raise SessionDecodeError() from e

    user_id = payload.get("sub")
    if not isinstance(user_id, str) or not user_id:
        logger.warning("Session token missing subject")
        raise SessionDecodeError()
    return {"userId": user_id, "issuedAtEpochMillis": payload.get("iat_ms")}
