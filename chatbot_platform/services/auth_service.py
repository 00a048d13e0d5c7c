import asyncio
from typing import List, Optional

import pydantic

from chatbot_platform.core.config import Settings, settings as default_settings
from chatbot_platform.core.exceptions import (
    DuplicateEmail,
    InvalidCredentials,
    MissingField,
    PasswordTooShort,
    RecordDecodeError,
    SessionDecodeError,
)
from chatbot_platform.core.security import (
    create_session_token,
    decode_session_token,
    hash_password,
    verify_password,
)
from chatbot_platform.schemas.user_schema import User
from chatbot_platform.services.persistent_store import USERS_KEY, PersistentStore
from chatbot_platform.services.session_store import SessionStore
from chatbot_platform.utils.logger import get_logger

logger = get_logger("chatbot_platform.services.auth_service")


class AuthService:
    """
    Credential checks and session lifecycle.

    - register/login mint a session token and keep it in the session store only
    - resume_session re-derives the current user from that token on startup
    - logout drops the token and the current user
    """

    def __init__(self, store: PersistentStore, session_store: SessionStore, config: Optional[Settings] = None):
        self.store = store
        self.session_store = session_store
        self.config = config or default_settings
        self.current_user: Optional[User] = None

    def _users(self) -> List[User]:
        try:
            return [User.model_validate(record) for record in self.store.get(USERS_KEY)]
        except (pydantic.ValidationError, TypeError) as e:
            logger.error("Stored user list is unreadable", extra={"error": str(e)})
            raise RecordDecodeError() from e

    def find_user(self, user_id: str) -> Optional[User]:
        for user in self._users():
            if user.id == user_id:
                return user
        return None

    def _start_session(self, user: User) -> User:
        token = create_session_token(user.id, self.config)
        self.session_store.set(token)
        self.current_user = user
        return user

    # ------ Register -----
    async def register(self, name: str, email: str, password: str) -> User:
        if not name or not name.strip() or not email or not email.strip() or not password:
            raise MissingField("All fields are required")
        if len(password) < self.config.MIN_PASSWORD_LENGTH:
            raise PasswordTooShort(self.config.MIN_PASSWORD_LENGTH)

        logger.info("User registration attempt")

        if any(u.email == email for u in self._users()):
            logger.warning("Registration failed - email exists")
            raise DuplicateEmail()

        digest = await asyncio.to_thread(hash_password, password, self.config.PASSWORD_HASH_ROUNDS)

        # Users may have changed while the digest was computed
        records = self.store.get(USERS_KEY)
        if any(record.get("email") == email for record in records):
            logger.warning("Registration failed - email exists")
            raise DuplicateEmail()

        user = User(name=name, email=email, password_digest=digest)
        records.append(user.to_record())
        self.store.put(USERS_KEY, records)

        logger.info("User registered successfully", extra={"user_id": user.id})
        return self._start_session(user)

    # ------ Login -----
    async def login(self, email: str, password: str) -> User:
        logger.info("Login attempt")

        user = next((u for u in self._users() if u.email == email), None)
        if user is None:
            # Unknown email still pays for one digest
            await asyncio.to_thread(hash_password, password or "-", self.config.PASSWORD_HASH_ROUNDS)
            logger.warning("Login failed - invalid credentials")
            raise InvalidCredentials()

        matches = await asyncio.to_thread(verify_password, password or "", user.password_digest)
        if not matches:
            logger.warning("Login failed - invalid credentials")
            raise InvalidCredentials()

        logger.info("Login successful", extra={"user_id": user.id})
        return self._start_session(user)

    # ------ Resume -----
    def resume_session(self) -> Optional[User]:
        """Return the user behind the stored token, or None if there is no usable session."""
        self.current_user = None

        token = self.session_store.get()
        if not token:
            return None

        try:
            claims = decode_session_token(token, self.config)
        except SessionDecodeError:
            logger.warning("Session resume failed - malformed token")
            return None

        user = self.find_user(claims["userId"])
        if user is None:
            logger.warning("Session resume failed - user not found", extra={"user_id": claims["userId"]})
            return None

        logger.info("Session resumed", extra={"user_id": user.id})
        self.current_user = user
        return user

    # ------ Logout -----
    def logout(self) -> None:
        self.session_store.remove()
        if self.current_user is not None:
            logger.info("User logged out", extra={"user_id": self.current_user.id})
        self.current_user = None
