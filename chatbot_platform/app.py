import contextlib
from typing import Iterator, List, Optional

import httpx

from chatbot_platform.core.config import Settings, settings as default_settings
from chatbot_platform.core.exceptions import ChatbotPlatformError, NotAuthenticated, ProjectNotFound
from chatbot_platform.schemas.chat_schema import ChatMessage
from chatbot_platform.schemas.project_schema import Project
from chatbot_platform.schemas.user_schema import User
from chatbot_platform.services.auth_service import AuthService
from chatbot_platform.services.chat_client import ChatClient
from chatbot_platform.services.conversation import ConversationManager, ConversationState
from chatbot_platform.services.persistent_store import PersistentStore
from chatbot_platform.services.project_registry import ProjectRegistry
from chatbot_platform.services.session_store import SessionStore
from chatbot_platform.utils.logger import clear_operation_id, get_logger, new_operation_id

logger = get_logger("chatbot_platform.app")


class ChatbotPlatform:
    """
    Wires the stores and services together and holds the in-memory state a
    front end renders: current user, their projects, the active
    conversation and the last error message.

    Every public operation is an error boundary: a ChatbotPlatformError is
    turned into ``self.error`` (anything else into a generic message) and
    the operation returns None/False.
    """

    def __init__(
        self,
        config: Optional[Settings] = None,
        store: Optional[PersistentStore] = None,
        session_store: Optional[SessionStore] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config or default_settings
        self.store = store or PersistentStore(config=self.config)
        self.session_store = session_store or SessionStore()

        self.auth = AuthService(self.store, self.session_store, self.config)
        self.chat_client = ChatClient(self.config, transport=transport)
        self.conversation = ConversationManager(self.store, self.chat_client, self.config)
        self.registry = ProjectRegistry(self.store, self.conversation)

        self.projects: List[Project] = []
        self.error: Optional[str] = None

    # ------ Derived state -----
    @property
    def current_user(self) -> Optional[User]:
        return self.auth.current_user

    @property
    def selected_project(self) -> Optional[Project]:
        return self.conversation.project

    @property
    def messages(self) -> List[ChatMessage]:
        return list(self.conversation.history)

    @property
    def loading(self) -> bool:
        return self.conversation.state is ConversationState.SENDING

    @property
    def streaming(self) -> bool:
        return self.conversation.state is ConversationState.STREAMING

    @contextlib.contextmanager
    def _operation(self, name: str) -> Iterator[None]:
        new_operation_id()
        self.error = None
        try:
            yield
        except ChatbotPlatformError as e:
            self.error = e.message
            logger.warning("Operation failed", extra={"operation": name, "error_type": type(e).__name__})
        except Exception:
            self.error = ChatbotPlatformError.default_message
            logger.exception("Operation failed unexpectedly", extra={"operation": name})
        finally:
            clear_operation_id()

    def _require_user(self) -> User:
        if self.current_user is None:
            raise NotAuthenticated()
        return self.current_user

    def _owned_project(self, project_id: str) -> Project:
        user = self._require_user()
        project = self.registry.get(project_id)
        if project is None or project.user_id != user.id:
            raise ProjectNotFound()
        return project

    def _enter_dashboard(self, user: User) -> None:
        self.projects = self.registry.list(user.id)
        self.conversation.await_selection()

    def _reset_state(self) -> None:
        self.projects = []
        self.conversation.reset()

    # ------ Session -----
    def startup(self) -> Optional[User]:
        """Resume a session from the session store, if there is a usable one."""
        user = None
        with self._operation("startup"):
            resumed = self.auth.resume_session()
            if resumed is not None:
                self._enter_dashboard(resumed)
                user = resumed
        if user is None:
            self._reset_state()
        return user

    async def register(self, name: str, email: str, password: str) -> Optional[User]:
        user = None
        with self._operation("register"):
            user = await self.auth.register(name, email, password)
            self._enter_dashboard(user)
        return user

    async def login(self, email: str, password: str) -> Optional[User]:
        user = None
        with self._operation("login"):
            user = await self.auth.login(email, password)
            self._enter_dashboard(user)
        return user

    def logout(self) -> None:
        self.auth.logout()
        self._reset_state()
        self.error = None

    # ------ Projects -----
    def create_project(self, name: str, system_prompt: str) -> Optional[Project]:
        project = None
        with self._operation("create_project"):
            user = self._require_user()
            project = self.registry.create(user.id, name, system_prompt)
            self.projects = [*self.projects, project]
        return project

    def delete_project(self, project_id: str) -> bool:
        deleted = False
        with self._operation("delete_project"):
            self._owned_project(project_id)
            self.registry.delete(project_id)
            self.projects = [p for p in self.projects if p.id != project_id]
            deleted = True
        return deleted

    def select_project(self, project_id: str) -> bool:
        """Switch the active conversation; a reply still in flight is dropped."""
        selected = False
        with self._operation("select_project"):
            project = self._owned_project(project_id)
            selected = self.conversation.select_project(project)
        return selected

    # ------ Chat -----
    async def send(self, text: str) -> Optional[ChatMessage]:
        reply = None
        if self.conversation.busy:
            logger.debug("Send ignored while a reply is in flight")
            return None
        with self._operation("send"):
            self._require_user()
            reply = await self.conversation.send(text)
        return reply
