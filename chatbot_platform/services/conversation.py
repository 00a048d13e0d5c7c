import asyncio
from enum import Enum
from typing import Callable, List, Optional

import pydantic

from chatbot_platform.core.config import Settings, settings as default_settings
from chatbot_platform.core.exceptions import ChatbotPlatformError, ConfigurationError, RecordDecodeError, StorageError
from chatbot_platform.schemas.chat_schema import ChatMessage
from chatbot_platform.schemas.project_schema import Project
from chatbot_platform.services.chat_client import ChatClient
from chatbot_platform.services.persistent_store import PersistentStore, message_log_key
from chatbot_platform.utils.logger import get_logger

logger = get_logger("chatbot_platform.services.conversation")

RevealListener = Callable[[str], None]
StateListener = Callable[["ConversationState"], None]


class ConversationState(str, Enum):
    IDLE = "idle"
    AWAITING_PROJECT_SELECTION = "awaiting_project_selection"
    READY = "ready"
    SENDING = "sending"
    STREAMING = "streaming"
    ERROR = "error"


class ConversationManager:
    """
    Owns the active project's message log and drives one exchange at a time.

    send() appends the user turn to the visible history, asks the chat
    client for a reply, reveals that reply word by word on a fixed cadence
    and only then persists the user/assistant pair as a single write.
    While SENDING or STREAMING every other send() is rejected. Selecting a
    project, clearing or resetting abandons an in-flight send: its reply is
    dropped and nothing is written.
    """

    def __init__(self, store: PersistentStore, chat_client: ChatClient, config: Optional[Settings] = None):
        self.store = store
        self.chat_client = chat_client
        self.config = config or default_settings

        self.state = ConversationState.IDLE
        self.project: Optional[Project] = None
        self.history: List[ChatMessage] = []
        self.reveal_buffer = ""

        # Bumped whenever the active conversation is replaced; an in-flight
        # send that sees a different value drops its result.
        self._generation = 0
        self._reveal_listeners: List[RevealListener] = []
        self._state_listeners: List[StateListener] = []

    # ------ Observers -----
    def add_reveal_listener(self, listener: RevealListener) -> None:
        self._reveal_listeners.append(listener)

    def remove_reveal_listener(self, listener: RevealListener) -> None:
        if listener in self._reveal_listeners:
            self._reveal_listeners.remove(listener)

    def add_state_listener(self, listener: StateListener) -> None:
        self._state_listeners.append(listener)

    def _notify(self, listeners: list, value) -> None:
        for listener in list(listeners):
            try:
                listener(value)
            except Exception:
                logger.exception("Conversation listener failed")

    def _set_state(self, state: ConversationState) -> None:
        if state is self.state:
            return
        logger.debug("Conversation state change", extra={"from": self.state.value, "to": state.value})
        self.state = state
        self._notify(self._state_listeners, state)

    # ------ Properties -----
    @property
    def active_project_id(self) -> Optional[str]:
        return self.project.id if self.project is not None else None

    @property
    def busy(self) -> bool:
        return self.state in (ConversationState.SENDING, ConversationState.STREAMING)

    # ------ Selection -----
    def await_selection(self) -> None:
        """Enter the signed-in state with no active project."""
        self._drop_active()
        self._set_state(ConversationState.AWAITING_PROJECT_SELECTION)

    def select_project(self, project: Project) -> bool:
        """Make ``project`` active from any state, abandoning an in-flight send."""
        history = self._load_history(project)
        if self.busy:
            logger.info("In-flight reply abandoned by project selection", extra={"project_id": self.active_project_id})

        self._generation += 1
        self.project = project
        self.history = history
        self.reveal_buffer = ""
        self._set_state(ConversationState.READY)

        logger.info("Project selected", extra={"project_id": project.id, "message_count": len(self.history)})
        return True

    def _load_history(self, project: Project) -> List[ChatMessage]:
        try:
            return [ChatMessage.model_validate(m) for m in self.store.get(message_log_key(project.id))]
        except (pydantic.ValidationError, TypeError) as e:
            logger.error("Stored message log is unreadable", extra={"project_id": project.id, "error": str(e)})
            raise RecordDecodeError() from e

    def clear(self) -> None:
        """Drop the active conversation (e.g. its project was deleted)."""
        self.await_selection()

    def reset(self) -> None:
        """Full reset, used on logout."""
        self._drop_active()
        self._set_state(ConversationState.IDLE)

    def _drop_active(self) -> None:
        self._generation += 1
        self.project = None
        self.history = []
        self.reveal_buffer = ""

    # ------ Send -----
    async def send(self, text: str) -> Optional[ChatMessage]:
        """
        Run one exchange. Returns the assistant message once it is revealed
        and persisted, or None when the call is rejected or abandoned.

        Raises the classified ChatbotPlatformError on failure, after the
        manager has moved through ERROR back to READY.
        """
        if self.state is not ConversationState.READY or self.project is None:
            logger.debug("Send rejected", extra={"state": self.state.value})
            return None
        if not text or not text.strip():
            return None

        if not self.chat_client.configured:
            error = ConfigurationError()
            self._fail(error)
            raise error

        project = self.project
        generation = self._generation
        user_message = ChatMessage(role="user", content=text)

        self.history.append(user_message)
        self._set_state(ConversationState.SENDING)

        try:
            return await self._exchange(project, generation, user_message)
        except ChatbotPlatformError as e:
            if generation != self._generation:
                logger.info("Failed reply dropped; conversation changed", extra={"project_id": project.id})
                return None
            # The user turn stays visible but is never persisted
            self._fail(e)
            raise
        except Exception as e:
            logger.exception("Send failed unexpectedly", extra={"project_id": project.id})
            if generation != self._generation:
                return None
            error = ChatbotPlatformError()
            self._fail(error)
            raise error from e
        finally:
            # Cancellation must not leave the manager busy
            if generation == self._generation and self.busy:
                self.reveal_buffer = ""
                self._set_state(ConversationState.READY)

    async def _exchange(self, project: Project, generation: int, user_message: ChatMessage) -> Optional[ChatMessage]:
        request = [ChatMessage(role="system", content=project.system_prompt), *self.history]
        reply = await self.chat_client.complete(request)

        if generation != self._generation:
            logger.info("Reply dropped; conversation changed", extra={"project_id": project.id})
            return None

        if not await self._reveal(reply, generation):
            logger.info("Reveal abandoned; conversation changed", extra={"project_id": project.id})
            return None

        assistant_message = ChatMessage(role="assistant", content=reply)
        self._commit(project, user_message, assistant_message)
        self.history.append(assistant_message)
        self.reveal_buffer = ""
        self._set_state(ConversationState.READY)
        return assistant_message

    async def _reveal(self, reply: str, generation: int) -> bool:
        words = reply.split(" ")
        interval = max(self.config.STREAM_INTERVAL_MS, 0) / 1000

        self.reveal_buffer = ""
        self._set_state(ConversationState.STREAMING)

        for i, word in enumerate(words):
            await asyncio.sleep(interval)
            if generation != self._generation:
                return False
            self.reveal_buffer = word if i == 0 else f"{self.reveal_buffer} {word}"
            self._notify(self._reveal_listeners, self.reveal_buffer)
        return True

    def _commit(self, project: Project, user_message: ChatMessage, assistant_message: ChatMessage) -> None:
        key = message_log_key(project.id)
        try:
            log = self.store.get(key)
            log.extend([user_message.to_record(), assistant_message.to_record()])
            self.store.put(key, log)
        except ChatbotPlatformError:
            raise
        except Exception as e:
            logger.error("Failed to save chat turn", extra={"project_id": project.id, "error": str(e)})
            raise StorageError() from e
        logger.info("Chat turn saved", extra={
            "project_id": project.id,
            "user_msg_len": len(user_message.content),
            "assistant_msg_len": len(assistant_message.content),
        })

    def _fail(self, error: ChatbotPlatformError) -> None:
        logger.warning("Send failed", extra={"error_type": type(error).__name__, "error": error.message})
        self.reveal_buffer = ""
        self._set_state(ConversationState.ERROR)
        self._set_state(ConversationState.READY)
