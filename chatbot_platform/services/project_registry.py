from typing import TYPE_CHECKING, List, Optional

import pydantic

from chatbot_platform.core.exceptions import MissingField, RecordDecodeError
from chatbot_platform.schemas.project_schema import Project
from chatbot_platform.services.persistent_store import PROJECTS_KEY, PersistentStore, message_log_key
from chatbot_platform.utils.logger import get_logger

if TYPE_CHECKING:
    from chatbot_platform.services.conversation import ConversationManager

logger = get_logger("chatbot_platform.services.project_registry")


class ProjectRegistry:
    """CRUD over the global project list. Deleting a project also deletes its message log."""

    def __init__(self, store: PersistentStore, conversation: Optional["ConversationManager"] = None):
        self.store = store
        self.conversation = conversation

    def _all(self) -> List[Project]:
        try:
            return [Project.model_validate(record) for record in self.store.get(PROJECTS_KEY)]
        except (pydantic.ValidationError, TypeError) as e:
            logger.error("Stored project list is unreadable", extra={"error": str(e)})
            raise RecordDecodeError() from e

    def list(self, user_id: str) -> List[Project]:
        return [p for p in self._all() if p.user_id == user_id]

    def get(self, project_id: str) -> Optional[Project]:
        return next((p for p in self._all() if p.id == project_id), None)

    def create(self, user_id: str, name: str, system_prompt: str) -> Project:
        if not name or not name.strip() or not system_prompt or not system_prompt.strip():
            raise MissingField("Project name and system prompt are required")

        project = Project(user_id=user_id, name=name, system_prompt=system_prompt)
        records = self.store.get(PROJECTS_KEY)
        records.append(project.to_record())
        self.store.put(PROJECTS_KEY, records)

        logger.info("Project created", extra={"user_id": user_id, "project_id": project.id})
        return project

    def delete(self, project_id: str) -> None:
        records = self.store.get(PROJECTS_KEY)
        remaining = [r for r in records if r.get("id") != project_id]
        self.store.put(PROJECTS_KEY, remaining)
        self.store.delete(message_log_key(project_id))

        if self.conversation is not None and self.conversation.active_project_id == project_id:
            self.conversation.clear()

        logger.info("Project deleted", extra={
            "project_id": project_id,
            "removed": len(records) - len(remaining),
        })
