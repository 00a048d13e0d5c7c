from datetime import datetime, timezone
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


def new_id() -> str:
    return uuid4().hex


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class User(BaseModel):
    """Stored user record. ``password_digest`` is persisted as ``passwordDigest``."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str = Field(default_factory=new_id)
    name: str
    email: str
    password_digest: str = Field(alias="passwordDigest", repr=False)
    created_at: str = Field(default_factory=utc_now_iso, alias="createdAt")

    def to_record(self) -> dict:
        return self.model_dump(by_alias=True)
