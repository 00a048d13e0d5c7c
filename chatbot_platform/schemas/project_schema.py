from pydantic import BaseModel, ConfigDict, Field

from chatbot_platform.schemas.user_schema import new_id, utc_now_iso


class Project(BaseModel):
    """An agent configuration owned by one user."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str = Field(default_factory=new_id)
    user_id: str = Field(alias="userId")
    name: str
    system_prompt: str = Field(alias="systemPrompt")
    created_at: str = Field(default_factory=utc_now_iso, alias="createdAt")

    def to_record(self) -> dict:
        return self.model_dump(by_alias=True)

