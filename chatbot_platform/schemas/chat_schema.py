from typing import List, Literal

from pydantic import BaseModel, ConfigDict

Role = Literal["user", "assistant", "system"]


class ChatMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Role  # 'system' is only ever synthesized at send time
    content: str

    def to_record(self) -> dict:
        return {"role": self.role, "content": self.content}


class ChatCompletionRequest(BaseModel):
    model: str
    messages: List[ChatMessage]
