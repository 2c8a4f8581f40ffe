from datetime import datetime
from typing import List
from pydantic import BaseModel, ConfigDict, Field, StrictStr

class MessageCreate(BaseModel):
    text: StrictStr = Field(..., description="메시지 내용 (공백 제거 후 1~500자)")

class MessageOut(BaseModel):
    id: int
    message_text: str
    timestamp: datetime

    model_config = ConfigDict(from_attributes=True)

class MessageCreateResponse(BaseModel):
    data: MessageOut
    message: str

class MessageListResponse(BaseModel):
    data: List[MessageOut]
