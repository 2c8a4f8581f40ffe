from typing import Optional
from datetime import datetime
from uuid import UUID
from pydantic import BaseModel, ConfigDict, Field, StrictStr

class PageCreate(BaseModel):
    # 길이/문자셋 규칙은 서비스 계층에서 검사 (타입만 여기서)
    username: Optional[StrictStr] = Field(None, description="원하는 닉네임 (없으면 랜덤 생성)")

class PageCreated(BaseModel):
    user_id: UUID = Field(..., alias="userId")
    username: str
    url: str

    model_config = ConfigDict(populate_by_name=True)

class PageCreateResponse(BaseModel):
    data: PageCreated
    message: str

class PageOut(BaseModel):
    id: UUID
    username: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

class PageResponse(BaseModel):
    data: PageOut
