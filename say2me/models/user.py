# say2me/models/user.py
import uuid
from sqlalchemy import Column, String, DateTime, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from say2me.core.database import Base

class User(Base):
    """A page owner. Created once, never updated or deleted."""
    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    # UNIQUE 제약이 중복 닉네임의 최종 판정자 (애플리케이션 체크는 빠른 경로일 뿐)
    username = Column(String(30), unique=True, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    messages = relationship("Message", back_populates="user")
