from sqlalchemy import Column, Integer, ForeignKey, DateTime, Text, Uuid, Index
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from say2me.core.database import Base

class Message(Base):
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    # NULL이면 글로벌 피드
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=True, index=True)

    message_text = Column(Text, nullable=False)
    timestamp = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    user = relationship("User", back_populates="messages")

    __table_args__ = (
        # 피드 조회/보관 정리 모두 (timestamp, id) 순서로 읽음
        Index("ix_messages_user_id_timestamp_id", "user_id", "timestamp", "id"),
        # SQLite에서도 삭제된 id를 재사용하지 않도록 (삽입 순서 = id 순서)
        {"sqlite_autoincrement": True},
    )
