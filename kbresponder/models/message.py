"""Message model"""

import enum

from sqlalchemy import Column, Integer, String, Text, DateTime, Index
from datetime import datetime
from kbresponder.database.base import Base


class MessageRole(str, enum.Enum):
    """Author of a chat message"""
    
    USER = "user"
    AGENT = "agent"


class Message(Base):
    """Message model for storing chat messages"""
    
    __tablename__ = "messages"
    
    id = Column(Integer, primary_key=True, index=True)
    chat_id = Column(Integer, nullable=False, index=True)
    user_id = Column(Integer, nullable=True, index=True)
    role = Column(String(20), nullable=False)  # 'user' or 'agent'
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    
    __table_args__ = (
        Index('idx_chat_created', 'chat_id', 'created_at'),
    )
    
    def __repr__(self):
        return f"<Message(id={self.id}, role={self.role}, chat_id={self.chat_id})>"
