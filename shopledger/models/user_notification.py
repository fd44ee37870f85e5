from sqlmodel import SQLModel, Field, Relationship
from typing import Optional, TYPE_CHECKING
from enum import Enum
from datetime import datetime
from uuid import UUID, uuid4

if TYPE_CHECKING:
    from .user import User


class NotificationType(str, Enum):
    SALARY = "salary"
    WORK = "work"
    PROMOTION = "promotion"
    GENERAL = "general"


class UserNotification(SQLModel, table=True):
    __tablename__ = "user_notification"
    id: Optional[UUID] = Field(
        default_factory=uuid4, primary_key=True, unique=True)
    user_id: UUID = Field(foreign_key="user.id", index=True)
    message: str
    type: NotificationType = Field(default=NotificationType.GENERAL)
    is_read: bool = Field(default=False)
    created_at: datetime = Field(
        default_factory=datetime.utcnow, nullable=False)

    user: Optional["User"] = Relationship(back_populates="notifications")
