from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel


class SparkProfile(SQLModel, table=True):
    """用户的情话偏好、订阅等级与推送状态"""

    __tablename__ = "spark_profile"
    __table_args__ = (UniqueConstraint("group_id", "user_id"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    group_id: str = Field(index=True)
    user_id: str = Field(index=True)

    # Preferences
    partner_name: str = Field(default="")
    target: str = Field(default="neutral")
    tier: int = Field(default=0)
    love_language: str = Field(default="")
    preferred_tone: str = Field(default="")

    # Occasions (YYYY-MM-DD)
    anniversary_date: str = Field(default="")
    partner_birthday: str = Field(default="")
    relationship_start: str = Field(default="")

    # Delivery
    delivery_enabled: bool = Field(default=False, index=True)
    morning_time: str = Field(default="08:00")  # HH:MM
    night_time: str = Field(default="22:00")
    unified_msg_origin: str = Field(default="")
    last_morning_date: str = Field(default="")
    last_night_date: str = Field(default="")
    streak: int = Field(default=0)

    favorites: str = Field(default="[]")  # JSON list of ISO dates

    updated_at: float = Field(default=0.0)  # Timestamp


class TierAuditLog(SQLModel, table=True):
    """订阅等级变更审计"""

    __tablename__ = "tier_audit_log"

    id: Optional[int] = Field(default=None, primary_key=True)
    group_id: str = Field(index=True)
    user_id: str = Field(index=True)
    old_tier: int
    new_tier: int
    changed_by: str
    reason: str = Field(default="")
    created_at: float  # Timestamp
