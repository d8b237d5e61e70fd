"""User and team models."""

from sqlalchemy import Boolean, Column, Enum, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from src.database import Base
from src.models.enums import UserRole
from src.models.mixins import TimestampMixin


class Team(Base, TimestampMixin):
    """Team grouping users under a leader."""

    __tablename__ = "teams"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    leader_id = Column(Integer, nullable=True, index=True)

    # Relationships
    leader = relationship(
        "User", primaryjoin="foreign(Team.leader_id) == User.id", viewonly=True
    )
    members = relationship("User", back_populates="team", foreign_keys="User.team_id")


class User(Base, TimestampMixin):
    """User model, owned by the identity service and read here for routing."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=True)
    role = Column(
        Enum(UserRole, name="userrole", values_callable=lambda x: [e.value for e in x]),
        default=UserRole.STAFF,
        nullable=False,
    )
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=True, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    telegram_chat_id = Column(String(50), nullable=True)

    # Relationships
    team = relationship("Team", back_populates="members", foreign_keys=[team_id])
