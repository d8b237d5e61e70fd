"""Category and category statistics models."""

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from src.database import Base
from src.models.mixins import TimestampMixin, utcnow


class Category(Base, TimestampMixin):
    """Work category with optional deadline overrides (hours)."""

    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    min_deadline_hours = Column(Float, nullable=True)
    max_deadline_hours = Column(Float, nullable=True)
    default_duration_hours = Column(Float, nullable=True)

    # Relationships
    stats = relationship("CategoryStats", back_populates="category", uselist=False)


class CategoryStats(Base):
    """Completion-time statistics computed from recently completed items.

    Replaced wholesale on every refresh.
    """

    __tablename__ = "category_stats"

    id = Column(Integer, primary_key=True, index=True)
    category_id = Column(Integer, ForeignKey("categories.id"), unique=True, nullable=False)
    avg_hours = Column(Float, nullable=False)
    median_hours = Column(Float, nullable=False)
    min_hours = Column(Float, nullable=False)
    max_hours = Column(Float, nullable=False)
    sample_size = Column(Integer, nullable=False)
    computed_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    # Relationships
    category = relationship("Category", back_populates="stats")
