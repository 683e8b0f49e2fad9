"""SQLAlchemy ORM models for the result cache."""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Index, String, Text
from sqlalchemy.orm import Mapped, declarative_base, mapped_column

Base = declarative_base()


class Categorization(Base):
    """Cached oracle verdict for one ``(file_path, fingerprint)`` pair."""

    __tablename__ = "categorizations"

    file_path: Mapped[str] = mapped_column(Text, primary_key=True)
    fingerprint: Mapped[str] = mapped_column(String(64), primary_key=True)
    category: Mapped[str] = mapped_column(Text, nullable=False)
    subcategory: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )

    __table_args__ = (Index("idx_category", "category"),)

    def __repr__(self) -> str:
        return (
            f"<Categorization(path={self.file_path}, fingerprint={self.fingerprint}, "
            f"category={self.category})>"
        )
