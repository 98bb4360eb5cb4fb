from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from searchsuggest.database import Base


class Suggestion(Base):
    __tablename__ = "search_suggestions"
    __table_args__ = (
        UniqueConstraint("term", "page_id", name="uq_suggestion_term_page"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    term: Mapped[str] = mapped_column(String(255), nullable=False)  # always lowercase
    page_id: Mapped[int] = mapped_column(
        ForeignKey("search_pages.id", ondelete="CASCADE"), nullable=False, index=True
    )
    frequency: Mapped[int] = mapped_column(Integer, default=0)
    approved: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
