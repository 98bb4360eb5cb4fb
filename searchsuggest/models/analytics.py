from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Float, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from searchsuggest.database import Base


class SearchEvent(Base):
    """One search as it happened. Append-only."""

    __tablename__ = "search_events"

    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True
    )
    term: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    results: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    elapsed_time: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    engine: Mapped[str | None] = mapped_column(String(50))
    page_id: Mapped[int] = mapped_column(
        ForeignKey("search_pages.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), index=True
    )
