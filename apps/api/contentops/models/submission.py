from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from contentops.db.base_class import Base
from contentops.models.enums import SubmissionStatus


class Submission(Base):
    __tablename__ = "submissions"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    article_id: Mapped[int] = mapped_column(ForeignKey("articles.id"), nullable=False, index=True)
    language: Mapped[str] = mapped_column(String(16), nullable=False)  # Language value

    # generation flags (opt-out, all default on)
    generate_audio: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    generate_podcast: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    generate_video: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    generate_quiz: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    generate_interactive_podcast: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # only written at creation, after enqueue, and by the status aggregator
    status: Mapped[str] = mapped_column(String(32), nullable=False, default=SubmissionStatus.PENDING.value)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), onupdate=func.now(), server_default=func.now())

    article = relationship("Article", backref="submissions")
