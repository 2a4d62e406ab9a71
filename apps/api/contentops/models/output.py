from datetime import datetime

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from contentops.db.base_class import Base
from contentops.models.enums import OutputStatus


class Output(Base):
    """
    One generated media item. All media kinds share this table; `kind` is the
    discriminator and `payload_json` carries the kind-specific shape:

      AUDIO               {"voice_id"}
      PODCAST             {"transcript"}
      VIDEO               {"word_timings", "transcript"}
      QUIZ                {"questions": [{question, options, answer_index}]}
      INTERACTIVE_PODCAST {"segments": [...]}
    """

    __tablename__ = "outputs"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    # null only for STANDALONE_VIDEO
    submission_id: Mapped[int | None] = mapped_column(ForeignKey("submissions.id"), nullable=True, index=True)
    organization_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    kind: Mapped[str] = mapped_column(String(32), nullable=False)  # OutputKind value
    status: Mapped[str] = mapped_column(String(32), nullable=False, default=OutputStatus.PENDING.value)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)

    # editorial gate, independent of generation status
    is_approved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    title: Mapped[str | None] = mapped_column(String(512), nullable=True)
    script: Mapped[str | None] = mapped_column(Text, nullable=True)
    payload_json: Mapped[str] = mapped_column(Text, nullable=False, default="{}")
    customization_json: Mapped[str] = mapped_column(Text, nullable=False, default="{}")

    # external correlation ids
    provider_id: Mapped[str | None] = mapped_column(String(128), nullable=True)  # render job id
    followup_id: Mapped[str | None] = mapped_column(String(128), nullable=True)  # post-processing project id

    asset_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    duration: Mapped[float | None] = mapped_column(Float, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), onupdate=func.now(), server_default=func.now())

    submission = relationship("Submission", backref="outputs")

    __table_args__ = (
        UniqueConstraint("submission_id", "kind", name="uq_outputs_submission_kind"),
        Index("idx_outputs_provider_status", "provider_id", "status"),
        Index("idx_outputs_followup", "followup_id"),
        Index("idx_outputs_status_updated", "status", "updated_at"),
    )
