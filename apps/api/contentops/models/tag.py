from __future__ import annotations

from sqlalchemy import BigInteger, Boolean, Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.orm import relationship

from contentops.db.base_class import Base


class Tag(Base):
    __tablename__ = "tags"

    id = Column(Integer, primary_key=True, index=True)
    organization_id = Column(String(64), nullable=False, index=True)

    name = Column(String(128), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(64), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("organization_id", "name", name="uq_tags_org_name"),
    )


class OutputTag(Base):
    __tablename__ = "output_tags"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, index=True)
    output_id = Column(Integer, ForeignKey("outputs.id", ondelete="CASCADE"), nullable=False, index=True)
    tag_id = Column(Integer, ForeignKey("tags.id", ondelete="CASCADE"), nullable=False, index=True)

    is_inherited = Column(Boolean, nullable=False, default=False)
    # provenance only: the canonical-language output this copy came from
    source_output_id = Column(Integer, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    tag = relationship("Tag")

    __table_args__ = (
        UniqueConstraint("output_id", "tag_id", name="uq_output_tags_output_tag"),
    )
