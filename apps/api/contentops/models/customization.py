from __future__ import annotations

from sqlalchemy import Column, Float, Integer, String, Text

from contentops.db.base_class import Base


class Character(Base):
    __tablename__ = "characters"

    id = Column(Integer, primary_key=True, index=True)
    organization_id = Column(String(64), nullable=False, index=True)
    name = Column(String(128), nullable=False)

    # "avatar" | "talking_photo"
    character_type = Column(String(32), nullable=False, default="talking_photo")
    provider_image_key = Column(String(128), nullable=True)
    voice_id = Column(String(128), nullable=True)


class CaptionStyle(Base):
    __tablename__ = "caption_styles"

    id = Column(Integer, primary_key=True, index=True)
    organization_id = Column(String(64), nullable=False, index=True)
    name = Column(String(128), nullable=False)
    template_id = Column(String(128), nullable=True)


class BackgroundMusic(Base):
    __tablename__ = "background_music"

    id = Column(Integer, primary_key=True, index=True)
    organization_id = Column(String(64), nullable=False, index=True)
    name = Column(String(128), nullable=False)
    url = Column(Text, nullable=False)


class VideoBumper(Base):
    __tablename__ = "video_bumpers"

    id = Column(Integer, primary_key=True, index=True)
    organization_id = Column(String(64), nullable=False, index=True)
    name = Column(String(128), nullable=False)
    url = Column(Text, nullable=False)
    duration = Column(Float, nullable=True)


class Voice(Base):
    __tablename__ = "voices"

    id = Column(Integer, primary_key=True, index=True)
    organization_id = Column(String(64), nullable=False, index=True)
    name = Column(String(128), nullable=False)
    provider_voice_id = Column(String(128), nullable=False)
