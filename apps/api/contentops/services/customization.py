from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, ValidationError
from sqlalchemy.orm import Session

from contentops.core.errors import NotFoundError, ValidationFailedError
from contentops.models.customization import BackgroundMusic, CaptionStyle, Character, VideoBumper, Voice
from contentops.models.enums import OutputKind


class VideoCustomization(BaseModel):
    character_id: int
    caption_style_id: int
    enable_magic_zooms: bool = True
    enable_magic_brolls: bool = True
    magic_brolls_percentage: int = Field(default=40, ge=0, le=100)
    generate_bubbles: bool = True

    background_music_id: int | None = None
    background_music_volume: float = Field(default=0.15, ge=0, le=1)

    start_bumper_id: int | None = None
    start_bumper_duration: float | None = Field(default=None, ge=1, le=10)
    end_bumper_id: int | None = None
    end_bumper_duration: float | None = Field(default=None, ge=1, le=10)


class AudioCustomization(BaseModel):
    voice_id: int | None = None


class PodcastCustomization(BaseModel):
    interviewer_voice_id: int | None = None
    guest_voice_id: int | None = None


def _parse(model: type[BaseModel], raw: dict[str, Any] | None) -> BaseModel:
    try:
        return model.model_validate(raw or {})
    except ValidationError as e:
        raise ValidationFailedError(f"Invalid customization: {e.errors(include_input=False)}") from e


def _owned(db: Session, model, entity_id: int | None, organization_id: str, label: str):
    if entity_id is None:
        return None
    row = db.query(model).filter(model.id == entity_id, model.organization_id == organization_id).first()
    if not row:
        raise NotFoundError(f"{label} not found in this organization: {entity_id}")
    return row


def resolve_customization(
    db: Session,
    kind: OutputKind | str,
    organization_id: str,
    raw: dict[str, Any] | None,
) -> dict[str, Any]:
    """
    Validate a customization payload for `kind` and check every referenced
    entity belongs to `organization_id`. Returns the dict to persist on the output.
    """
    kind = OutputKind(kind)

    if kind in (OutputKind.VIDEO, OutputKind.STANDALONE_VIDEO):
        c = _parse(VideoCustomization, raw)
        character = _owned(db, Character, c.character_id, organization_id, "Character")
        if not character.provider_image_key:
            raise ValidationFailedError("Character does not have a provider image key configured")
        caption_style = _owned(db, CaptionStyle, c.caption_style_id, organization_id, "Caption style")
        music = _owned(db, BackgroundMusic, c.background_music_id, organization_id, "Background music")
        start_bumper = _owned(db, VideoBumper, c.start_bumper_id, organization_id, "Start bumper")
        end_bumper = _owned(db, VideoBumper, c.end_bumper_id, organization_id, "End bumper")

        out = c.model_dump()
        out.update(
            {
                "character_type": character.character_type,
                "provider_image_key": character.provider_image_key,
                "voice_id": character.voice_id,
                "caption_template_id": caption_style.template_id,
                "enable_captions": True,
            }
        )
        # urls travel with the output so the caption hand-off needs no lookups
        if music is not None:
            out["background_music_url"] = music.url
        for prefix, bumper, duration in (
            ("start", start_bumper, c.start_bumper_duration),
            ("end", end_bumper, c.end_bumper_duration),
        ):
            if bumper is not None:
                out[f"{prefix}_bumper_url"] = bumper.url
                if duration is None:
                    out[f"{prefix}_bumper_duration"] = bumper.duration
        return out

    if kind == OutputKind.PODCAST:
        p = _parse(PodcastCustomization, raw)
        out = p.model_dump(exclude_none=True)
        for voice_id, key in ((p.interviewer_voice_id, "interviewer_voice_key"), (p.guest_voice_id, "guest_voice_key")):
            voice = _owned(db, Voice, voice_id, organization_id, "Voice")
            if voice is not None:
                out[key] = voice.provider_voice_id
        return out

    # remaining audio kinds accept an optional voice override
    a = _parse(AudioCustomization, raw)
    out = a.model_dump(exclude_none=True)
    voice = _owned(db, Voice, a.voice_id, organization_id, "Voice")
    if voice is not None:
        out["voice_key"] = voice.provider_voice_id
    return out
