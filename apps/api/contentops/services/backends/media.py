"""
Per-kind generation backends.

Each backend exposes the two-stage contract from `base.GenerationBackend`.
Kinds without a review gate (AUDIO, QUIZ) only implement full generation.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from contentops.core.errors import UpstreamFailure
from contentops.models.enums import OutputKind
from contentops.services.backends import prompts
from contentops.services.backends.base import ArticleContent, GenerationBackend, GenerationResult, ScriptResult
from contentops.services.backends.http_clients import AvatarVideoClient, SpeechClient
from contentops.services.backends.script_writer import ScriptWriter

logger = logging.getLogger(__name__)


def _require_script(script: Optional[str]) -> str:
    if not script or not script.strip():
        raise UpstreamFailure("No script available to render")
    return script


class _NoScriptStage:
    def start_script_generation(self, article: ArticleContent, language: str) -> ScriptResult:
        raise UpstreamFailure(f"{type(self).__name__} has no script stage")


class AudioNarrationBackend(_NoScriptStage):
    """Reads the article itself aloud."""

    def __init__(self, speech: SpeechClient) -> None:
        self.speech = speech

    def start_full_generation(self, article, language, script, customization) -> GenerationResult:
        text = f"{article.title}.\n\n{article.content}"
        res = self.speech.synthesize(text, language=language, voice_id=customization.get("voice_key"))
        return GenerationResult(asset_url=res["audio_url"], duration=res.get("duration"))


class QuizBackend(_NoScriptStage):
    def __init__(self, writer: ScriptWriter) -> None:
        self.writer = writer

    def start_full_generation(self, article, language, script, customization) -> GenerationResult:
        data = self.writer.generate_json(
            prompts.QUIZ_USER_TEMPLATE, title=article.title, content=article.content, language=language
        )
        questions = data.get("questions")
        if not isinstance(questions, list) or not questions:
            raise UpstreamFailure("Quiz generation returned no questions")
        return GenerationResult(payload={"questions": questions})


class PodcastBackend:
    def __init__(self, writer: ScriptWriter, speech: SpeechClient) -> None:
        self.writer = writer
        self.speech = speech

    def start_script_generation(self, article: ArticleContent, language: str) -> ScriptResult:
        data = self.writer.generate_json(
            prompts.PODCAST_TRANSCRIPT_USER_TEMPLATE, title=article.title, content=article.content, language=language
        )
        transcript = (data.get("transcript") or "").strip()
        if not transcript:
            raise UpstreamFailure("Podcast transcript was empty")
        return ScriptResult(title=data.get("title") or article.title, script=transcript, payload={"transcript": transcript})

    def start_full_generation(self, article, language, script, customization) -> GenerationResult:
        # interactive podcasts carry a single narrator voice
        res = self.speech.synthesize(
            _require_script(script),
            language=language,
            voice_id=customization.get("interviewer_voice_key") or customization.get("voice_key"),
            guest_voice_id=customization.get("guest_voice_key"),
        )
        return GenerationResult(asset_url=res["audio_url"], duration=res.get("duration"))


class InteractivePodcastBackend(PodcastBackend):
    def start_script_generation(self, article: ArticleContent, language: str) -> ScriptResult:
        data = self.writer.generate_json(
            prompts.INTERACTIVE_PODCAST_USER_TEMPLATE, title=article.title, content=article.content, language=language
        )
        segments = data.get("segments")
        if not isinstance(segments, list) or not segments:
            raise UpstreamFailure("Interactive podcast returned no segments")
        script = "\n\n".join(str(s.get("text") or "") for s in segments if isinstance(s, dict))
        return ScriptResult(title=data.get("title") or article.title, script=script, payload={"segments": segments})


class AvatarVideoBackend:
    """Script via the writer; rendering is asynchronous and finishes by webhook."""

    def __init__(self, writer: ScriptWriter, avatar: AvatarVideoClient) -> None:
        self.writer = writer
        self.avatar = avatar

    def start_script_generation(self, article: ArticleContent, language: str) -> ScriptResult:
        data = self.writer.generate_json(
            prompts.VIDEO_SCRIPT_USER_TEMPLATE, title=article.title, content=article.content, language=language
        )
        script = (data.get("script") or "").strip()
        if not script:
            raise UpstreamFailure("Video script was empty")
        return ScriptResult(title=data.get("title") or article.title, script=script)

    def start_full_generation(self, article, language, script, customization) -> GenerationResult:
        key = customization.get("provider_image_key")
        if not key:
            raise UpstreamFailure("Video customization has no character configured")
        video_id = self.avatar.generate_video(
            script=_require_script(script),
            title=article.title,
            character_type=customization.get("character_type") or "talking_photo",
            character_key=key,
            voice_id=customization.get("voice_id"),
        )
        return GenerationResult(provider_id=video_id)


def build_backends(settings) -> Dict[OutputKind, GenerationBackend]:
    writer = ScriptWriter(
        api_key=settings.openai_api_key,
        model=settings.openai_model,
        timeout_s=settings.backend_timeout_sec,
    )
    speech = SpeechClient(
        settings.speech_api_url,
        settings.speech_api_key,
        settings.speech_voice_id,
        timeout_s=settings.backend_timeout_sec,
    )
    avatar = AvatarVideoClient(
        settings.avatar_video_api_url,
        settings.avatar_video_api_key,
        timeout_s=settings.backend_timeout_sec,
    )
    video = AvatarVideoBackend(writer, avatar)
    return {
        OutputKind.AUDIO: AudioNarrationBackend(speech),
        OutputKind.QUIZ: QuizBackend(writer),
        OutputKind.PODCAST: PodcastBackend(writer, speech),
        OutputKind.INTERACTIVE_PODCAST: InteractivePodcastBackend(writer, speech),
        OutputKind.VIDEO: video,
        OutputKind.STANDALONE_VIDEO: video,
    }


def backend_for(backends: Dict[OutputKind, Any], kind: OutputKind | str) -> GenerationBackend:
    backend = backends.get(OutputKind(kind))
    if backend is None:
        raise UpstreamFailure(f"No generation backend configured for {kind}")
    return backend
