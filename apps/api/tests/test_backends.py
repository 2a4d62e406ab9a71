import pytest

from contentops.core.errors import UpstreamFailure
from contentops.models.enums import OutputKind
from contentops.services.backends.base import ArticleContent
from contentops.services.backends.media import (
    AudioNarrationBackend,
    AvatarVideoBackend,
    InteractivePodcastBackend,
    PodcastBackend,
    QuizBackend,
    backend_for,
    build_backends,
)
from contentops.services.backends.script_writer import _extract_json
from contentops.core.config import Settings

ARTICLE = ArticleContent(title="Monsoon", content="It rained.")


class FakeWriter:
    def __init__(self, data):
        self.data = data
        self.templates = []

    def generate_json(self, template, *, title, content, language):
        self.templates.append((template, title, language))
        return self.data


class FakeAvatar:
    def __init__(self):
        self.calls = []

    def generate_video(self, **kwargs):
        self.calls.append(kwargs)
        return "vid-77"


class FakeSpeech:
    def __init__(self):
        self.calls = []

    def synthesize(self, text, *, language, voice_id=None, guest_voice_id=None):
        self.calls.append({"text": text, "language": language, "voice_id": voice_id, "guest_voice_id": guest_voice_id})
        return {"audio_url": "https://cdn.test/p.mp3", "duration": 61.0}


def test_extract_json_tolerates_surrounding_text():
    assert _extract_json('{"a": 1}') == {"a": 1}
    assert _extract_json('Sure! {"a": {"b": 2}} hope that helps') == {"a": {"b": 2}}
    with pytest.raises(UpstreamFailure):
        _extract_json("no json here")
    with pytest.raises(UpstreamFailure):
        _extract_json("")


def test_quiz_backend_returns_questions_synchronously():
    q = [{"question": "What?", "options": ["a", "b"], "answer_index": 1}]
    res = QuizBackend(FakeWriter({"questions": q})).start_full_generation(ARTICLE, "HINDI", None, {})
    assert res.pending is False
    assert res.payload == {"questions": q}

    with pytest.raises(UpstreamFailure):
        QuizBackend(FakeWriter({"questions": []})).start_full_generation(ARTICLE, "HINDI", None, {})


def test_quiz_backend_has_no_script_stage():
    with pytest.raises(UpstreamFailure):
        QuizBackend(FakeWriter({})).start_script_generation(ARTICLE, "ENGLISH")


def test_interactive_podcast_script_joins_segments():
    segments = [{"speaker": "A", "text": "Hello"}, {"speaker": "B", "text": "Quiz time", "question": "Ready?"}]
    res = InteractivePodcastBackend(FakeWriter({"segments": segments}), FakeSpeech()).start_script_generation(
        ARTICLE, "ENGLISH"
    )
    assert res.script == "Hello\n\nQuiz time"
    assert res.payload == {"segments": segments}
    assert res.title == "Monsoon"


def test_avatar_backend_returns_pending_handle():
    avatar = FakeAvatar()
    backend = AvatarVideoBackend(FakeWriter({}), avatar)
    res = backend.start_full_generation(
        ARTICLE, "ENGLISH", "Rain today.", {"provider_image_key": "tp-1", "character_type": "avatar", "voice_id": "v"}
    )
    assert res.pending is True
    assert res.provider_id == "vid-77"
    assert avatar.calls[0]["character_key"] == "tp-1"
    assert avatar.calls[0]["script"] == "Rain today."

    with pytest.raises(UpstreamFailure):
        backend.start_full_generation(ARTICLE, "ENGLISH", "Rain today.", {})


def test_build_backends_covers_every_kind():
    backends = build_backends(Settings())
    for kind in OutputKind:
        assert backend_for(backends, kind) is not None
    assert backends[OutputKind.VIDEO] is backends[OutputKind.STANDALONE_VIDEO]


def test_podcast_render_passes_both_voices():
    speech = FakeSpeech()
    res = PodcastBackend(FakeWriter({}), speech).start_full_generation(
        ARTICLE, "ENGLISH", "Host: hi\nGuest: hello", {"interviewer_voice_key": "el-host", "guest_voice_key": "el-guest"}
    )

    assert res.asset_url == "https://cdn.test/p.mp3"
    assert speech.calls == [
        {"text": "Host: hi\nGuest: hello", "language": "ENGLISH", "voice_id": "el-host", "guest_voice_id": "el-guest"}
    ]


def test_single_voice_kinds_use_resolved_voice_key():
    speech = FakeSpeech()
    InteractivePodcastBackend(FakeWriter({}), speech).start_full_generation(
        ARTICLE, "HINDI", "Hello", {"voice_key": "el-narrator"}
    )
    AudioNarrationBackend(speech).start_full_generation(ARTICLE, "HINDI", None, {})

    assert speech.calls[0]["voice_id"] == "el-narrator"
    assert speech.calls[0]["guest_voice_id"] is None
    # no override falls back to the client default
    assert speech.calls[1]["voice_id"] is None
