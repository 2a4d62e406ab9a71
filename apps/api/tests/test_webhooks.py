import hashlib
import hmac
import json

from fastapi.testclient import TestClient

from contentops.api.deps import get_job_queue, get_settings
from contentops.core.config import Settings
from contentops.main import app
from contentops.models.enums import JobKind, OutputKind, OutputStatus, SubmissionStatus
from contentops.models.submission import Submission
from contentops.services.outputs import create_output, get_payload
from contentops.services.webhooks import complete_rendered_video

from conftest import ORG

SECRET = "avatar-secret"


def _signed(body: dict, secret: str = SECRET) -> tuple[bytes, dict]:
    raw = json.dumps(body).encode("utf-8")
    sig = hmac.new(secret.encode("utf-8"), raw, hashlib.sha256).hexdigest()
    return raw, {"signature": sig, "content-type": "application/json"}


def _post_avatar(client, body, secret=SECRET):
    raw, headers = _signed(body, secret)
    return client.post("/webhooks/avatar-video", content=raw, headers=headers)


def _rendering_video(db, article, provider_id="vid-1", kind=OutputKind.VIDEO):
    sub = None
    if kind == OutputKind.VIDEO:
        sub = Submission(article_id=article.id, language="ENGLISH", status=SubmissionStatus.PROCESSING.value)
        db.add(sub)
        db.flush()
    o = create_output(
        db,
        submission_id=sub.id if sub else None,
        organization_id=ORG,
        kind=kind,
        status=OutputStatus.PROCESSING,
        title="Monsoon",
        script="Rain.",
        provider_id=provider_id,
        customization_json=json.dumps({"caption_template_id": "tmpl-9", "magic_brolls_percentage": 25}),
    )
    db.commit()
    db.refresh(o)
    return o


def test_bad_signature_is_401(client, queue):
    raw, headers = _signed({"event_type": "avatar_video.success"}, secret="wrong")
    r = client.post("/webhooks/avatar-video", content=raw, headers=headers)
    assert r.status_code == 401
    assert r.json()["ok"] is False
    assert queue.jobs == []


def test_missing_signature_is_401(client):
    r = client.post("/webhooks/avatar-video", json={"event_type": "avatar_video.success"})
    assert r.status_code == 401


def test_missing_secret_is_500(client):
    app.dependency_overrides[get_settings] = lambda: Settings(avatar_video_webhook_secret=None)
    r = _post_avatar(client, {"event_type": "avatar_video.success", "event_data": {"video_id": "x"}})
    assert r.status_code == 500


def test_success_hands_off_to_caption_editor(client, db, article, queue, caption_editor):
    video = _rendering_video(db, article)

    r = _post_avatar(client, {"event_type": "avatar_video.success", "event_data": {"video_id": "vid-1", "url": "https://cdn.test/raw.mp4"}})

    assert r.status_code == 200
    assert r.json() == {"success": True}
    assert len(caption_editor.calls) == 1
    call = caption_editor.calls[0]
    assert call["video_url"] == "https://cdn.test/raw.mp4"
    assert call["webhook_url"] == "https://contentops.test/webhooks/caption-editor"
    assert call["theme_id"] == "tmpl-9"
    assert call["magic_brolls_percentage"] == 25

    db.refresh(video)
    assert video.status == OutputStatus.PROCESSING.value
    assert video.followup_id == "proj-1"
    assert get_payload(video)["raw_video_url"] == "https://cdn.test/raw.mp4"
    assert queue.jobs == []


def test_duplicate_success_does_not_mutate_twice(client, db, article, queue, caption_editor):
    video = _rendering_video(db, article)
    body = {"event_type": "avatar_video.success", "event_data": {"video_id": "vid-1", "url": "https://cdn.test/raw.mp4"}}

    assert _post_avatar(client, body).status_code == 200
    assert _post_avatar(client, body).status_code == 200

    assert len(caption_editor.calls) == 1
    db.refresh(video)
    assert video.followup_id == "proj-1"


def test_success_after_completion_falls_back_without_mutation(client, db, article, queue, caption_editor):
    video = _rendering_video(db, article)
    complete_rendered_video(db, provider_id="vid-1", asset_url="https://cdn.test/final.mp4")
    db.refresh(video)
    before = (video.status, video.asset_url, video.updated_at)

    r = _post_avatar(client, {"event_type": "avatar_video.success", "event_data": {"video_id": "vid-1", "url": "https://cdn.test/raw.mp4"}})

    assert r.status_code == 200
    assert caption_editor.calls == []
    assert queue.kinds() == [JobKind.COMPLETE_RENDERED_VIDEO]
    db.refresh(video)
    assert (video.status, video.asset_url, video.updated_at) == before


def test_unknown_video_id_enqueues_fallback(client, db, article, queue):
    video = _rendering_video(db, article, provider_id="vid-1")

    r = _post_avatar(client, {"event_type": "avatar_video.success", "event_data": {"video_id": "nope", "url": "https://cdn.test/x.mp4"}})

    assert r.status_code == 200
    assert r.json() == {"success": True}
    assert queue.jobs == [
        (JobKind.COMPLETE_RENDERED_VIDEO, {"provider_id": "nope", "asset_url": "https://cdn.test/x.mp4", "duration": None})
    ]
    db.refresh(video)
    assert video.status == OutputStatus.PROCESSING.value
    assert video.followup_id is None


def test_standalone_video_is_matched_by_same_lookup(client, db, article, caption_editor):
    standalone = _rendering_video(db, article, provider_id="vid-s", kind=OutputKind.STANDALONE_VIDEO)

    r = _post_avatar(client, {"event_type": "avatar_video.success", "event_data": {"video_id": "vid-s", "url": "https://cdn.test/s.mp4"}})

    assert r.status_code == 200
    assert caption_editor.calls[0]["language"] == "ENGLISH"
    db.refresh(standalone)
    assert standalone.followup_id == "proj-1"


def test_caption_editor_error_falls_back_to_enqueue(client, db, article, queue, caption_editor):
    caption_editor.error = RuntimeError("caption editor unreachable")
    video = _rendering_video(db, article)

    r = _post_avatar(client, {"event_type": "avatar_video.success", "event_data": {"video_id": "vid-1", "url": "https://cdn.test/raw.mp4"}})

    assert r.status_code == 200
    assert queue.kinds() == [JobKind.COMPLETE_RENDERED_VIDEO]
    db.refresh(video)
    assert video.followup_id is None


def test_fallback_enqueue_failure_is_500(db, article, caption_editor):
    class BrokenQueue:
        def enqueue(self, kind, payload):
            raise RuntimeError("broker down")

    app.dependency_overrides[get_job_queue] = lambda: BrokenQueue()
    try:
        client = TestClient(app, raise_server_exceptions=False)
        r = _post_avatar(client, {"event_type": "avatar_video.success", "event_data": {"video_id": "nope", "url": "u"}})
    finally:
        app.dependency_overrides.clear()
    assert r.status_code == 500


def test_fail_event_marks_output_failed(client, db, article):
    video = _rendering_video(db, article)

    r = _post_avatar(client, {"event_type": "avatar_video.fail", "event_data": {"video_id": "vid-1", "msg": "avatar not found"}})

    assert r.status_code == 200
    db.refresh(video)
    assert video.status == OutputStatus.FAILED.value
    assert video.error == "avatar not found"
    sub = db.query(Submission).filter(Submission.id == video.submission_id).one()
    assert sub.status == SubmissionStatus.FAILED.value


def test_fail_event_for_unknown_video_is_acknowledged(client, queue):
    r = _post_avatar(client, {"event_type": "avatar_video.fail", "event_data": {"video_id": "ghost", "msg": "x"}})
    assert r.status_code == 200
    assert queue.jobs == []


def test_unknown_event_type_is_acknowledged(client, queue):
    r = _post_avatar(client, {"event_type": "avatar_video.gif_success", "event_data": {}})
    assert r.status_code == 200
    assert r.json() == {"success": True}


def test_caption_editor_completion_enqueues_final_step(client, db, article, queue):
    video = _rendering_video(db, article)
    video.followup_id = "proj-7"
    db.commit()

    r = client.post("/webhooks/caption-editor", json={"projectId": "proj-7", "status": "completed", "directUrl": "https://cdn.test/final.mp4"})

    assert r.status_code == 200
    assert queue.jobs == [
        (JobKind.COMPLETE_RENDERED_VIDEO, {"followup_id": "proj-7", "asset_url": "https://cdn.test/final.mp4", "duration": None})
    ]

    kind, payload = queue.jobs[0]
    complete_rendered_video(db, **payload)
    db.refresh(video)
    assert video.status == OutputStatus.COMPLETED.value
    assert video.asset_url == "https://cdn.test/final.mp4"
    sub = db.query(Submission).filter(Submission.id == video.submission_id).one()
    assert sub.status == SubmissionStatus.COMPLETED.value


def test_caption_editor_failure_marks_output_failed(client, db, article):
    video = _rendering_video(db, article)
    video.followup_id = "proj-8"
    db.commit()

    r = client.post("/webhooks/caption-editor", json={"id": "proj-8", "status": "failed", "error": "bad codec"})

    assert r.status_code == 200
    db.refresh(video)
    assert video.status == OutputStatus.FAILED.value
    assert video.error == "Caption editing failed: bad codec"


def test_caption_editor_missing_project_id_is_400(client):
    r = client.post("/webhooks/caption-editor", json={"status": "completed"})
    assert r.status_code == 400


def test_complete_rendered_video_without_match_returns_none(db):
    assert complete_rendered_video(db, provider_id="nobody", asset_url="u") is None




def test_non_object_event_data_is_acknowledged(client, queue, caption_editor):
    r = _post_avatar(client, {"event_type": "avatar_video.success", "event_data": "vid-1"})

    assert r.status_code == 200
    assert r.json() == {"success": True}
    assert queue.jobs == []
    assert caption_editor.calls == []


def test_signed_non_json_avatar_body_is_acknowledged(client, queue):
    raw = b"not json at all"
    sig = hmac.new(SECRET.encode("utf-8"), raw, hashlib.sha256).hexdigest()

    r = client.post("/webhooks/avatar-video", content=raw, headers={"signature": sig})

    assert r.status_code == 200
    assert r.json() == {"success": True}
    assert queue.jobs == []


def test_success_forwards_music_and_bumpers_to_caption_editor(client, db, article, caption_editor):
    video = _rendering_video(db, article)
    video.customization_json = json.dumps(
        {
            "caption_template_id": "tmpl-9",
            "background_music_url": "https://cdn.test/calm.mp3",
            "background_music_volume": 0.2,
            "end_bumper_url": "https://cdn.test/outro.mp4",
            "end_bumper_duration": 4.0,
        }
    )
    db.commit()

    r = _post_avatar(client, {"event_type": "avatar_video.success", "event_data": {"video_id": "vid-1", "url": "https://cdn.test/raw.mp4"}})

    assert r.status_code == 200
    call = caption_editor.calls[0]
    assert call["music_url"] == "https://cdn.test/calm.mp3"
    assert call["music_volume"] == 0.2
    assert call["bumpers"] == [{"position": "end", "url": "https://cdn.test/outro.mp4", "duration": 4.0}]


def test_success_without_music_or_bumpers_sends_none(client, db, article, caption_editor):
    _rendering_video(db, article)

    _post_avatar(client, {"event_type": "avatar_video.success", "event_data": {"video_id": "vid-1", "url": "https://cdn.test/raw.mp4"}})

    call = caption_editor.calls[0]
    assert call["music_url"] is None
    assert call["bumpers"] == []
