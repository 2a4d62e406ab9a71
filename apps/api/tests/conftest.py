import os

# must be set before contentops.core.config is imported
os.environ["ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["AVATAR_VIDEO_WEBHOOK_SECRET"] = "avatar-secret"
os.environ["PUBLIC_BASE_URL"] = "https://contentops.test"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from contentops.api.deps import get_caption_editor, get_job_queue  # noqa: E402
from contentops.db.base import Base  # noqa: E402
from contentops.db.session import SessionLocal, engine  # noqa: E402
from contentops.main import app  # noqa: E402
from contentops.models.article import Article  # noqa: E402
from contentops.models.customization import CaptionStyle, Character, Voice  # noqa: E402
from contentops.services.backends.base import GenerationResult, ScriptResult  # noqa: E402

ORG = "org-1"
OTHER_ORG = "org-2"


class FakeJobQueue:
    def __init__(self):
        self.jobs = []
        self.fail_on = set()

    def enqueue(self, kind, payload):
        if kind in self.fail_on:
            raise RuntimeError(f"broker down for {kind.value}")
        self.jobs.append((kind, dict(payload)))
        return f"task-{len(self.jobs)}"

    def kinds(self):
        return [k for k, _ in self.jobs]


class FakeBackend:
    def __init__(self, script="Hello script", result=None, error=None):
        self.script = script
        self.result = result or GenerationResult(asset_url="https://cdn.test/a.mp3", duration=12.5)
        self.error = error
        self.calls = []

    def start_script_generation(self, article, language):
        self.calls.append(("script", article.title, language))
        if self.error:
            raise self.error
        return ScriptResult(title=f"{article.title} ({language})", script=self.script, payload={"transcript": self.script})

    def start_full_generation(self, article, language, script, customization):
        self.calls.append(("full", article.title, language, script, dict(customization)))
        if self.error:
            raise self.error
        return self.result


class FakeCaptionEditor:
    def __init__(self, error=None):
        self.error = error
        self.calls = []

    def upload_for_editing(self, **kwargs):
        self.calls.append(kwargs)
        if self.error:
            raise self.error
        return f"proj-{len(self.calls)}"


@pytest.fixture(autouse=True)
def _schema():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    s = SessionLocal()
    try:
        yield s
    finally:
        s.close()


@pytest.fixture
def queue():
    return FakeJobQueue()


@pytest.fixture
def caption_editor():
    return FakeCaptionEditor()


@pytest.fixture
def client(queue, caption_editor):
    app.dependency_overrides[get_job_queue] = lambda: queue
    app.dependency_overrides[get_caption_editor] = lambda: caption_editor
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def article(db):
    a = Article(organization_id=ORG, title="Monsoon arrives early", content="The monsoon reached the coast.", category="news")
    db.add(a)
    db.commit()
    db.refresh(a)
    return a


@pytest.fixture
def character(db):
    c = Character(organization_id=ORG, name="Anchor", character_type="talking_photo", provider_image_key="tp-123", voice_id="v-1")
    db.add(c)
    db.commit()
    db.refresh(c)
    return c


@pytest.fixture
def caption_style(db):
    s = CaptionStyle(organization_id=ORG, name="Bold", template_id="tmpl-9")
    db.add(s)
    db.commit()
    db.refresh(s)
    return s


@pytest.fixture
def voice(db):
    v = Voice(organization_id=ORG, name="Host", provider_voice_id="el-host")
    db.add(v)
    db.commit()
    db.refresh(v)
    return v
