from fastapi import Depends

from contentops.core.config import Settings, settings
from contentops.services.backends.http_clients import CaptionEditorClient
from contentops.services.job_queue import CeleryJobQueue, JobQueue


def get_settings() -> Settings:
    return settings


def get_job_queue() -> JobQueue:
    return CeleryJobQueue()


def get_caption_editor(cfg: Settings = Depends(get_settings)) -> CaptionEditorClient:
    return CaptionEditorClient(
        cfg.caption_editor_api_url,
        cfg.caption_editor_api_key,
        timeout_s=cfg.backend_timeout_sec,
    )
