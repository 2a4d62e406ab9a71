"""Thin httpx clients for the rendering backends."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from contentops.core.errors import UpstreamFailure

logger = logging.getLogger(__name__)


def _post_json(url: str, *, headers: Dict[str, str], payload: Dict[str, Any], timeout_s: float) -> Dict[str, Any]:
    try:
        with httpx.Client(timeout=timeout_s) as client:
            r = client.post(url, json=payload, headers=headers)
            r.raise_for_status()
            return r.json()
    except httpx.HTTPStatusError as e:
        raise UpstreamFailure(f"{url} returned {e.response.status_code}: {e.response.text[:300]}") from e
    except (httpx.HTTPError, ValueError) as e:
        raise UpstreamFailure(f"{url} request failed: {e}") from e


class SpeechClient:
    """Text-to-speech. Returns a hosted audio URL synchronously."""

    def __init__(self, base_url: str, api_key: Optional[str], default_voice_id: str, timeout_s: float = 120.0) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.default_voice_id = default_voice_id
        self.timeout_s = timeout_s

    def synthesize(
        self,
        text: str,
        *,
        language: str,
        voice_id: Optional[str] = None,
        guest_voice_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """`guest_voice_id` turns on two-speaker dialogue; `voice_id` is then the host."""
        if not self.api_key:
            raise UpstreamFailure("SPEECH_API_KEY is missing")
        payload: Dict[str, Any] = {
            "text": text,
            "voice_id": voice_id or self.default_voice_id,
            "language": language,
            "output_format": "mp3_44100_128",
        }
        if guest_voice_id:
            payload["guest_voice_id"] = guest_voice_id
        data = _post_json(
            f"{self.base_url}/v1/speech",
            headers={"xi-api-key": self.api_key},
            payload=payload,
            timeout_s=self.timeout_s,
        )
        audio_url = data.get("audio_url")
        if not audio_url:
            raise UpstreamFailure("Speech backend returned no audio_url")
        return {"audio_url": audio_url, "duration": data.get("duration")}


class AvatarVideoClient:
    """Avatar video renderer. Rendering is asynchronous; completion arrives by webhook."""

    def __init__(self, base_url: str, api_key: Optional[str], timeout_s: float = 60.0) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout_s = timeout_s

    def generate_video(
        self,
        *,
        script: str,
        title: str,
        character_type: str,
        character_key: str,
        voice_id: Optional[str],
    ) -> str:
        if not self.api_key:
            raise UpstreamFailure("AVATAR_VIDEO_API_KEY is missing")

        character: Dict[str, Any] = {"type": character_type}
        if character_type == "avatar":
            character["avatar_id"] = character_key
        else:
            character["talking_photo_id"] = character_key

        voice: Dict[str, Any] = {"type": "text", "input_text": script}
        if voice_id:
            voice["voice_id"] = voice_id

        data = _post_json(
            f"{self.base_url}/v2/video/generate",
            headers={"X-Api-Key": self.api_key},
            payload={
            "title": title,
                "video_inputs": [{"character": character, "voice": voice}],
                "dimension": {"width": 720, "height": 1280},
            },
            timeout_s=self.timeout_s,
        )
        video_id = (data.get("data") or {}).get("video_id")
        if not video_id:
            raise UpstreamFailure(f"Avatar backend returned no video_id: {data.get('error')}")
        return str(video_id)


class CaptionEditorClient:
    """Caption / zoom / B-roll editor applied to rendered videos."""

    def __init__(self, base_url: str, api_key: Optional[str], timeout_s: float = 60.0) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout_s = timeout_s

    def upload_for_editing(
        self,
        *,
        video_url: str,
        webhook_url: str,
        title: str,
        language: str,
        theme_id: str,
        magic_zooms: bool = True,
        magic_brolls: bool = True,
        magic_brolls_percentage: int = 40,
        music_url: Optional[str] = None,
        music_volume: Optional[float] = None,
        bumpers: Optional[List[Dict[str, Any]]] = None,
    ) -> str:
        if not self.api_key:
            raise UpstreamFailure("CAPTION_EDITOR_API_KEY is missing")
        payload: Dict[str, Any] = {
            "title": title,
            "language": language,
            "videoUrl": video_url,
            "webhookUrl": webhook_url,
            "userThemeId": theme_id,
            "magicZooms": magic_zooms,
            "magicBrolls": magic_brolls,
            "magicBrollsPercentage": magic_brolls_percentage,
        }
        if music_url:
            payload["music"] = {"url": music_url, "volume": music_volume}
        if bumpers:
            payload["bumpers"] = bumpers
        data = _post_json(
            f"{self.base_url}/v1/projects",
            headers={"x-api-key": self.api_key},
            payload=payload,
            timeout_s=self.timeout_s,
        )
        project_id = data.get("id") or data.get("projectId")
        if not project_id:
            raise UpstreamFailure("Caption editor returned no project id")
        logger.info("Caption editor project created project_id=%s", project_id)
        return str(project_id)
