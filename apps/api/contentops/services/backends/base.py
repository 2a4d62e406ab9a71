from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol


@dataclass
class ArticleContent:
    title: str
    content: str
    category: str | None = None


@dataclass
class ScriptResult:
    title: str | None
    script: str
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass
class GenerationResult:
    """Either a pending handle (`provider_id`) or a finished asset."""

    provider_id: str | None = None
    asset_url: str | None = None
    duration: float | None = None
    payload: dict[str, Any] = field(default_factory=dict)

    @property
    def pending(self) -> bool:
        return self.provider_id is not None and self.asset_url is None


class GenerationBackend(Protocol):
    def start_script_generation(self, article: ArticleContent, language: str) -> ScriptResult:
        ...

    def start_full_generation(
        self,
        article: ArticleContent,
        language: str,
        script: str | None,
        customization: dict[str, Any],
    ) -> GenerationResult:
        ...
