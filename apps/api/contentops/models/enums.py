from __future__ import annotations

import enum


class Language(str, enum.Enum):
    ENGLISH = "ENGLISH"
    HINDI = "HINDI"
    MARATHI = "MARATHI"
    BENGALI = "BENGALI"
    GUJARATI = "GUJARATI"


CANONICAL_LANGUAGE = Language.ENGLISH


class SubmissionStatus(str, enum.Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    PARTIAL_COMPLETE = "PARTIAL_COMPLETE"


class OutputStatus(str, enum.Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    SCRIPT_READY = "SCRIPT_READY"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


TERMINAL_OUTPUT_STATUSES = frozenset({OutputStatus.COMPLETED, OutputStatus.FAILED})


class OutputKind(str, enum.Enum):
    AUDIO = "AUDIO"
    PODCAST = "PODCAST"
    VIDEO = "VIDEO"
    QUIZ = "QUIZ"
    INTERACTIVE_PODCAST = "INTERACTIVE_PODCAST"
    # rendered through the same avatar backend, but not owned by a submission
    STANDALONE_VIDEO = "STANDALONE_VIDEO"


# slow/expensive kinds pause at SCRIPT_READY for human review
SCRIPT_FIRST_KINDS = frozenset(
    {OutputKind.PODCAST, OutputKind.VIDEO, OutputKind.INTERACTIVE_PODCAST}
)

# kinds whose render is finished by avatar-video webhooks, in lookup priority order
AVATAR_VIDEO_KINDS = (OutputKind.VIDEO, OutputKind.STANDALONE_VIDEO)


class JobKind(str, enum.Enum):
    GENERATE_OUTPUT = "generate_output"
    GENERATE_SCRIPT = "generate_script"
    RENDER_MEDIA = "render_media"
    COMPLETE_RENDERED_VIDEO = "complete_rendered_video"


def first_stage_job(kind: OutputKind) -> JobKind:
    if kind in SCRIPT_FIRST_KINDS:
        return JobKind.GENERATE_SCRIPT
    if kind == OutputKind.STANDALONE_VIDEO:
        return JobKind.RENDER_MEDIA
    return JobKind.GENERATE_OUTPUT
