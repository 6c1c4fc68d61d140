from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class StageName(str, Enum):
    """The fixed stages of the listing analysis pipeline, in execution order."""

    RESEARCH = "research"
    CATALOG_ALIGNMENT = "catalog_alignment"
    COPYWRITING = "copywriting"


@dataclass(frozen=True)
class StageRequest:
    """Provider-agnostic request for one inference call."""

    stage: StageName
    user_prompt: str
    system_prompt: str = ""
    image_urls: tuple[str, ...] = ()
    max_output_tokens: int | None = None
    json_mode: bool = True


@dataclass(frozen=True)
class StructuredPayload:
    """Stage output that already arrived as a JSON object."""

    data: dict[str, Any]


@dataclass(frozen=True)
class RawTextPayload:
    """Stage output that arrived as text and still needs extraction."""

    text: str


StagePayload = StructuredPayload | RawTextPayload


@dataclass(frozen=True)
class StageResult:
    """Outcome of one stage: a payload on success, the last error otherwise."""

    stage: StageName
    success: bool
    payload: StagePayload | None = None
    error: str | None = None
    attempts: int = 0
    terminal: bool = False
    elapsed_seconds: float = 0.0

    @classmethod
    def succeeded(
        cls,
        stage: StageName,
        payload: StagePayload,
        attempts: int,
        elapsed_seconds: float = 0.0,
    ) -> "StageResult":
        return cls(
            stage=stage,
            success=True,
            payload=payload,
            attempts=attempts,
            elapsed_seconds=elapsed_seconds,
        )

    @classmethod
    def failed(
        cls,
        stage: StageName,
        error: str,
        attempts: int,
        terminal: bool = False,
        elapsed_seconds: float = 0.0,
    ) -> "StageResult":
        return cls(
            stage=stage,
            success=False,
            error=error,
            attempts=attempts,
            terminal=terminal,
            elapsed_seconds=elapsed_seconds,
        )


@dataclass
class StageTrace:
    """Attempt bookkeeping for the stages of one analysis run."""

    attempts: dict[str, int] = field(default_factory=dict)
    failures: dict[str, str] = field(default_factory=dict)

    def record(self, result: StageResult) -> None:
        self.attempts[result.stage.value] = result.attempts
        if not result.success and result.error is not None:
            self.failures[result.stage.value] = result.error
