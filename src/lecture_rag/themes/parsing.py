# src/lecture_rag/themes/parsing.py

"""Parsing of the theme JSON returned by the LLM."""

import json
import logging

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

from lecture_rag.errors import ThemeParseError

from .models import ExtractedTheme

logger = logging.getLogger(__name__)


class ThemePayload(BaseModel):
    """One element of the array the model is asked to return."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str
    confidence: float
    summary: str = ""
    keywords: list[str] = Field(default_factory=list)
    mapped_topic: str | None = Field(default=None, alias="mappedTopic")

    @field_validator("confidence")
    @classmethod
    def _clamp_confidence(cls, value: float) -> float:
        return max(0.0, min(1.0, value))

    @field_validator("summary", mode="before")
    @classmethod
    def _null_summary(cls, value: object) -> object:
        return "" if value is None else value

    @field_validator("keywords", mode="before")
    @classmethod
    def _null_keywords(cls, value: object) -> object:
        return [] if value is None else value

    def to_theme(self) -> ExtractedTheme:
        mapped_topic = (self.mapped_topic or "").strip()
        return ExtractedTheme(
            name=self.name.strip(),
            confidence=self.confidence,
            summary=self.summary.strip(),
            keywords=tuple(k.strip() for k in self.keywords if k.strip()),
            mapped_topic=mapped_topic or None,
        )


_PAYLOAD_LIST = TypeAdapter(list[ThemePayload])


def strip_code_fences(raw: str) -> str:
    return raw.replace("```json", "").replace("```", "").strip()


def parse_themes(raw: str | None, *, max_themes: int | None = None) -> list[ExtractedTheme]:
    """Turn a raw completion into themes.

    Raises:
        ThemeParseError: If the response is blank, not JSON, or not an
            array of theme objects. An empty array is a valid answer.
    """
    raw = raw or ""
    content = strip_code_fences(raw)
    if not content:
        raise ThemeParseError("empty response", raw=raw)

    try:
        data = json.loads(content)
    except json.JSONDecodeError as exc:
        raise ThemeParseError(f"not valid JSON ({exc.msg})", raw=raw) from exc

    if not isinstance(data, list):
        raise ThemeParseError(f"expected a JSON array, got {type(data).__name__}", raw=raw)

    try:
        payloads = _PAYLOAD_LIST.validate_python(data)
    except ValidationError as exc:
        raise ThemeParseError(
            f"unexpected theme shape ({exc.error_count()} errors)", raw=raw
        ) from exc

    themes = [payload.to_theme() for payload in payloads if payload.name.strip()]
    if max_themes is not None:
        themes = themes[:max_themes]
    logger.debug("Parsed %d themes from %d response chars", len(themes), len(raw))
    return themes
