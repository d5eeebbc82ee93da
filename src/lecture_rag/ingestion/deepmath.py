# src/lecture_rag/ingestion/deepmath.py

"""Import of the DeepMath dataset from the Hugging Face datasets server."""

import asyncio
import dataclasses
import logging
from typing import Any

import httpx
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from lecture_rag.errors import IngestionError
from lecture_rag.jobs.runner import JobContext, JobRunner, StartResult
from lecture_rag.storage.models import ProblemImport
from lecture_rag.tuning.tuning import round_half_up

from .config import IngestionConfig
from .importer import ImportResult, ProblemImporter

logger = logging.getLogger(__name__)

JOB_NAME = "deepmath-ingestion"
# The datasets server rejects /rows requests longer than this.
MAX_ROWS_LENGTH = 100
DEFAULT_TOPIC = "DeepMath"
MAX_TOPIC_LENGTH = 255


def split_topic(topic_path: str | None) -> tuple[str, str | None]:
    """``"A -> B -> C"`` to a topic and optional subtopic.

    The whole path is the topic when it fits the column; otherwise the first
    segment is the topic and the rest the subtopic.
    """
    parts = [part.strip() for part in (topic_path or "").split("->") if part.strip()]
    if not parts:
        return DEFAULT_TOPIC, None

    full = " -> ".join(parts)
    if len(full) <= MAX_TOPIC_LENGTH:
        return full, None
    tail = " -> ".join(parts[1:])[:MAX_TOPIC_LENGTH]
    return parts[0][:MAX_TOPIC_LENGTH], tail or None


def _text(row: dict[str, Any], key: str) -> str | None:
    value = row.get(key)
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def parse_row(row_node: Any, dataset: str, split: str) -> ProblemImport | None:
    if not isinstance(row_node, dict):
        return None
    row_idx = row_node.get("row_idx")
    row = row_node.get("row")
    if not isinstance(row_idx, int) or row_idx < 0 or not isinstance(row, dict):
        return None
    if row.get("question") is None:
        return None

    sections = []
    final_answer = _text(row, "final_answer")
    if final_answer:
        sections.append(f"Final answer: {final_answer}")
    for n in (1, 2, 3):
        rationale = _text(row, f"r1_solution_{n}")
        if rationale:
            sections.append(f"Rationale {n}:\n{rationale}")

    difficulty = row.get("difficulty")
    topic, subtopic = split_topic(row.get("topic"))
    return ProblemImport(
        source_id=f"hf:{dataset}:{split}:{row_idx}",
        statement=str(row["question"]),
        topic=topic,
        subtopic=subtopic,
        solution="\n\n".join(sections) or None,
        difficulty=round_half_up(float(difficulty)) if isinstance(difficulty, (int, float)) else None,
    )


class DeepMathIngestion:
    """Pages through a dataset split and imports every row.

    A fixed delay separates consecutive requests to stay within the
    datasets server's rate limits. Transport errors are retried; anything
    still failing surfaces as :class:`IngestionError`.

    Example:
        >>> ingestion = DeepMathIngestion(importer, IngestionConfig(max_rows=500))
        >>> ingestion.start(job_runner)
        >>> job_runner.status("deepmath-ingestion").progress
    """

    def __init__(
        self,
        importer: ProblemImporter,
        config: IngestionConfig = IngestionConfig(),
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._importer = importer
        self._config = config
        headers = {"Accept": "application/json"}
        if config.token and config.token.strip():
            headers["Authorization"] = f"Bearer {config.token.strip()}"
        self._client = client or httpx.AsyncClient(
            base_url=config.base_url, timeout=config.http_timeout, headers=headers
        )

    def start(self, jobs: JobRunner, **overrides: Any) -> StartResult:
        """Run as the ``deepmath-ingestion`` job; ``overrides`` replace
        :class:`IngestionConfig` fields for this run."""
        config = dataclasses.replace(self._config, **overrides)
        return jobs.start(JOB_NAME, lambda context: self.run(config, context))

    async def run(
        self, config: IngestionConfig | None = None, context: JobContext | None = None
    ) -> ImportResult:
        config = config or self._config
        batch_size = min(max(config.batch_size, 1), MAX_ROWS_LENGTH)
        delay = max(config.request_delay_seconds, 0.0)

        total_rows = await self.fetch_total_rows(config.dataset, config.config, config.split)
        effective_total = min(config.max_rows, total_rows) if config.max_rows > 0 else total_rows
        logger.info(
            "DeepMath ingestion: %d rows in %s/%s/%s, ingesting %d (batch %d, index %s)",
            total_rows,
            config.dataset,
            config.config,
            config.split,
            effective_total,
            batch_size,
            config.index_embeddings,
        )
        if context:
            context.update(
                dataset=config.dataset,
                split=config.split,
                total_rows=total_rows,
                effective_total=effective_total,
                processed_rows=0,
                token_present=bool(config.token),
            )

        totals = ImportResult(0, 0, 0)
        offset = 0
        while offset < effective_total:
            length = min(batch_size, effective_total - offset)
            rows = await self.fetch_rows(config.dataset, config.config, config.split, offset, length)
            imports = [
                item for row in rows if (item := parse_row(row, config.dataset, config.split))
            ]
            result = await self._importer.import_problems(
                imports,
                index_after_save=config.index_embeddings,
                index_chunk_size=config.index_chunk_size,
                index_delay_seconds=config.index_delay_seconds,
            )
            totals = totals + result + ImportResult(0, 0, len(rows) - len(imports))
            offset += length

            if context:
                context.update(
                    processed_rows=offset,
                    imported=totals.imported,
                    skipped=totals.skipped,
                    failed=totals.failed,
                )
            if offset % (batch_size * 10) == 0 or offset >= effective_total:
                logger.info(
                    "DeepMath ingestion progress: %d/%d rows (imported=%d, skipped=%d, failed=%d)",
                    offset,
                    effective_total,
                    totals.imported,
                    totals.skipped,
                    totals.failed,
                )
            if delay:
                await asyncio.sleep(delay)

        return totals

    async def fetch_total_rows(self, dataset: str, config: str, split: str) -> int:
        data = await self._get_json("/size", {"dataset": dataset, "config": config, "split": split})
        try:
            num_rows = int(data["size"]["splits"][0]["num_rows"])
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            raise IngestionError(
                f"Unable to determine dataset size (dataset={dataset} config={config} split={split})"
            ) from exc
        if num_rows <= 0:
            raise IngestionError(f"Dataset {dataset} split {split} is empty")
        return num_rows

    async def fetch_rows(
        self, dataset: str, config: str, split: str, offset: int, length: int
    ) -> list[Any]:
        data = await self._get_json(
            "/rows",
            {
                "dataset": dataset,
                "config": config,
                "split": split,
                "offset": offset,
                "length": length,
            },
        )
        rows = data.get("rows") if isinstance(data, dict) else None
        return rows if isinstance(rows, list) else []

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _get_json(self, path: str, params: dict[str, Any]) -> Any:
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self._config.http_attempts),
                wait=wait_exponential(multiplier=0.5, min=0.5, max=5),
                retry=retry_if_exception_type(httpx.HTTPError),
                before_sleep=before_sleep_log(logger, logging.WARNING),
                reraise=True,
            ):
                with attempt:
                    response = await self._client.get(path, params=params)
                    response.raise_for_status()
                    return response.json()
        except httpx.HTTPError as exc:
            raise IngestionError(
                f"Failed to call {path} after {self._config.http_attempts} attempts: {exc}"
            ) from exc
        except ValueError as exc:
            raise IngestionError(f"{path} returned invalid JSON") from exc
