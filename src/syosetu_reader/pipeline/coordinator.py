"""Pipeline coordinator: one fetch → translate → extract → merge → persist run per chapter.

Each requested chapter runs as its own asyncio task. Chapters proceed in
parallel; within a task the steps are strictly ordered. The front end never
awaits a task directly: it calls ``request`` and later drains finished
outcomes with ``poll`` (or awaits ``next_outcome``).

Concurrency rules:
    - At most one live task per chapter id; a second ``request`` returns it.
    - A cached chapter is returned without touching the source or translator.
    - An unreadable cache yields an already-failed task, not an exception.
    - The shared in-memory glossary and both store files are only modified
      under ``_glossary_lock``.
    - A task translates with a snapshot of the glossary taken before it
      starts; terms it discovers only help later chapters.
"""

import asyncio
import functools
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

import structlog

from syosetu_reader.crawler.source import Chapter, ContentSource
from syosetu_reader.errors import ReaderError, StorageWriteError, TaskFailure
from syosetu_reader.pipeline.events import EventBus, PipelineEvent
from syosetu_reader.store.glossary_store import GlossaryStore
from syosetu_reader.store.translation_cache import TranslationCache
from syosetu_reader.translator.glossary import TermPair, parse_term_pairs
from syosetu_reader.translator.service import TranslationService

logger = structlog.get_logger()


class TaskStatus(str, Enum):
    """Pipeline task status, in success-path order."""

    FETCHING = "fetching"
    TRANSLATING = "translating"
    EXTRACTING = "extracting"
    MERGING = "merging"
    PERSISTING = "persisting"
    DONE = "done"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskStatus.DONE, TaskStatus.FAILED)


@dataclass(frozen=True)
class CachedResult:
    """A chapter whose translation was already cached."""

    document_id: str
    text: str


@dataclass(frozen=True)
class TaskOutcome:
    """Terminal result of a pipeline task, delivered once by ``poll``."""

    document_id: str
    status: TaskStatus
    text: Optional[str] = None
    error: Optional[TaskFailure] = None

    @property
    def ok(self) -> bool:
        return self.status == TaskStatus.DONE

    @property
    def reason(self) -> Optional[str]:
        """Human-readable failure reason."""
        return self.error.reason if self.error else None


@dataclass(eq=False)
class PipelineTask:
    """One in-flight pipeline run for a single chapter."""

    collection_id: str
    chapter: Chapter
    status: TaskStatus = TaskStatus.FETCHING
    handle: Optional[asyncio.Task] = None
    text: Optional[str] = None
    error: Optional[TaskFailure] = None

    @property
    def document_id(self) -> str:
        return self.chapter.id

    def outcome(self) -> TaskOutcome:
        return TaskOutcome(
            document_id=self.document_id,
            status=self.status,
            text=self.text,
            error=self.error,
        )


class PipelineCoordinator:
    """Deduplicating scheduler for per-chapter pipeline tasks."""

    def __init__(
        self,
        source: ContentSource,
        translator: TranslationService,
        glossary_store: GlossaryStore,
        cache: TranslationCache,
        event_bus: Optional[EventBus] = None,
    ):
        """Initialize the coordinator.

        Args:
            source: Where raw chapter text comes from
            translator: Translation and term extraction backend
            glossary_store: Durable glossary
            cache: Durable translation cache
            event_bus: Optional bus receiving a ``task_status`` event per transition
        """
        self.source = source
        self.translator = translator
        self.glossary_store = glossary_store
        self.cache = cache
        self.event_bus = event_bus or EventBus()

        self._in_flight: dict[str, PipelineTask] = {}
        self._completed: asyncio.Queue[PipelineTask] = asyncio.Queue()

        # Guards _glossaries and every store write
        self._glossary_lock = asyncio.Lock()
        self._glossaries: dict[str, dict[str, str]] = {}

    # ------------------------------------------------------------------
    # Front-end API
    # ------------------------------------------------------------------

    def request(
        self, collection_id: str, chapter: Chapter
    ) -> Union[PipelineTask, CachedResult]:
        """Get a chapter's translation, starting a pipeline task if needed.

        Must be called from the running event loop. Never blocks.

        Returns:
            CachedResult if already translated, otherwise the (possibly
            already running) PipelineTask for the chapter
        """
        existing = self._in_flight.get(chapter.id)
        try:
            text = self.cache.get(collection_id, chapter.id)
        except ReaderError as e:
            if existing is not None:
                return existing
            return self._start_failed(collection_id, chapter, e)

        if text is not None:
            logger.debug("chapter_cache_hit", collection=collection_id, chapter=chapter.index)
            return CachedResult(document_id=chapter.id, text=text)

        if existing is not None:
            return existing

        task = PipelineTask(collection_id=collection_id, chapter=chapter)
        self._in_flight[chapter.id] = task
        task.handle = asyncio.create_task(self._run(task), name=f"pipeline:{chapter.id}")
        task.handle.add_done_callback(functools.partial(self._on_task_done, task))

        logger.info(
            "task_started",
            collection=collection_id,
            chapter=chapter.index,
            title=chapter.title,
        )
        self._emit(task)
        return task

    def _start_failed(
        self, collection_id: str, chapter: Chapter, exc: ReaderError
    ) -> PipelineTask:
        """Register a task that failed before it could start.

        Its outcome is delivered through ``poll`` like any other.
        """
        task = PipelineTask(collection_id=collection_id, chapter=chapter)
        task.error = TaskFailure.from_exception(chapter.id, exc, task.status.value)
        self._in_flight[chapter.id] = task
        logger.error(
            "task_failed",
            collection=collection_id,
            chapter=chapter.index,
            stage=task.status.value,
            error=str(exc),
        )
        self._advance(task, TaskStatus.FAILED)
        self._completed.put_nowait(task)
        return task

    def poll(self) -> list[TaskOutcome]:
        """Drain outcomes of tasks that finished since the last call.

        Each drained task leaves the in-flight set, so a later ``request``
        for the same chapter may start a fresh task.
        """
        outcomes = []
        while True:
            try:
                task = self._completed.get_nowait()
            except asyncio.QueueEmpty:
                break
            outcomes.append(self._consume(task))
        return outcomes

    async def next_outcome(self) -> TaskOutcome:
        """Wait for the next finished task and consume its outcome."""
        task = await self._completed.get()
        return self._consume(task)

    async def wait_all(self) -> list[TaskOutcome]:
        """Wait for every in-flight task, then drain all outcomes."""
        handles = [t.handle for t in self._in_flight.values() if t.handle is not None]
        if handles:
            await asyncio.wait(handles)
        return self.poll()

    def status(self, document_id: str) -> Optional[TaskStatus]:
        """Status of the live task for a chapter, if any."""
        task = self._in_flight.get(document_id)
        return task.status if task else None

    @property
    def in_flight(self) -> list[str]:
        """Chapter ids with a task that has not been drained yet."""
        return list(self._in_flight)

    def list_cached(self, collection_id: str) -> set[str]:
        return self.cache.list_cached(collection_id)

    def glossary(self, collection_id: str) -> dict[str, str]:
        """Copy of the current glossary for a collection."""
        if collection_id in self._glossaries:
            return dict(self._glossaries[collection_id])
        return self.glossary_store.load(collection_id)

    # ------------------------------------------------------------------
    # Task body
    # ------------------------------------------------------------------

    async def _run(self, task: PipelineTask) -> None:
        chapter = task.chapter
        log = logger.bind(collection=task.collection_id, chapter=chapter.index)

        try:
            raw_text = await self.source.fetch_document(chapter.id)
            log.debug("chapter_fetched", chars=len(raw_text))

            snapshot = await self._snapshot(task.collection_id)

            self._advance(task, TaskStatus.TRANSLATING)
            translated = await self.translator.translate(raw_text, snapshot)

            self._advance(task, TaskStatus.EXTRACTING)
            lines = await self.translator.extract_terms(translated, raw_text, snapshot)

            self._advance(task, TaskStatus.MERGING)
            pairs = parse_term_pairs(lines)

            async with self._glossary_lock:
                added = self._persist(task, pairs, translated)

        except Exception as e:
            task.error = TaskFailure.from_exception(chapter.id, e, task.status.value)
            log.error("task_failed", stage=task.status.value, error=str(e))
            self._advance(task, TaskStatus.FAILED)
            return

        task.text = translated
        log.info("task_done", chars=len(translated), new_terms=added)
        self._advance(task, TaskStatus.DONE)

    async def _snapshot(self, collection_id: str) -> dict[str, str]:
        async with self._glossary_lock:
            if collection_id not in self._glossaries:
                self._glossaries[collection_id] = self.glossary_store.load(collection_id)
            return dict(self._glossaries[collection_id])

    def _persist(self, task: PipelineTask, pairs: list[TermPair], translated: str) -> int:
        """Merge new terms and cache the translation. Caller holds the glossary lock.

        Returns:
            Number of terms added to the glossary
        """
        collection_id = task.collection_id
        current = self._glossaries.setdefault(collection_id, {})

        additions = []
        seen = set(current)
        for pair in pairs:
            if pair.source not in seen:
                seen.add(pair.source)
                additions.append(pair)

        self._advance(task, TaskStatus.PERSISTING)

        merged = None
        previous: dict[str, str] = {}
        if additions:
            previous = self.glossary_store.load(collection_id)
            merged = self.glossary_store.merge(collection_id, additions)

        try:
            self.cache.put(collection_id, task.document_id, translated)
        except ReaderError:
            if merged is not None:
                self._rollback_glossary(collection_id, previous)
            raise

        if merged is not None:
            self._glossaries[collection_id] = merged
        return len(additions)

    def _rollback_glossary(self, collection_id: str, previous: dict[str, str]) -> None:
        try:
            self.glossary_store.restore(collection_id, previous)
        except StorageWriteError as e:
            logger.error("glossary_rollback_failed", collection=collection_id, error=str(e))

    # ------------------------------------------------------------------
    # Bookkeeping
    # ------------------------------------------------------------------

    def _advance(self, task: PipelineTask, status: TaskStatus) -> None:
        task.status = status
        self._emit(task)

    def _emit(self, task: PipelineTask) -> None:
        data = {
            "document_id": task.document_id,
            "index": task.chapter.index,
            "status": task.status.value,
        }
        if task.error is not None:
            data["error"] = task.error.reason
        self.event_bus.emit(
            PipelineEvent(type="task_status", data=data, collection_id=task.collection_id)
        )

    def _on_task_done(self, task: PipelineTask, handle: asyncio.Task) -> None:
        if handle.cancelled() and not task.status.is_terminal:
            task.error = TaskFailure(task.document_id, "cancelled", task.status.value)
            self._advance(task, TaskStatus.FAILED)
        self._completed.put_nowait(task)

    def _consume(self, task: PipelineTask) -> TaskOutcome:
        if self._in_flight.get(task.document_id) is task:
            del self._in_flight[task.document_id]
        return task.outcome()
