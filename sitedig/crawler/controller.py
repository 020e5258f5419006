"""Crawl orchestration: seed the frontier, run workers, drain, and shut down."""

from __future__ import annotations

from dataclasses import dataclass
import logging
import threading
from typing import Any, Callable

from ..index import IndexConfig, Indexer
from .config import Configuration, CrawlConfig
from .dedup import DuplicateDetector
from .documents import Document, DocumentFactory
from .filters import FilterChain, FilterContext, build_crawl_chain, build_index_chain
from .frontier import Frontier
from .parsers import HTMLParserConfig
from .stats import StatsCollector
from .types import CrawlState, CrawlType, FetchStatus, ProcessOutcome, Stop


LOGGER = logging.getLogger(__name__)

IndexerFactory = Callable[[IndexConfig], Indexer]
DocumentFactoryFn = Callable[[str], Document]


@dataclass(slots=True)
class _CrawlSession:
    """State shared by every worker of one crawl."""

    crawl_type: CrawlType
    frontier: Frontier
    context: FilterContext
    detector: DuplicateDetector
    indexer: Indexer


class Crawler:
    """Crawl from the configured start URLs and index what survives.

    A crawler runs once: `run` walks through the states idle, seeding,
    running, draining, stopping, and closed, and the instance cannot be
    restarted afterwards.
    """

    def __init__(
        self,
        config: CrawlConfig,
        index_config: IndexConfig | None = None,
        *,
        extraction: HTMLParserConfig | None = None,
        indexer_factory: IndexerFactory | None = None,
        document_factory: DocumentFactoryFn | None = None,
        stats: StatsCollector | None = None,
    ) -> None:
        self.config = config
        self.index_config = index_config or IndexConfig()
        self.stats = stats or StatsCollector()

        self._indexer_factory = indexer_factory or Indexer
        self._owned_factory: DocumentFactory | None = None
        if document_factory is None:
            self._owned_factory = DocumentFactory(config, extraction=extraction)
            document_factory = self._owned_factory
        self._document_factory = document_factory

        self._state = CrawlState.IDLE
        self._state_lock = threading.Lock()
        self._abort = threading.Event()

    @classmethod
    def from_configuration(cls, configuration: Configuration, **kwargs: Any) -> "Crawler":
        return cls(
            configuration.crawler,
            configuration.index,
            extraction=configuration.content_extraction,
            **kwargs,
        )

    @property
    def state(self) -> CrawlState:
        with self._state_lock:
            return self._state

    def _set_state(self, state: CrawlState) -> None:
        with self._state_lock:
            previous, self._state = self._state, state
        LOGGER.info("crawler state %s -> %s", previous.value, state.value)

    def run(self) -> dict[str, Any]:
        """Run the crawl to completion and close the index.

        Configuration errors are raised before any worker starts. The indexer
        is closed on every path once it has been opened.
        """

        with self._state_lock:
            if self._state != CrawlState.IDLE:
                raise RuntimeError("Crawler instances are single-use; create a new one")
            self._state = CrawlState.SEEDING
        LOGGER.info("crawler state %s -> %s", CrawlState.IDLE.value, CrawlState.SEEDING.value)

        indexer: Indexer | None = None
        try:
            crawl_type, context, seed_chain = self._prepare()
            indexer = self._indexer_factory(self.index_config)
            session = _CrawlSession(
                crawl_type=crawl_type,
                frontier=Frontier(),
                context=context,
                detector=DuplicateDetector(),
                indexer=indexer,
            )
            self._crawl(session, seed_chain)
        finally:
            try:
                if indexer is not None:
                    indexer.close()
            finally:
                if self._owned_factory is not None:
                    self._owned_factory.close()
                self.stats.finish()
                self._set_state(CrawlState.CLOSED)

        summary = self.stats.to_json()
        LOGGER.info(
            "crawl finished: indexed=%s duplicates=%s fetch_errors=%s failed=%s",
            summary["indexed"],
            summary["duplicates"],
            summary["fetched_error"],
            summary["failed"],
        )
        return {
            "crawl_type": crawl_type.value,
            "state": self.state.value,
            "stats": summary,
        }

    def validate(self) -> None:
        """Check start URLs and build both filter chains without crawling.

        Raises `ValueError` (or `FilterChainError`) for a configuration the
        crawl would refuse. Nothing is opened and the state does not change.
        """

        self._prepare()

    def _prepare(self) -> tuple[CrawlType, FilterContext, FilterChain]:
        if not self.config.start_urls:
            raise ValueError("no start urls given")

        crawl_type = CrawlType.for_url(self.config.start_urls[0])
        context = FilterContext(config=self.config)

        # Dry-run build: a bad chain spec or option fails here, not per document.
        seed_chain = build_crawl_chain(crawl_type, context)
        index_chain = build_index_chain(crawl_type, context)
        LOGGER.info(
            "%s crawl: crawl chain %s, index chain %s",
            crawl_type.value,
            seed_chain.names,
            index_chain.names,
        )
        return crawl_type, context, seed_chain

    def _crawl(self, session: _CrawlSession, seed_chain: FilterChain) -> None:
        for url in self.config.start_urls:
            accepted = self.add_url(url, seed_chain, session.frontier, seed=True)
            if not accepted:
                LOGGER.warning("start url %s rejected by %s", url, seed_chain.label)

        workers = [
            threading.Thread(
                target=self._worker,
                args=(session,),
                name=f"crawler-worker-{idx}",
                daemon=True,
            )
            for idx in range(self.config.num_threads)
        ]
        for worker in workers:
            worker.start()
        self._set_state(CrawlState.RUNNING)

        try:
            self._wait_for_drain(session.frontier, workers)
            self._set_state(CrawlState.DRAINING)
        except BaseException:
            # Workers discard queued documents until they reach their stop message.
            self._abort.set()
            raise
        finally:
            session.frontier.push_stop(len(workers))
            self._set_state(CrawlState.STOPPING)
            LOGGER.info("waiting for %d worker threads to finish...", len(workers))
            for worker in workers:
                worker.join()
            self.stats.record_frontier_snapshot(session.frontier.snapshot())

    def _wait_for_drain(self, frontier: Frontier, workers: list[threading.Thread]) -> None:
        """Poll until every pushed document has been fully processed.

        Pending work is counted from push to the end of processing, so an
        idle observation cannot race with a worker about to enqueue links.
        """

        interval = self.config.wait_before_leave
        while not frontier.wait_for_idle(interval):
            if not any(worker.is_alive() for worker in workers):
                raise RuntimeError("all crawl workers exited with work still pending")
            LOGGER.debug("frontier busy: %s", frontier.snapshot())

    def _worker(self, session: _CrawlSession) -> None:
        crawl_chain = build_crawl_chain(session.crawl_type, session.context)
        index_chain = build_index_chain(session.crawl_type, session.context)

        while True:
            message = session.frontier.pop()
            if isinstance(message, Stop) or message is None:
                return

            document = message.document
            if self._abort.is_set():
                session.frontier.task_done()
                continue

            try:
                outcome = self.process_document(document, session, crawl_chain, index_chain)
            except Exception as exc:
                LOGGER.error("error processing document %s: %s", document.uri, exc, exc_info=True)
                self.stats.record_exception(exc)
                outcome = ProcessOutcome.FAILED
            finally:
                session.frontier.task_done()
            self.stats.record_outcome(outcome)

    def process_document(
        self,
        document: Document,
        session: _CrawlSession,
        crawl_chain: FilterChain,
        index_chain: FilterChain,
    ) -> ProcessOutcome:
        """Fetch one document, enqueue what it links to, and index it."""

        LOGGER.debug("processing document %s", document.uri)
        status = document.fetch()
        self.stats.record_fetch(status, document.error)

        if status == FetchStatus.SUCCESS:
            admitted = session.detector.apply(document) is not None
            # A duplicate is not indexed, but its links are still followed.
            for link in document.links:
                self.add_url(link, crawl_chain, session.frontier, referrer=document)
            if not admitted:
                return ProcessOutcome.DUPLICATE
            return self.add_to_index(document, index_chain, session.indexer)

        if status == FetchStatus.REDIRECT:
            LOGGER.debug("redirect to %s", document.redirect_target)
            if document.redirect_count >= self.config.max_redirects:
                LOGGER.error(
                    "too many redirects (%d) at %s -> %s",
                    document.redirect_count + 1,
                    document.uri,
                    document.redirect_target,
                )
                return ProcessOutcome.REDIRECT_LIMIT
            self.add_url(
                document.redirect_target,
                crawl_chain,
                session.frontier,
                referrer=document,
                redirect=True,
            )
            return ProcessOutcome.REDIRECTED

        if status == FetchStatus.ERROR:
            LOGGER.error("error fetching document %s: %s", document.uri, document.error)
            return ProcessOutcome.FETCH_ERROR

        LOGGER.error("unknown doc status %s: %s", status, document.uri)
        return ProcessOutcome.FAILED

    def add_url(
        self,
        url: str | None,
        crawl_chain: FilterChain,
        frontier: Frontier,
        *,
        referrer: Document | None = None,
        redirect: bool = False,
        seed: bool = False,
    ) -> bool:
        """Pipe a locator through the crawl chain and enqueue it if it survives."""

        if not url:
            return False

        LOGGER.debug("add_url %s", url)
        if referrer is not None:
            document = referrer.create_child(url, redirect=redirect)
        else:
            document = self._document_factory(url)

        survivor = crawl_chain.apply(document)
        if seed:
            self.stats.record_seed(survivor is not None)
        else:
            self.stats.record_enqueue(survivor is not None)
        if survivor is None:
            return False

        frontier.push(survivor)
        LOGGER.debug("url %s survived filterchain", url)
        return True

    def add_to_index(self, document: Document, index_chain: FilterChain, indexer: Indexer) -> ProcessOutcome:
        survivor = index_chain.apply(document)
        if survivor is None:
            LOGGER.debug("document %s excluded by index filterchain", document.uri)
            return ProcessOutcome.EXCLUDED

        if not survivor.needs_indexing:
            return ProcessOutcome.NOT_INDEXABLE

        indexer.append(survivor)
        LOGGER.debug("document %s survived index filterchain", survivor.uri)
        return ProcessOutcome.INDEXED


__all__ = ["Crawler"]
