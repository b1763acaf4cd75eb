# pdf_locator/application/search_session.py

import asyncio
import logging
from dataclasses import replace
from typing import Any, Callable, List, Optional

from pdf_locator.config import MAX_SEARCH_ATTEMPTS, RETRY_DELAY_SECONDS
from pdf_locator.domain.corpus_builder import CorpusBuilder
from pdf_locator.domain.interfaces import PageContainerPort, SchedulerPort
from pdf_locator.domain.match_engine import MatchEngine
from pdf_locator.domain.models import (
    Corpus,
    LocatedMatch,
    SearchQuery,
    SearchState,
    SearchStatus,
    TextFragment,
)
from pdf_locator.domain.rect_projector import RectProjector


logger = logging.getLogger(__name__)

StateListener = Callable[[SearchState], None]


class SearchSession:
    """
    Fuzzy product search on one page, tolerant of an asynchronously
    mounting text layer.

    State machine:
        idle ──search()──▶ searching ──▶ found | not-found
        any  ──clear() / empty query──▶ idle

    While the page exposes no usable fragments the session retries, up to
    `max_attempts` attempts, waiting `retry_delay * n` before attempt n.
    Once fragments exist the engine runs exactly once: a populated page
    without a match is a real not-found, not a mounting race.

    Every search()/clear() bumps a generation counter. Retry callbacks
    carry the generation they were scheduled under and are dropped when
    it no longer matches, so a stale search can never overwrite a new one.

    The session publishes immutable SearchState snapshots; drawing the
    highlights is left to whoever subscribes.
    """

    def __init__(
        self,
        scheduler: SchedulerPort,
        match_engine: MatchEngine,
        corpus_builder: Optional[CorpusBuilder] = None,
        rect_projector: Optional[RectProjector] = None,
        max_attempts: int = MAX_SEARCH_ATTEMPTS,
        retry_delay: float = RETRY_DELAY_SECONDS,
    ):
        self._scheduler = scheduler
        self._match_engine = match_engine
        self._corpus_builder = corpus_builder or CorpusBuilder()
        self._rect_projector = rect_projector or RectProjector()
        self._max_attempts = max_attempts
        self._retry_delay = retry_delay

        self._state = SearchState()
        self._generation = 0
        self._pending_timer: Any = None
        self._container: Optional[PageContainerPort] = None
        self._listeners: List[StateListener] = []

    # ─── Observation ──────────────────────────────────────────────────────────

    @property
    def state(self) -> SearchState:
        return self._state

    @property
    def has_pending_retry(self) -> bool:
        return self._pending_timer is not None

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a state listener. Returns a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ─── Commands ─────────────────────────────────────────────────────────────

    def search(self, query: Optional[SearchQuery], container: Optional[PageContainerPort]) -> None:
        if query is None or query.is_empty or container is None:
            self.clear()
            return

        self._generation += 1
        # Listeners may start a newer search while the snapshot below is published
        generation = self._generation
        self._cancel_pending_timer()
        self._container = container
        # Publishing an empty match list first clears the previous highlights
        self._publish(SearchState(query=query, status=SearchStatus.SEARCHING))
        self._attempt(generation, 1, query, container)

    def next_match(self) -> None:
        matches = self._state.matches
        if len(matches) <= 1:
            return
        new_index = (self._state.current_index + 1) % len(matches)
        self._publish(replace(self._state, current_index=new_index))
        self._scroll_to_current()

    def prev_match(self) -> None:
        matches = self._state.matches
        if len(matches) <= 1:
            return
        new_index = (self._state.current_index - 1) % len(matches)
        self._publish(replace(self._state, current_index=new_index))
        self._scroll_to_current()

    def clear(self) -> None:
        self._generation += 1
        self._cancel_pending_timer()
        self._container = None
        self._publish(SearchState())

    # ─── Private: search attempts ─────────────────────────────────────────────

    def _attempt(
        self,
        generation: int,
        attempt: int,
        query: SearchQuery,
        container: PageContainerPort,
    ) -> None:
        if generation != self._generation:
            logger.debug("Discarding stale attempt %d of search #%d", attempt, generation)
            return
        self._pending_timer = None

        corpus = self._build_corpus(container)
        if not corpus.is_empty:
            logger.info(
                "Text layer ready on attempt %d (%d fragments)", attempt, len(corpus.ranges)
            )
            self._run_engine(query, corpus, container)
            return

        if attempt < self._max_attempts:
            next_attempt = attempt + 1
            delay = self._retry_delay * next_attempt
            logger.debug(
                "Text layer not ready, retry %d/%d in %.2fs",
                next_attempt, self._max_attempts, delay,
            )
            self._pending_timer = self._scheduler.call_later(
                delay,
                lambda: self._attempt(generation, next_attempt, query, container),
            )
            return

        logger.info("No text layer after %d attempts", self._max_attempts)
        self._publish(replace(self._state, matches=(), current_index=0, status=SearchStatus.NOT_FOUND))

    def _build_corpus(self, container: PageContainerPort) -> Corpus:
        try:
            fragments: List[TextFragment] = container.get_text_fragments()
        except Exception as error:
            # A half-mounted layer behaves like an empty one
            logger.debug("Reading text fragments failed: %s", error)
            fragments = []
        return self._corpus_builder.build(fragments)

    def _run_engine(
        self,
        query: SearchQuery,
        corpus: Corpus,
        container: PageContainerPort,
    ) -> None:
        candidates = self._match_engine.search(corpus, query)

        located: List[LocatedMatch] = []
        if candidates:
            try:
                container_rect = container.get_bounding_rect()
            except Exception as error:
                logger.debug("Reading page container rect failed: %s", error)
                container_rect = None

            if container_rect is not None:
                for candidate in candidates:
                    rect = self._rect_projector.project(
                        candidate.fragments, container_rect, measure=container.measure_fragment
                    )
                    if rect is not None:
                        located.append(LocatedMatch(candidate=candidate, rect=rect))

        if not located:
            logger.info("No match for '%s'", query.text)
            self._publish(replace(self._state, matches=(), current_index=0, status=SearchStatus.NOT_FOUND))
            return

        logger.info(
            "Found %d match(es) for '%s' (best: %s)",
            len(located), query.text, located[0].candidate.match_type.value,
        )
        self._publish(replace(
            self._state,
            matches=tuple(located),
            current_index=0,
            status=SearchStatus.FOUND,
        ))
        self._scroll_to_current()

    # ─── Private: helpers ─────────────────────────────────────────────────────

    def _scroll_to_current(self) -> None:
        match = self._state.current_match
        if match is None or self._container is None:
            return
        try:
            self._container.scroll_into_view(match.rect)
        except Exception as error:
            logger.debug("Scroll into view failed: %s", error)

    def _cancel_pending_timer(self) -> None:
        if self._pending_timer is not None:
            self._pending_timer.cancel()
            self._pending_timer = None

    def _publish(self, state: SearchState) -> None:
        self._state = state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("State listener %r failed", listener)


async def wait_until_settled(session: SearchSession) -> SearchState:
    """
    Resolve with the session's next settled state (found, not-found or
    idle). Must run on the loop the session's scheduler uses.
    """
    if not session.state.is_searching:
        return session.state

    settled: asyncio.Future = asyncio.get_running_loop().create_future()

    def on_change(state: SearchState) -> None:
        if not state.is_searching and not settled.done():
            settled.set_result(state)

    unsubscribe = session.subscribe(on_change)
    try:
        return await settled
    finally:
        unsubscribe()


async def search_and_wait(
    session: SearchSession,
    query: Optional[SearchQuery],
    container: Optional[PageContainerPort],
) -> SearchState:
    session.search(query, container)
    return await wait_until_settled(session)
