# tests/test_search_session.py

import asyncio
from unittest.mock import MagicMock

import pytest

from pdf_locator.application.search_session import SearchSession, search_and_wait
from pdf_locator.domain.match_engine import MatchEngine
from pdf_locator.domain.models import (
    LayoutRect,
    MatchCandidate,
    MatchType,
    SearchQuery,
    SearchStatus,
    TextFragment,
)
from pdf_locator.domain.subject_filter import SubjectFilter
from pdf_locator.infrastructure.asyncio_scheduler import AsyncioScheduler
from pdf_locator.infrastructure.page_container import InMemoryPageContainer


CONTAINER_RECT = LayoutRect(0, 0, 1000, 1000)


# ── Fakes ─────────────────────────────────────────────────────────────────────

class FakeTimer:
    def __init__(self, delay, callback):
        self.delay = delay
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeScheduler:
    """Collects timers; tests fire them by hand."""

    def __init__(self):
        self.timers = []

    def call_later(self, delay, callback):
        timer = FakeTimer(delay, callback)
        self.timers.append(timer)
        return timer

    @property
    def pending(self):
        return [t for t in self.timers if not t.cancelled]

    def fire_next(self):
        timer = self.pending[0]
        self.timers.remove(timer)
        timer.callback()


class MountingContainer(InMemoryPageContainer):
    """Exposes no fragments until it has been read `ready_after` times."""

    def __init__(self, fragments, ready_after: int):
        super().__init__(fragments, CONTAINER_RECT)
        self._ready_after = ready_after
        self.reads = 0

    def get_text_fragments(self):
        self.reads += 1
        if self.reads <= self._ready_after:
            return []
        return super().get_text_fragments()


def _make_fragments(*texts: str) -> list:
    return [
        TextFragment(
            fragment_id=f"f{i}",
            raw_text=text,
            layout_rect=LayoutRect(100, 100 + i * 50, 300, 20),
        )
        for i, text in enumerate(texts)
    ]


PAGE = _make_fragments("Cuaderno universitario 100 hojas", "Lápiz grafito HB", "Goma de borrar")


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def session(scheduler) -> SearchSession:
    engine = MatchEngine(SubjectFilter({"matematica": ["matematica"], "historia": ["historia"]}))
    return SearchSession(scheduler=scheduler, match_engine=engine)


# ── Searching ─────────────────────────────────────────────────────────────────

def test_found_on_first_attempt_scrolls_to_match(session, scheduler):
    container = InMemoryPageContainer(PAGE, CONTAINER_RECT)

    session.search(SearchQuery(text="lapiz grafito hb"), container)

    state = session.state
    assert state.status is SearchStatus.FOUND
    assert state.total_matches == 1
    assert state.current_index == 0
    assert state.current_match.candidate.fragments[0].fragment_id == "f1"
    assert container.last_scrolled_to == state.current_match.rect
    assert scheduler.timers == []


def test_searching_state_with_no_matches_is_published_first(session):
    published = []
    session.subscribe(published.append)

    session.search(SearchQuery(text="goma de borrar"), InMemoryPageContainer(PAGE, CONTAINER_RECT))

    assert published[0].status is SearchStatus.SEARCHING
    assert published[0].matches == ()
    assert published[-1].status is SearchStatus.FOUND


def test_retries_while_text_layer_mounts(session, scheduler):
    container = MountingContainer(PAGE, ready_after=2)

    session.search(SearchQuery(text="goma de borrar"), container)
    assert session.state.status is SearchStatus.SEARCHING
    assert session.has_pending_retry

    scheduler.fire_next()
    assert session.state.status is SearchStatus.SEARCHING

    scheduler.fire_next()
    assert session.state.status is SearchStatus.FOUND
    assert container.reads == 3
    assert not session.has_pending_retry


def test_retry_delays_grow_with_attempt_number(session, scheduler):
    container = MountingContainer(PAGE, ready_after=10)
    session.search(SearchQuery(text="goma de borrar"), container)

    delays = []
    while scheduler.pending:
        delays.append(scheduler.pending[0].delay)
        scheduler.fire_next()

    assert delays == pytest.approx([0.4, 0.6, 0.8, 1.0])


def test_gives_up_after_max_attempts(session, scheduler):
    container = MountingContainer(PAGE, ready_after=10)
    session.search(SearchQuery(text="goma de borrar"), container)

    while scheduler.pending:
        scheduler.fire_next()

    assert container.reads == 5
    assert session.state.status is SearchStatus.NOT_FOUND
    assert session.state.matches == ()
    assert not session.has_pending_retry


def test_populated_page_without_match_does_not_retry(session, scheduler):
    container = InMemoryPageContainer(PAGE, CONTAINER_RECT)

    session.search(SearchQuery(text="regla metalica 30 cm"), container)

    assert session.state.status is SearchStatus.NOT_FOUND
    assert scheduler.timers == []


def test_failing_fragment_read_counts_as_not_ready(session, scheduler):
    container = MagicMock()
    container.get_text_fragments.side_effect = RuntimeError("layer detached")

    session.search(SearchQuery(text="goma de borrar"), container)

    assert session.state.status is SearchStatus.SEARCHING
    assert len(scheduler.pending) == 1


def test_matches_without_geometry_are_not_found(session):
    fragments = [TextFragment(fragment_id="f0", raw_text="Goma de borrar")]
    container = InMemoryPageContainer(fragments, CONTAINER_RECT)

    session.search(SearchQuery(text="goma de borrar"), container)

    assert session.state.status is SearchStatus.NOT_FOUND
    assert container.last_scrolled_to is None


# ── Generation guard ──────────────────────────────────────────────────────────

def test_stale_retry_cannot_overwrite_newer_search(session, scheduler):
    slow = MountingContainer(PAGE, ready_after=1)
    session.search(SearchQuery(text="goma de borrar"), slow)
    stale_timer = scheduler.pending[0]

    session.search(SearchQuery(text="lapiz grafito"), InMemoryPageContainer(PAGE, CONTAINER_RECT))
    assert stale_timer.cancelled

    # Even if the host fires it anyway, it must be dropped
    stale_timer.callback()

    assert session.state.query.text == "lapiz grafito"
    assert session.state.current_match.candidate.fragments[0].fragment_id == "f1"
    assert slow.reads == 1


def test_search_started_by_listener_wins_over_outer_search(session):
    container = InMemoryPageContainer(PAGE, CONTAINER_RECT)

    def restart_on_searching(state):
        if state.status is SearchStatus.SEARCHING and state.query.text == "goma de borrar":
            session.search(SearchQuery(text="lapiz grafito"), container)

    session.subscribe(restart_on_searching)
    session.search(SearchQuery(text="goma de borrar"), container)

    state = session.state
    assert state.query.text == "lapiz grafito"
    assert state.status is SearchStatus.FOUND
    assert state.current_match.candidate.fragments[0].fragment_id == "f1"


def test_clear_resets_state_and_cancels_retry(session, scheduler):
    session.search(SearchQuery(text="goma de borrar"), MountingContainer(PAGE, ready_after=3))
    timer = scheduler.pending[0]

    session.clear()

    assert timer.cancelled
    assert session.state.status is SearchStatus.IDLE
    assert session.state.query is None
    assert session.state.matches == ()
    assert not session.has_pending_retry


@pytest.mark.parametrize("query", [None, SearchQuery(text=""), SearchQuery(text="   ")])
def test_empty_query_goes_idle(session, query):
    session.search(SearchQuery(text="goma de borrar"), InMemoryPageContainer(PAGE, CONTAINER_RECT))

    session.search(query, InMemoryPageContainer(PAGE, CONTAINER_RECT))

    assert session.state.status is SearchStatus.IDLE
    assert session.state.matches == ()


def test_missing_container_goes_idle(session):
    session.search(SearchQuery(text="goma de borrar"), None)
    assert session.state.status is SearchStatus.IDLE


# ── Navigation ────────────────────────────────────────────────────────────────

def _session_with_matches(scheduler, count: int) -> tuple:
    fragments = _make_fragments(*[f"Producto {i}" for i in range(count)])
    engine = MagicMock()
    engine.search.return_value = [
        MatchCandidate(
            fragments=[fragment],
            matched_text=fragment.normalized_text,
            match_type=MatchType.EXACT,
            similarity=1.0,
        )
        for fragment in fragments
    ]
    session = SearchSession(scheduler=scheduler, match_engine=engine)
    container = InMemoryPageContainer(fragments, CONTAINER_RECT)
    session.search(SearchQuery(text="producto"), container)
    return session, container


def test_next_and_prev_wrap_around(scheduler):
    session, container = _session_with_matches(scheduler, 3)
    assert session.state.total_matches == 3

    session.next_match()
    assert session.state.current_index == 1
    session.next_match()
    session.next_match()
    assert session.state.current_index == 0

    session.prev_match()
    assert session.state.current_index == 2
    assert container.last_scrolled_to == session.state.matches[2].rect


def test_navigation_with_single_match_is_noop(scheduler):
    session, _ = _session_with_matches(scheduler, 1)
    published = []
    session.subscribe(published.append)

    session.next_match()
    session.prev_match()

    assert session.state.current_index == 0
    assert published == []


def test_navigation_without_matches_is_noop(session):
    session.next_match()
    session.prev_match()
    assert session.state.status is SearchStatus.IDLE


def test_unsubscribe_stops_notifications(session):
    published = []
    unsubscribe = session.subscribe(published.append)
    unsubscribe()

    session.clear()

    assert published == []


def test_failing_listener_does_not_break_search(session):
    def broken(state):
        raise RuntimeError("renderer gone")

    published = []
    session.subscribe(broken)
    session.subscribe(published.append)

    session.search(SearchQuery(text="goma de borrar"), InMemoryPageContainer(PAGE, CONTAINER_RECT))

    assert session.state.status is SearchStatus.FOUND
    assert [s.status for s in published] == [SearchStatus.SEARCHING, SearchStatus.FOUND]


# ── Asyncio integration ───────────────────────────────────────────────────────

def test_search_and_wait_resolves_after_retries():
    async def run():
        engine = MatchEngine(SubjectFilter({}))
        session = SearchSession(
            scheduler=AsyncioScheduler(),
            match_engine=engine,
            retry_delay=0.001,
        )
        container = MountingContainer(PAGE, ready_after=2)
        state = await search_and_wait(session, SearchQuery(text="goma de borrar"), container)
        return state, container

    state, container = asyncio.run(run())

    assert state.status is SearchStatus.FOUND
    assert container.reads == 3


def test_search_and_wait_returns_idle_for_empty_query():
    async def run():
        session = SearchSession(scheduler=AsyncioScheduler(), match_engine=MatchEngine(SubjectFilter({})))
        return await search_and_wait(session, SearchQuery(text=""), None)

    assert asyncio.run(run()).status is SearchStatus.IDLE
