import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from snippet_vault.coordinator import AreaCoordinator, StatusState
from snippet_vault.coordinator.area import NO_MATCHES_MESSAGE, SEARCH_TITLE
from snippet_vault.errors import InvalidArgument, NotFound, PartialTransferFailure
from snippet_vault.search import RequestTokens, SearchEngine
from snippet_vault.snippet import Snippet, SnippetRepository
from snippet_vault.storage import SNIPPETS_KEY, MemoryStorageBackend
from snippet_vault.tier import Tier

BASE_TIME = datetime(2024, 6, 1, tzinfo=timezone.utc)


class _RecordingView:
    def __init__(self, confirm_answer: bool = True):
        self.statuses = []
        self.renders = []
        self.tabs = []
        self.storage = []
        self.add_panel = []
        self.copied = []
        self.queries_cleared = 0
        self.confirm_answer = confirm_answer
        self.confirm_messages = []

    def set_status(self, message, state):
        self.statuses.append((message, state))

    def show_snippets(self, title, items):
        self.renders.append((title, [(item.snippet.id, item.tier) for item in items]))

    def show_empty(self, title, message):
        self.renders.append((title, message))

    def show_tabs(self, active, counts):
        self.tabs.append((active, dict(counts)))

    def show_storage(self, usage):
        self.storage.append(usage)

    def show_add_panel(self, is_open, target):
        self.add_panel.append((is_open, target))

    def clear_query(self):
        self.queries_cleared += 1

    def copy_text(self, text):
        self.copied.append(text)

    async def confirm(self, message):
        self.confirm_messages.append(message)
        return self.confirm_answer


class _GatedSearchEngine(SearchEngine):
    def __init__(self, repository):
        super().__init__(repository)
        self.gates: dict[str, asyncio.Event] = {}

    async def _compute(self, query, entries):
        gate = self.gates.get(query)
        if gate is not None:
            await gate.wait()
        return await super()._compute(query, entries)


def _record(snippet_id: str, text: str, minutes: int) -> dict:
    return Snippet(
        id=snippet_id,
        text=text,
        source="https://example.com",
        created_at=BASE_TIME + timedelta(minutes=minutes),
    ).to_record()


async def _make_coordinator(view=None, *, backend=None, engine_type=SearchEngine):
    backend = backend or MemoryStorageBackend()
    repository = SnippetRepository(backend)
    coordinator = AreaCoordinator(repository, engine_type(repository), view or _RecordingView())
    await coordinator.initialize()
    return coordinator


async def _seeded_backend() -> MemoryStorageBackend:
    backend = MemoryStorageBackend()
    await backend.set(
        Tier.LOCAL,
        {SNIPPETS_KEY: [_record("old", "buy milk", 1), _record("new", "buy bread", 2)]},
    )
    await backend.set(Tier.SYNC, {SNIPPETS_KEY: [_record("car", "sell car", 3)]})
    return backend


@pytest.mark.asyncio
async def test_initialize_renders_active_tier_sorted_by_recency():
    view = _RecordingView()
    await _make_coordinator(view, backend=await _seeded_backend())

    assert view.renders[-1] == ("Local snippets", [("new", Tier.LOCAL), ("old", Tier.LOCAL)])
    assert view.tabs[-1] == (Tier.LOCAL, {Tier.LOCAL: 2, Tier.SYNC: 1})
    assert view.storage[-1].tier is Tier.LOCAL
    assert view.statuses[-1] == ("", StatusState.IDLE)


@pytest.mark.asyncio
async def test_empty_tier_renders_empty_state():
    view = _RecordingView()
    await _make_coordinator(view)

    title, message = view.renders[-1]
    assert title == "Local snippets"
    assert message.startswith("No local snippets yet.")


@pytest.mark.asyncio
async def test_blank_query_bypasses_search_engine():
    class _ExplodingEngine(SearchEngine):
        async def _compute(self, query, entries):
            raise AssertionError("search engine must not run for a blank query")

    view = _RecordingView()
    coordinator = await _make_coordinator(view, backend=await _seeded_backend(), engine_type=_ExplodingEngine)

    assert await coordinator.filter("   ") is None
    assert view.renders[-1] == ("Local snippets", [("new", Tier.LOCAL), ("old", Tier.LOCAL)])


@pytest.mark.asyncio
async def test_query_renders_ranked_results_from_both_tiers():
    view = _RecordingView()
    coordinator = await _make_coordinator(view, backend=await _seeded_backend())

    hits = await coordinator.filter("buy")

    assert [hit.snippet.id for hit in hits] == ["new", "old"]
    assert view.renders[-1] == (SEARCH_TITLE, [("new", Tier.LOCAL), ("old", Tier.LOCAL)])
    assert ("Searching...", StatusState.LOADING) in view.statuses
    assert view.statuses[-1] == ("", StatusState.IDLE)

    await coordinator.filter("car")
    assert view.renders[-1] == (SEARCH_TITLE, [("car", Tier.SYNC)])


@pytest.mark.asyncio
async def test_query_without_matches_renders_no_matches():
    view = _RecordingView()
    coordinator = await _make_coordinator(view, backend=await _seeded_backend())

    assert await coordinator.filter("qqqqqq") == []
    assert view.renders[-1] == (SEARCH_TITLE, NO_MATCHES_MESSAGE)


@pytest.mark.asyncio
async def test_only_last_issued_query_is_rendered():
    view = _RecordingView()
    coordinator = await _make_coordinator(
        view, backend=await _seeded_backend(), engine_type=_GatedSearchEngine
    )
    coordinator.engine.gates["milk"] = asyncio.Event()

    first = asyncio.create_task(coordinator.filter("milk"))
    await asyncio.sleep(0)
    await coordinator.filter("car")
    rendered_before_release = list(view.renders)
    coordinator.engine.gates["milk"].set()

    assert await first is None
    assert view.renders == rendered_before_release
    assert view.renders[-1] == (SEARCH_TITLE, [("car", Tier.SYNC)])


@pytest.mark.asyncio
async def test_switching_tier_invalidates_in_flight_search():
    view = _RecordingView()
    coordinator = await _make_coordinator(
        view, backend=await _seeded_backend(), engine_type=_GatedSearchEngine
    )
    coordinator.engine.gates["milk"] = asyncio.Event()

    pending = asyncio.create_task(coordinator.filter("milk"))
    await asyncio.sleep(0)
    await coordinator.set_active_tier(Tier.SYNC)
    coordinator.engine.gates["milk"].set()

    assert await pending is None
    assert coordinator.active_tier is Tier.SYNC
    assert view.renders[-1] == ("Synced snippets", [("car", Tier.SYNC)])


@pytest.mark.asyncio
async def test_coordinator_uses_injected_tokens():
    tokens = RequestTokens()
    repository = SnippetRepository(MemoryStorageBackend())
    coordinator = AreaCoordinator(repository, SearchEngine(repository), _RecordingView(), tokens=tokens)
    await coordinator.initialize()
    before = tokens.latest

    await coordinator.set_active_tier(Tier.SYNC)

    assert tokens.latest > before


@pytest.mark.asyncio
async def test_add_manual_saves_to_add_target_and_switches_tier():
    view = _RecordingView()
    coordinator = await _make_coordinator(view)

    coordinator.open_add_panel()
    coordinator.set_add_target(Tier.SYNC)
    snippet = await coordinator.add_manual("  remember this  ")

    assert snippet.text == "remember this"
    assert snippet.source == "manual"
    assert [s.id for s in coordinator.repository.snippets(Tier.SYNC)] == [snippet.id]
    assert coordinator.active_tier is Tier.SYNC
    assert not coordinator.add_panel_open
    assert view.renders[-1] == ("Synced snippets", [(snippet.id, Tier.SYNC)])


@pytest.mark.asyncio
async def test_add_panel_follows_active_tier_while_open():
    coordinator = await _make_coordinator()

    coordinator.toggle_add_panel()
    await coordinator.set_active_tier(Tier.SYNC)

    assert coordinator.add_target is Tier.SYNC
    coordinator.toggle_add_panel()
    assert not coordinator.add_panel_open


@pytest.mark.asyncio
async def test_add_manual_with_blank_text_reports_error():
    view = _RecordingView()
    coordinator = await _make_coordinator(view)

    with pytest.raises(InvalidArgument):
        await coordinator.add_manual("   ")

    message, state = view.statuses[-1]
    assert state is StatusState.ERROR
    assert message


@pytest.mark.asyncio
async def test_delete_and_copy():
    view = _RecordingView()
    coordinator = await _make_coordinator(view, backend=await _seeded_backend())

    assert coordinator.copy(Tier.LOCAL, "old") == "buy milk"
    assert view.copied == ["buy milk"]

    await coordinator.delete(Tier.LOCAL, "old")
    assert view.renders[-1] == ("Local snippets", [("new", Tier.LOCAL)])

    with pytest.raises(NotFound):
        await coordinator.delete(Tier.LOCAL, "old")
    assert view.statuses[-1][1] is StatusState.ERROR


@pytest.mark.asyncio
async def test_move_transfers_to_other_tier():
    view = _RecordingView()
    coordinator = await _make_coordinator(view, backend=await _seeded_backend())

    await coordinator.move(Tier.LOCAL, "new")

    assert [s.id for s in coordinator.repository.snippets(Tier.SYNC)] == ["car", "new"]
    assert view.tabs[-1] == (Tier.LOCAL, {Tier.LOCAL: 1, Tier.SYNC: 2})


@pytest.mark.asyncio
async def test_partial_move_reloads_both_tiers_from_storage():
    backend = await _seeded_backend()
    coordinator = await _make_coordinator(backend=backend)
    backend.fail_next("set", Tier.SYNC)

    with pytest.raises(PartialTransferFailure):
        await coordinator.move(Tier.LOCAL, "new")

    repository = coordinator.repository
    assert [s.id for s in repository.snippets(Tier.LOCAL)] == ["old"]
    assert [s.id for s in repository.snippets(Tier.SYNC)] == ["car"]
    assert repository.snippets(Tier.LOCAL) == await repository.load(Tier.LOCAL)


@pytest.mark.asyncio
async def test_clear_active_requires_confirmation():
    view = _RecordingView(confirm_answer=False)
    coordinator = await _make_coordinator(view, backend=await _seeded_backend())

    assert await coordinator.clear_active() is False
    assert coordinator.repository.counts()[Tier.LOCAL] == 2
    assert view.confirm_messages == ["Are you sure you want to delete all local snippets?"]

    view.confirm_answer = True
    assert await coordinator.clear_active() is True
    assert coordinator.repository.counts() == {Tier.LOCAL: 0, Tier.SYNC: 1}
