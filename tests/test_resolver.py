import asyncio

from cashdrawer.resolver import CurrentShiftResolver, ResolutionContext
from cashdrawer.resolver import strategies

CTX = ResolutionContext(actor_id="cashier-1", branch_id="B1")


def _resolve(backend, ctx=CTX, resolver=None):
    return asyncio.run((resolver or CurrentShiftResolver()).resolve(ctx, backend))


def test_default_strategy_order():
    assert [s.__name__ for s in strategies.DEFAULT_STRATEGIES] == [
        "pinned_shift",
        "actor_current",
        "any_current",
        "branch_current",
        "open_list_first",
        "last_used_section",
        "probe_all_sections",
    ]


def test_pinned_shift_short_circuits(backend_factory, shift_factory):
    pinned = shift_factory("P", section_id="S1")
    backend = backend_factory([pinned], sections=["S1", "S2"])
    res = _resolve(backend, ResolutionContext("cashier-1", "B1", pinned_shift_id="P"))
    assert res.shift.id == "P"
    assert res.strategy == "pinned_shift"
    assert backend.calls == ["get_shift"]


def test_closed_pinned_shift_falls_through(backend_factory, shift_factory):
    backend = backend_factory(
        [shift_factory("P", status="CLOSED"), shift_factory("Q", section_id="S2")],
        sections=["S1", "S2"],
    )
    res = _resolve(backend, ResolutionContext("cashier-1", "B1", pinned_shift_id="P"))
    assert res.shift.id == "Q"
    assert res.strategy == "probe_all_sections"


def test_actor_hit_stops_chain(backend_factory, shift_factory):
    backend = backend_factory(sections=["S1"])
    backend.actor_results = [shift_factory("A")]
    res = _resolve(backend)
    assert res.shift.id == "A"
    assert res.strategy == "actor_current"
    assert backend.calls == ["current_for_actor"]


def test_closed_result_counts_as_miss(backend_factory, shift_factory):
    backend = backend_factory(sections=[])
    backend.actor_results = [shift_factory("A", status="CLOSED")]
    assert _resolve(backend).shift is None


def test_enumeration_finds_shift_in_third_section(backend_factory, shift_factory):
    backend = backend_factory([shift_factory("X", section_id="S3")], sections=["S1", "S2", "S3"])
    res = _resolve(backend)
    assert res.shift.id == "X"
    assert res.strategy == "probe_all_sections"
    assert backend.calls[:6] == [
        "current_for_actor",
        "current",
        "current_for_branch",
        "list_shifts",
        "get_pref",
        "list_sections",
    ]


def test_failures_are_swallowed_and_chain_continues(backend_factory, shift_factory):
    backend = backend_factory([shift_factory("X", section_id="S3")], sections=["S1", "S2", "S3"])
    backend.failing = {"current_for_actor", "current", "current_for_branch", "list_shifts", "get_pref"}
    backend.failing.add("current:S1")
    res = _resolve(backend)
    assert res.shift.id == "X"


def test_enumeration_takes_first_completed_open(backend_factory, shift_factory):
    backend = backend_factory(
        [shift_factory("SLOW", section_id="S1"), shift_factory("FAST", section_id="S2")],
        sections=["S1", "S2"],
    )
    backend.section_delays = {"S1": 0.2}
    assert _resolve(backend).shift.id == "FAST"


def test_last_used_section_hint(backend_factory, shift_factory):
    backend = backend_factory([shift_factory("H", section_id="S2")], sections=["S1", "S2"])
    backend.prefs[("last_shift_section", "B1")] = "S2"
    res = _resolve(backend)
    assert res.shift.id == "H"
    assert res.strategy == "last_used_section"
    assert "list_sections" not in backend.calls


def test_exhaustion_returns_none(backend_factory):
    backend = backend_factory(sections=["S1", "S2"])
    res = _resolve(backend)
    assert res.shift is None and not res.found


def test_total_failure_is_none_not_error(backend_factory):
    backend = backend_factory(sections=["S1"])
    backend.failing = {
        "get_shift", "current_for_actor", "current", "current_for_branch",
        "list_shifts", "get_pref", "list_sections",
    }
    assert _resolve(backend).shift is None


def test_resolution_is_idempotent(backend_factory, shift_factory):
    backend = backend_factory(
        [shift_factory("X", section_id="S3"), shift_factory("Y", section_id="S1", minutes_ago=5)],
        sections=["S1", "S2", "S3"],
    )
    ids = {_resolve(backend).shift.id for _ in range(5)}
    assert len(ids) == 1


def test_no_branch_skips_branch_scoped_strategies(backend_factory):
    backend = backend_factory(sections=["S1"])
    _resolve(backend, ResolutionContext(actor_id="cashier-1"))
    assert backend.calls == ["current_for_actor", "current"]


def test_custom_strategy_list():
    async def never(ctx, backend):
        return None

    resolver = CurrentShiftResolver([never])
    assert resolver.strategies == [never]
