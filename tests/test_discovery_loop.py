"""End-to-end tests for the discovery loop against the simulated provider."""

import threading

import pytest

from ivrmap.calling.simulator import SimulatedIVR
from ivrmap.discovery.loop import DiscoveryLoop, StopReason
from ivrmap.discovery.planner import collect_paths
from ivrmap.errors import InvalidIdentity, PollTimeout, ProviderCallFailed, ValidationError
from ivrmap.schemas.extraction_schema import CallPlan, Enrichment, ExtractedNode, TerminalType
from tests.conftest import PHONE, SALES_MENU, make_orchestrator, make_sales_tree


class FlakyIVR(SimulatedIVR):
    """Simulated menu whose calls start failing after ``ok_calls`` placements."""

    def __init__(self, menu, ok_calls: int) -> None:
        super().__init__(menu)
        self.ok_calls = ok_calls

    def place_call(self, phone_number, task, **options):
        if len(self.calls) >= self.ok_calls:
            raise ProviderCallFailed("HTTP 500: provider down", status_code=500)
        return super().place_call(phone_number, task, **options)


class StoppingIVR(SimulatedIVR):
    """Sets a stop event as soon as the first call is placed."""

    def __init__(self, menu, stop_event: threading.Event) -> None:
        super().__init__(menu)
        self.stop_event = stop_event

    def place_call(self, phone_number, task, **options):
        self.stop_event.set()
        return super().place_call(phone_number, task, **options)


class FakeExtractor:
    def __init__(self, enrichment=None, error=None) -> None:
        self.enrichment = enrichment
        self.error = error
        self.calls = 0

    def enrich(self, utterances, tree_text, visited, pending):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.enrichment


def _planned(simulator):
    return [call.path for call in simulator.calls.values()]


class TestFullDiscovery:
    def test_maps_whole_menu_and_stops_when_complete(self, loop, simulator, store):
        result = loop.run(PHONE, min_calls=1, max_calls=10)

        assert result.stop_reason == StopReason.COMPLETE
        assert result.calls_made == 4
        assert _planned(simulator) == [[], ["1"], ["1", "1"], ["2"]]

        visited, pending = collect_paths(result.root)
        assert pending == []
        assert visited == [["1"], ["2"], ["1", "1"]]
        assert result.root.child("2").prompt_text == "Our support hours are 9 to 5."

        saved = store.load(PHONE)
        assert saved == result.session
        assert len(saved.calls) == 4
        assert len(saved.snapshots) == 4
        assert saved.total_cost == pytest.approx(0.36)

    def test_call_records(self, loop):
        result = loop.run(PHONE, min_calls=1, max_calls=10)
        calls = result.session.calls
        assert [c.planned_path for c in calls] == [[], ["1"], ["1", "1"], ["2"]]
        assert calls[0].terminal_type == TerminalType.NONE
        assert calls[2].terminal_type == TerminalType.OPERATOR
        assert calls[3].terminal_type == TerminalType.INFO_PROVIDED
        assert calls[1].transcript[1].message == "Pressed Button: 1"

    def test_state_trace(self, loop):
        result = loop.run(PHONE, min_calls=1, max_calls=1)
        assert result.state_trace == [
            "planning", "calling", "polling", "extracting",
            "merging", "persisting", "deciding", "stopped",
        ]


class TestStopConditions:
    def test_max_calls(self, loop):
        result = loop.run(PHONE, min_calls=1, max_calls=2)
        assert result.stop_reason == StopReason.MAX_CALLS
        assert result.calls_made == 2
        _, pending = collect_paths(result.root)
        assert pending == [["2"], ["1", "1"]]

    def test_min_calls_enforced_on_complete_tree(self, loop, simulator):
        loop.run(PHONE, min_calls=1, max_calls=10)
        before = len(simulator.calls)
        result = loop.run(PHONE, min_calls=2, max_calls=5)
        assert result.stop_reason == StopReason.COMPLETE
        assert result.calls_made == 2
        assert _planned(simulator)[before:] == [[], []]

    def test_resumes_from_persisted_tree(self, loop, simulator):
        loop.run(PHONE, min_calls=1, max_calls=2)
        result = loop.run(PHONE, min_calls=1, max_calls=10)
        assert result.stop_reason == StopReason.COMPLETE
        assert _planned(simulator)[2:] == [["1", "1"], ["2"]]
        assert len(result.session.calls) == 4

    def test_stop_event_before_start(self, loop, store):
        stop = threading.Event()
        stop.set()
        result = loop.run(PHONE, min_calls=1, max_calls=3, stop_event=stop)
        assert result.stop_reason == StopReason.CANCELLED
        assert result.calls_made == 0
        assert result.state_trace == ["planning", "stopped"]

    def test_stop_event_checked_between_iterations(self, store):
        stop = threading.Event()
        simulator = StoppingIVR(SALES_MENU, stop)
        loop = DiscoveryLoop(make_orchestrator(simulator), store)
        result = loop.run(PHONE, min_calls=3, max_calls=5, stop_event=stop)
        assert result.stop_reason == StopReason.CANCELLED
        assert result.calls_made == 1
        assert len(store.load(PHONE).calls) == 1


class TestSeedAndOverride:
    def test_override_path_explored_first(self, loop, simulator):
        result = loop.run(
            PHONE, min_calls=1, max_calls=1, seed_tree=make_sales_tree(), override_path=["2"]
        )
        assert _planned(simulator) == [["2"]]
        assert result.root.child("2") is not None

    def test_seed_tree_from_dict(self, loop, simulator):
        loop.run(PHONE, min_calls=1, max_calls=1, seed_tree=make_sales_tree().model_dump())
        assert _planned(simulator) == [["1", "1"]]

    def test_invalid_seed_tree(self, loop):
        with pytest.raises(ValidationError):
            loop.run(PHONE, seed_tree={"id": ""})

    def test_invalid_override(self, loop):
        with pytest.raises(ValidationError):
            loop.run(PHONE, override_path="12")


class TestValidation:
    @pytest.mark.parametrize("bounds", [(0, 3), (3, 2), ("2", 3)])
    def test_bad_bounds_have_no_side_effects(self, loop, store, bounds):
        with pytest.raises(ValidationError):
            loop.run(PHONE, min_calls=bounds[0], max_calls=bounds[1])
        assert not store.data_dir.exists()

    def test_bad_identity(self, loop, store):
        with pytest.raises(InvalidIdentity):
            loop.run("not a number")
        assert not store.data_dir.exists()


class TestFailures:
    def test_provider_failure_keeps_persisted_iterations(self, store):
        simulator = FlakyIVR(SALES_MENU, ok_calls=1)
        loop = DiscoveryLoop(make_orchestrator(simulator), store)
        with pytest.raises(ProviderCallFailed):
            loop.run(PHONE, min_calls=1, max_calls=5)

        saved = store.load(PHONE)
        assert len(saved.calls) == 1
        assert saved.last_root is not None
        assert len(saved.last_root.options) == 2

    def test_poll_timeout_leaves_session_untouched(self, store):
        simulator = SimulatedIVR(SALES_MENU, polls_until_complete=1000)
        loop = DiscoveryLoop(make_orchestrator(simulator, timeout=10.0), store)
        with pytest.raises(PollTimeout):
            loop.run(PHONE, min_calls=1, max_calls=2)
        saved = store.load(PHONE)
        assert saved.calls == []
        assert saved.last_root is None


class TestEnrichment:
    def test_plan_attached_to_call_record(self, simulator, store):
        plan = CallPlan(summary="Heard the main menu", next_path=["2"], terminal_type=TerminalType.NONE)
        node = ExtractedNode(id="root", type="menu", content="main menu", confidence=90)
        extractor = FakeExtractor(Enrichment(extracted=[node], plan=plan))
        loop = DiscoveryLoop(make_orchestrator(simulator), store, extractor)

        result = loop.run(PHONE, min_calls=2, max_calls=2)
        assert extractor.calls == 2
        assert result.extracted == [node, node]
        assert result.session.calls[0].plan_summary == "Heard the main menu"
        # The recent plan steers the second call away from the DFS choice of ["1"]
        assert _planned(simulator) == [[], ["2"]]

    def test_extractor_failure_is_absorbed(self, simulator, store):
        extractor = FakeExtractor(error=RuntimeError("rate limited"))
        loop = DiscoveryLoop(make_orchestrator(simulator), store, extractor)
        result = loop.run(PHONE, min_calls=1, max_calls=1)
        assert result.calls_made == 1
        assert result.session.calls[0].plan_summary is None
