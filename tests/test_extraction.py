"""Tests for the optional LLM enrichment pass (fake client, no network)."""

from ivrmap.extraction.llm_extractor import LLMExtractor
from ivrmap.schemas.extraction_schema import TerminalType
from tests.conftest import make_dialogue, make_openai_client

DIALOGUE = make_dialogue([
    ("user", "For sales, press 1. For support, press 2."),
    ("assistant", "Pressed Button: 2"),
    ("user", "Please hold for an agent."),
])

NODES_REPLY = {"nodes": [
    {"id": "root", "type": "menu", "content": "Main menu", "parent": None, "confidence": 95},
    {"id": "opt2", "type": "option", "content": "support", "parent": "root",
     "digit": "2", "label": "support", "confidence": 90},
    {"id": "end2", "type": "end", "content": "Please hold", "parent": "opt2", "confidence": 80},
]}

PLAN_REPLY = {"summary": "Support transfers to an agent.", "next_path": ["1"], "terminal_type": "operator"}


class TestEnrich:
    def test_parses_nodes_and_plan(self):
        client = make_openai_client([NODES_REPLY, PLAN_REPLY])
        extractor = LLMExtractor(client=client, model="test-model", temperature=0.0)
        result = extractor.enrich(DIALOGUE, "<ROOT>", [["2"]], [["1"]])

        assert [n.id for n in result.extracted] == ["root", "opt2", "end2"]
        assert result.extracted[1].digit == "2"
        assert result.plan.next_path == ["1"]
        assert result.plan.terminal_type == TerminalType.OPERATOR

    def test_requests_json_mode(self):
        client = make_openai_client([NODES_REPLY, PLAN_REPLY])
        LLMExtractor(client=client, model="test-model").enrich(DIALOGUE, None, [], [])
        request = client.chat.completions.calls[0]
        assert request["model"] == "test-model"
        assert request["response_format"] == {"type": "json_object"}
        assert request["messages"][0]["role"] == "system"
        assert "Pressed Button: 2" in request["messages"][1]["content"]

    def test_plan_prompt_lists_pending_paths(self):
        client = make_openai_client([NODES_REPLY, PLAN_REPLY])
        LLMExtractor(client=client).enrich(DIALOGUE, "<ROOT>", [["2"]], [["1", "3"]])
        plan_prompt = client.chat.completions.calls[1]["messages"][1]["content"]
        assert "1-3" in plan_prompt


class TestFailureAbsorption:
    def test_api_error_yields_empty_enrichment(self):
        client = make_openai_client([RuntimeError("rate limited"), RuntimeError("rate limited")])
        result = LLMExtractor(client=client).enrich(DIALOGUE, None, [], [])
        assert result.extracted == []
        assert result.plan is None

    def test_malformed_json_keeps_other_pass(self):
        client = make_openai_client(["not json", PLAN_REPLY])
        result = LLMExtractor(client=client).enrich(DIALOGUE, None, [], [])
        assert result.extracted == []
        assert result.plan.summary == "Support transfers to an agent."

    def test_out_of_range_confidence_rejected(self):
        bad = {"nodes": [{"id": "x", "type": "menu", "confidence": 0}]}
        client = make_openai_client([bad, PLAN_REPLY])
        result = LLMExtractor(client=client).enrich(DIALOGUE, None, [], [])
        assert result.extracted == []
        assert result.plan is not None

    def test_disabled_without_client(self):
        extractor = LLMExtractor(client=None)
        extractor._client = None
        assert not extractor.enabled
        result = extractor.enrich(DIALOGUE, None, [], [])
        assert result.extracted == [] and result.plan is None
