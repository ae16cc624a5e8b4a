"""Tests for AssistantOrchestrator: the bounded model/tool loop."""

import threading
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from assistant.dispatch import ToolDispatcher
from assistant.orchestrator import (
    BACKEND_ERROR_ANSWER,
    EMPTY_ANSWER,
    ITERATION_CAP_ANSWER,
    AssistantOrchestrator,
    TurnStatus,
)
from assistant.transcript import ChatMessage
from integrations.search import SearchAdapter
from llm.base import GenerateResponse, LLMAuthError, LLMRateLimitError, ToolCall
from llm.providers.claude import ClaudeProvider


def tool_response(*calls, content=None):
    return GenerateResponse(content=content, tool_calls=list(calls), finish_reason="tool_calls")


def text_response(text):
    return GenerateResponse(content=text, finish_reason="stop")


@pytest.fixture
def dispatcher(service):
    return ToolDispatcher(service)


@pytest.fixture
def llm():
    return MagicMock()


class TestTurn:
    def test_immediate_text_response(self, llm, dispatcher):
        llm.generate_with_tools.return_value = text_response("Hi there!")
        result = AssistantOrchestrator(llm, dispatcher, "system").run("hello")

        assert result.answer == "Hi there!"
        assert result.status == TurnStatus.ANSWERED
        assert result.iterations == 1
        assert result.tool_results == []
        assert llm.generate_with_tools.call_count == 1

    def test_tool_then_answer(self, llm, dispatcher, service):
        llm.generate_with_tools.side_effect = [
            tool_response(ToolCall(id="t1", name="create_reminder",
                                   arguments={"title": "Call mom", "due_date": "2025-12-25T10:00:00Z"})),
            text_response("Done, I'll remind you."),
        ]
        result = AssistantOrchestrator(llm, dispatcher, "system").run("remind me to call mom")

        assert result.answer == "Done, I'll remind you."
        assert result.iterations == 2
        assert [t.title for t in service.list_tasks()] == ["Call mom"]

        # second request carries the assistant tool call and the tool result
        second_messages = llm.generate_with_tools.call_args_list[1].kwargs["messages"]
        assert second_messages[-2]["role"] == "assistant"
        assert second_messages[-2]["tool_calls"][0]["id"] == "t1"
        assert second_messages[-1]["role"] == "tool"
        assert second_messages[-1]["tool_call_id"] == "t1"
        assert second_messages[-1]["content"].startswith("Successfully created reminder: Call mom")

    def test_tools_run_in_order_with_one_result_each(self, llm, dispatcher):
        llm.generate_with_tools.side_effect = [
            tool_response(
                ToolCall(id="a", name="create_reminder", arguments={"title": "first"}),
                ToolCall(id="b", name="nonexistent", arguments={}),
                ToolCall(id="c", name="create_reminder", arguments={"title": "third"}),
            ),
            text_response("ok"),
        ]
        result = AssistantOrchestrator(llm, dispatcher, "system").run("go")

        assert [r.tool_call_id for r in result.tool_results] == ["a", "b", "c"]
        assert result.tool_results[1].content == "Unknown tool: nonexistent"
        tool_msgs = [m for m in result.transcript if m["role"] == "tool"]
        assert [m["tool_call_id"] for m in tool_msgs] == ["a", "b", "c"]

    def test_unknown_tool_does_not_raise(self, llm, dispatcher):
        llm.generate_with_tools.side_effect = [
            tool_response(ToolCall(id="x", name="hack_mainframe", arguments={})),
            text_response("Sorry, I can't do that."),
        ]
        result = AssistantOrchestrator(llm, dispatcher, "system").run("hack")
        assert result.status == TurnStatus.ANSWERED
        assert result.tool_results[0].content == "Unknown tool: hack_mainframe"

    def test_missing_arguments_become_error_result(self, llm, dispatcher):
        llm.generate_with_tools.side_effect = [
            tool_response(ToolCall(id="n", name="create_reminder", arguments=None)),
            text_response("What should I call it?"),
        ]
        result = AssistantOrchestrator(llm, dispatcher, "system").run("remind me")

        assert result.status == TurnStatus.ANSWERED
        assert result.tool_results[0].is_error
        assert result.tool_results[0].tool_call_id == "n"

    def test_empty_answer_fallback(self, llm, dispatcher):
        llm.generate_with_tools.return_value = GenerateResponse(content="  ")
        result = AssistantOrchestrator(llm, dispatcher, "system").run("hmm")
        assert result.answer == EMPTY_ANSWER
        assert result.status == TurnStatus.ANSWERED


class TestIterationCap:
    def test_cap_reached_after_exactly_max_iterations(self, llm, dispatcher):
        llm.generate_with_tools.return_value = tool_response(
            ToolCall(id="loop", name="get_contacts", arguments={})
        )
        result = AssistantOrchestrator(llm, dispatcher, "system").run("loop forever")

        assert llm.generate_with_tools.call_count == 5
        assert result.answer == ITERATION_CAP_ANSWER
        assert result.status == TurnStatus.ITERATION_CAP
        assert result.iterations == 5

    def test_custom_cap(self, llm, dispatcher):
        llm.generate_with_tools.return_value = tool_response(ToolCall(id="x", name="get_contacts", arguments={}))
        AssistantOrchestrator(llm, dispatcher, "system", max_iterations=2).run("loop")
        assert llm.generate_with_tools.call_count == 2

    def test_invalid_cap(self, llm, dispatcher):
        with pytest.raises(ValueError):
            AssistantOrchestrator(llm, dispatcher, "system", max_iterations=0)


class TestBackendErrors:
    @pytest.mark.parametrize("error", [LLMAuthError("bad key"), LLMRateLimitError("slow down")])
    def test_backend_error_ends_turn(self, llm, dispatcher, error):
        llm.generate_with_tools.side_effect = error
        result = AssistantOrchestrator(llm, dispatcher, "system").run("hi")
        assert result.answer == BACKEND_ERROR_ANSWER
        assert result.status == TurnStatus.BACKEND_ERROR
        assert llm.generate_with_tools.call_count == 1

    def test_unexpected_exception_ends_turn(self, llm, dispatcher):
        llm.generate_with_tools.side_effect = RuntimeError("socket closed")
        result = AssistantOrchestrator(llm, dispatcher, "system").run("hi")
        assert result.status == TurnStatus.BACKEND_ERROR
        assert result.answer == BACKEND_ERROR_ANSWER

    def test_non_response_object_ends_turn(self, llm, dispatcher):
        llm.generate_with_tools.return_value = {"content": "hi"}
        result = AssistantOrchestrator(llm, dispatcher, "system").run("hi")
        assert result.status == TurnStatus.BACKEND_ERROR

    def test_malformed_provider_response_ends_turn(self, dispatcher):
        client = MagicMock()
        client.messages.create.return_value = SimpleNamespace(content=None)
        result = AssistantOrchestrator(ClaudeProvider(client=client), dispatcher, "system").run("hi")
        assert result.status == TurnStatus.BACKEND_ERROR
        assert result.answer == BACKEND_ERROR_ANSWER

    def test_model_timeout(self, llm, dispatcher):
        release = threading.Event()

        def slow(**kwargs):
            release.wait(2)
            return text_response("too late")

        llm.generate_with_tools.side_effect = slow
        try:
            result = AssistantOrchestrator(llm, dispatcher, "system", model_timeout=0.05).run("hi")
        finally:
            release.set()
        assert result.status == TurnStatus.BACKEND_ERROR
        assert result.answer == BACKEND_ERROR_ANSWER


class TestToolTimeout:
    def test_tool_timeout_becomes_error_result(self, llm, service):
        release = threading.Event()
        search = MagicMock(spec=SearchAdapter)
        search.enabled = True

        def slow_search(query):
            release.wait(2)
            return "late"

        search.search.side_effect = slow_search
        dispatcher = ToolDispatcher(service, search=search)
        llm.generate_with_tools.side_effect = [
            tool_response(ToolCall(id="s", name="search_web", arguments={"query": "flights"})),
            text_response("Search is slow right now."),
        ]
        try:
            result = AssistantOrchestrator(llm, dispatcher, "system", tool_timeout=0.05).run("find flights")
        finally:
            release.set()

        assert result.status == TurnStatus.ANSWERED
        assert result.tool_results[0].is_error
        assert "timed out" in result.tool_results[0].content
        assert "may still complete" in result.tool_results[0].content

    def test_abandoned_worker_is_daemon(self, llm, service):
        release = threading.Event()
        seen = {}
        search = MagicMock(spec=SearchAdapter)
        search.enabled = True

        def slow_search(query):
            seen["daemon"] = threading.current_thread().daemon
            release.wait(2)
            return "late"

        search.search.side_effect = slow_search
        dispatcher = ToolDispatcher(service, search=search)
        llm.generate_with_tools.side_effect = [
            tool_response(ToolCall(id="s", name="search_web", arguments={"query": "flights"})),
            text_response("ok"),
        ]
        try:
            AssistantOrchestrator(llm, dispatcher, "system", tool_timeout=0.05).run("find flights")
        finally:
            release.set()

        assert seen["daemon"] is True


class TestTranscript:
    def test_history_window(self, llm, dispatcher):
        llm.generate_with_tools.return_value = text_response("ok")
        history = [ChatMessage(role="user" if i % 2 == 0 else "assistant", content=f"m{i}") for i in range(30)]

        AssistantOrchestrator(llm, dispatcher, "system", history_window=20).run("latest", history=history)

        messages = llm.generate_with_tools.call_args.kwargs["messages"]
        assert len(messages) == 21
        assert messages[0]["content"] == "m10"
        assert messages[-1] == {"role": "user", "content": "latest"}

    def test_system_prompt_callable_evaluated_per_turn(self, llm, dispatcher):
        llm.generate_with_tools.return_value = text_response("ok")
        counter = iter(range(10))
        orch = AssistantOrchestrator(llm, dispatcher, lambda: f"prompt {next(counter)}")
        orch.run("a")
        orch.run("b")
        systems = [c.kwargs["system"] for c in llm.generate_with_tools.call_args_list]
        assert systems == ["prompt 0", "prompt 1"]

    def test_tools_sent_verbatim(self, llm, dispatcher):
        llm.generate_with_tools.return_value = text_response("ok")
        AssistantOrchestrator(llm, dispatcher, "system").run("hi")
        tools = llm.generate_with_tools.call_args.kwargs["tools"]
        assert [t.name for t in tools] == dispatcher.registry.names


class TestEvents:
    def test_event_sequence(self, llm, dispatcher):
        llm.generate_with_tools.side_effect = [
            tool_response(ToolCall(id="t1", name="create_reminder", arguments={})),
            text_response("Need a title."),
        ]
        events = []
        AssistantOrchestrator(llm, dispatcher, "system").run("remind me", event_callback=events.append)

        assert [e["type"] for e in events] == ["tool_start", "tool_done", "answer"]
        assert events[1]["is_error"] is True
        assert events[2]["content"] == "Need a title."

    def test_ask_returns_answer_text(self, llm, dispatcher):
        llm.generate_with_tools.return_value = text_response("42")
        assert AssistantOrchestrator(llm, dispatcher, "system").ask("?") == "42"
