"""Assistant orchestrator: bounded LLM tool-calling loop."""

import threading
from collections.abc import Callable
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
from enum import StrEnum

import structlog

from llm.base import GenerateResponse, LLMError, LLMProvider, LLMTimeoutError, ToolCall, ToolResult

from .dispatch import ToolDispatcher
from .transcript import DEFAULT_HISTORY_WINDOW, ChatMessage, build_transcript

logger = structlog.get_logger()

DEFAULT_MAX_ITERATIONS = 5

ITERATION_CAP_ANSWER = "I had trouble completing that request. Please try again."
EMPTY_ANSWER = "I'm not sure how to respond to that."
BACKEND_ERROR_ANSWER = "I'm having trouble connecting right now. Please try again in a moment."


class TurnStatus(StrEnum):
    ANSWERED = "answered"
    ITERATION_CAP = "iteration_cap"
    BACKEND_ERROR = "backend_error"


@dataclass
class TurnResult:
    """Outcome of one user turn."""

    answer: str
    status: TurnStatus
    iterations: int
    tool_results: list[ToolResult] = field(default_factory=list)
    transcript: list[dict] = field(default_factory=list)


def call_with_timeout(fn: Callable, timeout: float | None, *args, **kwargs):
    """Run ``fn`` and wait at most ``timeout`` seconds for it.

    The worker is a daemon thread. On timeout it is abandoned, not killed: it
    may still finish and apply its side effects, but it never blocks
    interpreter exit.
    """
    if not timeout:
        return fn(*args, **kwargs)
    future: Future = Future()

    def worker():
        if not future.set_running_or_notify_cancel():
            return
        try:
            future.set_result(fn(*args, **kwargs))
        except BaseException as e:
            future.set_exception(e)

    threading.Thread(target=worker, name=f"nudge-{getattr(fn, '__name__', 'call')}", daemon=True).start()
    return future.result(timeout=timeout)


class AssistantOrchestrator:
    """Runs the model/tool loop for one turn at a time.

    The loop is synchronous: one backend request in flight, tools executed in
    the order the backend listed them, one result per call. The turn ends on a
    text-only response, a backend error, or after ``max_iterations`` backend
    requests.
    """

    def __init__(
        self,
        llm: LLMProvider,
        dispatcher: ToolDispatcher,
        system_prompt: str | Callable[[], str] = "",
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        history_window: int = DEFAULT_HISTORY_WINDOW,
        model_timeout: float | None = None,
        tool_timeout: float | None = None,
        max_tokens: int = 2000,
    ):
        if max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        self.llm = llm
        self.dispatcher = dispatcher
        self.system_prompt = system_prompt
        self.max_iterations = max_iterations
        self.history_window = history_window
        self.model_timeout = model_timeout
        self.tool_timeout = tool_timeout
        self.max_tokens = max_tokens

    def _system(self) -> str:
        return self.system_prompt() if callable(self.system_prompt) else self.system_prompt

    def run(
        self,
        user_message: str,
        history: list[ChatMessage] | None = None,
        event_callback: Callable[[dict], None] | None = None,
    ) -> TurnResult:
        messages = build_transcript(history, user_message, self.history_window)
        tools = self.dispatcher.registry.get_definitions()
        system = self._system()
        results: list[ToolResult] = []

        for iteration in range(1, self.max_iterations + 1):
            try:
                response = self._generate(messages, tools, system)
            except LLMError as e:
                logger.error("assistant_backend_error", iteration=iteration, error=str(e))
                return self._finish(BACKEND_ERROR_ANSWER, TurnStatus.BACKEND_ERROR, iteration, results, messages, event_callback)

            logger.debug(
                "assistant_iteration",
                iteration=iteration,
                finish_reason=response.finish_reason,
                tool_call_count=len(response.tool_calls),
            )

            if not response.tool_calls:
                answer = (response.content or "").strip() or EMPTY_ANSWER
                messages.append({"role": "assistant", "content": answer})
                logger.info("assistant_complete", iterations=iteration, tool_calls=len(results))
                return self._finish(answer, TurnStatus.ANSWERED, iteration, results, messages, event_callback)

            assistant_msg = {
                "role": "assistant",
                "tool_calls": [
                    {"id": tc.id, "name": tc.name, "arguments": tc.arguments}
                    for tc in response.tool_calls
                ],
            }
            if response.content:
                assistant_msg["content"] = response.content
            messages.append(assistant_msg)

            for tc in response.tool_calls:
                result = self._execute(tc, event_callback)
                results.append(result)
                messages.append(
                    {
                        "role": "tool",
                        "tool_call_id": result.tool_call_id,
                        "name": result.name,
                        "content": result.content,
                        "is_error": result.is_error,
                    }
                )

        logger.warning("assistant_max_iterations", max=self.max_iterations)
        return self._finish(
            ITERATION_CAP_ANSWER, TurnStatus.ITERATION_CAP, self.max_iterations, results, messages, event_callback
        )

    def ask(self, user_message: str, history: list[ChatMessage] | None = None) -> str:
        return self.run(user_message, history).answer

    def _generate(self, messages, tools, system) -> GenerateResponse:
        try:
            response = call_with_timeout(
                self.llm.generate_with_tools,
                self.model_timeout,
                messages=list(messages),
                tools=tools,
                system=system,
                max_tokens=self.max_tokens,
            )
        except FutureTimeoutError:
            raise LLMTimeoutError(f"No response within {self.model_timeout}s") from None
        except LLMError:
            raise
        except Exception as e:
            logger.exception("assistant_backend_unexpected_error")
            raise LLMError(f"Malformed backend response: {e}") from e

        if not isinstance(response, GenerateResponse):
            raise LLMError(f"Malformed backend response: {type(response).__name__}")
        return response

    def _execute(self, tc: ToolCall, event_callback) -> ToolResult:
        logger.info("tool_call", tool=tc.name, args=sorted(tc.arguments or {}))
        if event_callback:
            event_callback({"type": "tool_start", "tool": tc.name})

        try:
            result = call_with_timeout(self.dispatcher.execute, self.tool_timeout, tc)
        except FutureTimeoutError:
            logger.warning("tool_timeout", tool=tc.name, timeout=self.tool_timeout)
            result = ToolResult(
                tool_call_id=tc.id,
                name=tc.name,
                content=(
                    f"Error: {tc.name} timed out after {self.tool_timeout:g}s. It may still "
                    "complete in the background; check its effect before retrying."
                ),
                is_error=True,
            )

        logger.info("tool_result", tool=tc.name, chars=len(result.content), is_error=result.is_error)
        if event_callback:
            event_callback({"type": "tool_done", "tool": tc.name, "is_error": result.is_error})
        return result

    def _finish(self, answer, status, iterations, results, messages, event_callback) -> TurnResult:
        if event_callback:
            event_callback({"type": "answer", "content": answer, "status": status.value})
        return TurnResult(
            answer=answer,
            status=status,
            iterations=iterations,
            tool_results=results,
            transcript=messages,
        )
