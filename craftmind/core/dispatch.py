"""Bounded tool-dispatch loop.

Lets the reasoner drive a closed tool menu one turn at a time:

1. If the agent is under attack, inject a ``[DANGER ALERT]`` user message.
2. Ask the reasoner for the next step, offering the menu.
3. Plain text with no invocation ends the loop with that text.
4. Otherwise run each invocation in order. Unknown tools, unparsable
   arguments and failing primitives become diagnostics in the transcript;
   none of them stop the loop.
5. Append one tool result per invocation plus a fresh state summary.

Only a reasoner failure ends the loop early, by re-raising ReasonerError.
Running out of rounds returns :data:`FALLBACK_RESPONSE`.

Example:
    >>> dispatcher = ToolDispatcher(reasoner, build_action_menu(actions), state)
    >>> text = await dispatcher.dispatch([TranscriptMessage.user("Mine 3 oak logs")])
"""

from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass

from craftmind.core.knowledge import acquisition_hint, is_missing_ingredients_message
from craftmind.core.metrics import MetricsCollector
from craftmind.core.prompts.agent_prompts import AGENT_SYSTEM_PROMPT, build_instruction
from craftmind.core.tools import ToolArgs, ToolMenu, ToolSpec
from craftmind.interfaces.actions import ActionError, MissingIngredientsError
from craftmind.interfaces.errors import ParseError, UnknownCapability
from craftmind.interfaces.reasoner import Reasoner, ReasonerError
from craftmind.models.log import LogRole
from craftmind.models.messages import (
    MessageRole,
    ReasonerReply,
    ToolInvocation,
    TranscriptMessage,
)
from craftmind.models.world import ThreatReport
from craftmind.state.shared import SharedAgentState
from craftmind.strategy.recipes import RecipeBook

logger = logging.getLogger(__name__)

FALLBACK_RESPONSE = "No final response from model after function calls."

ThreatCheck = Callable[[], Awaitable[ThreatReport]]


@dataclass
class DispatchConfig:
    """Configuration for the tool-dispatch loop.

    Attributes:
        round_limit: Maximum reasoner rounds per dispatch call.
        include_state_diff: Whether state summaries also describe changes
            since the previous summary.
    """

    round_limit: int = 20
    include_state_diff: bool = True


def danger_alert(threat: ThreatReport) -> str:
    """Render the message injected when the agent is under attack."""
    attacker = threat.attacker or "unknown entity"
    return f'[DANGER ALERT] You are under attack by "{attacker}". {threat.message}'.rstrip()


class ToolDispatcher:
    """Runs the reasoner-driven tool loop over one menu.

    Attributes:
        config: Loop configuration.
        last_transcript: Transcript of the most recent dispatch call.
        last_round_count: Reasoner rounds used by the most recent call.
    """

    def __init__(
        self,
        reasoner: Reasoner,
        menu: ToolMenu,
        state: SharedAgentState,
        *,
        threat_check: ThreatCheck | None = None,
        config: DispatchConfig | None = None,
        recipes: RecipeBook | None = None,
        metrics: MetricsCollector | None = None,
        tool_log_role: LogRole = LogRole.FUNCTION,
        component: str = "dispatch",
    ) -> None:
        self._reasoner = reasoner
        self._menu = menu
        self._state = state
        self._threat_check = threat_check
        self.config = config or DispatchConfig()
        self._recipes = recipes
        self._metrics = metrics
        self._tool_log_role = tool_log_role
        self._component = component

        self.last_transcript: list[TranscriptMessage] = []
        self.last_round_count = 0

    @property
    def menu(self) -> ToolMenu:
        return self._menu

    async def run_instruction(self, instruction: str) -> str:
        """Dispatch a single instruction with the agent system prompt and current state."""
        messages = [
            TranscriptMessage.system(AGENT_SYSTEM_PROMPT),
            TranscriptMessage.user(build_instruction(instruction, self._state.render_text())),
        ]
        return await self.dispatch(messages)

    async def dispatch(self, initial_messages: Sequence[TranscriptMessage | str]) -> str:
        """Run the loop and return the reasoner's final text.

        Args:
            initial_messages: Opening transcript. Plain strings become user messages.

        Returns:
            The final reasoner text, or FALLBACK_RESPONSE if the round limit
            was reached.

        Raises:
            ReasonerError: If the reasoner fails. No partial result is returned.
        """
        transcript = [
            m if isinstance(m, TranscriptMessage) else TranscriptMessage.user(m)
            for m in initial_messages
        ]
        self.last_transcript = transcript
        self.last_round_count = 0

        for message in transcript:
            if message.role == MessageRole.USER:
                self._state.log_message(LogRole.USER, message.content)

        schemas = self._menu.schemas()
        final_text = ""

        for round_number in range(1, self.config.round_limit + 1):
            self.last_round_count = round_number

            threat = await self._check_threat()
            if threat is not None and threat.under_attack:
                alert = danger_alert(threat)
                logger.warning(f"[{self._state.agent_name}] {alert}")
                transcript.append(TranscriptMessage.user(alert))
                self._state.log_message(LogRole.USER, alert, {"interrupt": True})

            reply = await self._ask(transcript, schemas, round_number)

            if reply.text:
                self._state.log_message(LogRole.ASSISTANT, reply.text)
            transcript.append(
                TranscriptMessage(
                    role=MessageRole.ASSISTANT,
                    content=reply.text or "",
                    tool_calls=list(reply.invocations),
                )
            )

            if not reply.wants_tools:
                final_text = reply.text or ""
                break

            for invocation in reply.invocations:
                result = await self._execute(invocation)
                transcript.append(TranscriptMessage.tool_result(invocation, result))

            transcript.append(TranscriptMessage.user(self._state_summary()))

        if self._metrics is not None:
            self._metrics.record_dispatch(self.last_round_count)

        if not final_text:
            final_text = FALLBACK_RESPONSE
            logger.info(
                f"No final response after {self.last_round_count} rounds "
                f"(limit {self.config.round_limit})"
            )
        self._state.log_message(
            LogRole.ASSISTANT, final_text, {"note": "Unfiltered assistant response."}
        )
        return final_text

    async def _check_threat(self) -> ThreatReport | None:
        if self._threat_check is None:
            return None
        try:
            return await self._threat_check()
        except Exception as e:
            logger.warning(f"Threat check failed: {e}")
            return None

    async def _ask(
        self,
        transcript: list[TranscriptMessage],
        schemas: list[dict],
        round_number: int,
    ) -> ReasonerReply:
        self._state.log_message(
            LogRole.API_REQUEST,
            "chat",
            {"round": round_number, "messages": len(transcript), "tools": self._menu.names},
        )
        if self._metrics is not None:
            self._metrics.record_reasoner_call(self._component)
        try:
            reply = await self._reasoner.chat(list(transcript), schemas)
        except ReasonerError as e:
            logger.error(f"Reasoner failed in round {round_number}: {e}")
            self._state.log_message(LogRole.API_ERROR, str(e), {"round": round_number})
            if self._metrics is not None:
                self._metrics.record_error(type(e).__name__, recovered=False)
            raise
        self._state.log_message(
            LogRole.API_RESPONSE,
            reply.text or "",
            {"round": round_number, "invocations": [i.name for i in reply.invocations]},
        )
        return reply

    async def _execute(self, invocation: ToolInvocation) -> str:
        """Run one invocation and return its result or diagnostic text."""
        name = invocation.name
        try:
            args = self._menu.parse_arguments(name, invocation.arguments)
        except UnknownCapability as e:
            return self._diagnostic(invocation, str(e), e)
        except ParseError as e:
            return self._diagnostic(
                invocation, f"ERROR: {e.reason}. Raw args = {e.raw_arguments}", e
            )

        spec = self._menu.get(name)
        start = time.perf_counter()
        try:
            result = await self._menu.invoke(name, args)
        except ActionError as e:
            self._record_action(False, start)
            text = f'ERROR calling function "{name}": {e}'
            if isinstance(e, MissingIngredientsError) or is_missing_ingredients_message(str(e)):
                text += self._ingredient_hints(spec, args, e)
            return self._diagnostic(invocation, text, e, args)
        except Exception as e:
            self._record_action(False, start)
            logger.exception(f"Unexpected failure calling {name}: {e}")
            return self._diagnostic(invocation, f'ERROR calling function "{name}": {e}', e, args)

        self._record_action(True, start)
        self._state.log_message(
            self._tool_log_role,
            f"Tool call: {name}",
            {"arguments": args.model_dump(by_alias=True), "result": result},
        )
        return result

    def _diagnostic(
        self,
        invocation: ToolInvocation,
        text: str,
        error: Exception,
        args: ToolArgs | None = None,
    ) -> str:
        logger.info(f"{invocation.name}: {text}")
        arguments = args.model_dump(by_alias=True) if args is not None else invocation.arguments
        self._state.log_message(
            self._tool_log_role,
            f"Tool call: {invocation.name}",
            {"arguments": arguments, "result": text, "error": type(error).__name__},
        )
        if self._metrics is not None:
            self._metrics.record_error(type(error).__name__, recovered=True)
        return text

    def _ingredient_hints(self, spec: ToolSpec, args: ToolArgs, error: ActionError) -> str:
        item: str | None = None
        count = 1
        if spec.produces is not None:
            produced = spec.produces(args)
            if produced is not None:
                item, count = produced
        if item is None and isinstance(error, MissingIngredientsError):
            item = error.item
        if not item:
            return ""

        extra = ""
        hint = acquisition_hint(item)
        if hint:
            extra += f' Acquisition info: "{hint}"'
        if self._recipes is not None and item in self._recipes:
            result = self._recipes.check_feasibility(item, count, self._state.inventory_counts())
            extra += f" Feasibility: {result.summary()}"
        return extra

    def _state_summary(self) -> str:
        text = f"Updated Shared State:\n{self._state.render_text()}"
        if self.config.include_state_diff:
            text += f"\n{self._state.diff_text()}"
        return text

    def _record_action(self, success: bool, start: float) -> None:
        if self._metrics is not None:
            self._metrics.record_action(success, (time.perf_counter() - start) * 1000)
