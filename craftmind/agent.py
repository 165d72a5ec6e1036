"""Per-agent context: every component of one agent, wired together.

Each agent gets its own :class:`AgentContext`. Nothing is shared between
contexts except an optional :class:`MessageBus`, which only ever carries
copies of message payloads.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from craftmind.actions.retry import TimeoutRetryingActions, TimeoutRetryPolicy
from craftmind.config.loader import Config, LLMConfig
from craftmind.core.controller import CognitiveController, ControllerConfig
from craftmind.core.dispatch import DispatchConfig, ToolDispatcher
from craftmind.core.metrics import MetricsCollector
from craftmind.core.prompts.agent_prompts import DEFAULT_PERSONALITY
from craftmind.core.tools import build_action_menu
from craftmind.interfaces.actions import ActionCollaborator
from craftmind.interfaces.perception import PerceptionCollaborator
from craftmind.interfaces.reasoner import Reasoner
from craftmind.llm.client import LLMReasoner, ReasonerConfig
from craftmind.memory.consolidation import MemoryConsolidator
from craftmind.memory.store import Memory
from craftmind.models.plan import PlanMode, StepNode
from craftmind.runtime.mailbox import AgentMailbox, MessageBus
from craftmind.social.ledger import Social
from craftmind.state.shared import SharedAgentState
from craftmind.strategy.planner import GoalTreeBuilder, ProgressCallback
from craftmind.strategy.recipes import RecipeBook

logger = logging.getLogger(__name__)


def build_reasoner(settings: LLMConfig) -> LLMReasoner:
    """Create an LLM reasoner from the ``llm`` config section."""
    reasoner = LLMReasoner(
        ReasonerConfig(
            provider=settings.provider,
            model=settings.model,
            max_retries=settings.max_retries,
            retry_delay=settings.retry_delay,
            min_interval_seconds=settings.min_interval_seconds,
            temperature=settings.temperature,
            max_tokens=settings.max_tokens,
            max_length=settings.max_length,
        )
    )
    reasoner.set_enabled(settings.enabled)
    return reasoner


@dataclass
class AgentContext:
    """All components of one agent.

    ``dispatcher`` exists only when an action collaborator was supplied and
    ``controller`` only when a perception collaborator was supplied.
    """

    name: str
    config: Config
    state: SharedAgentState
    reasoner: Reasoner
    metrics: MetricsCollector
    memory: Memory
    social: Social
    planner: GoalTreeBuilder
    recipes: RecipeBook
    consolidator: MemoryConsolidator
    mailbox: AgentMailbox | None = None
    dispatcher: ToolDispatcher | None = None
    controller: CognitiveController | None = None

    @classmethod
    def build(
        cls,
        config: Config,
        reasoner: Reasoner,
        *,
        name: str | None = None,
        perception: PerceptionCollaborator | None = None,
        actions: ActionCollaborator | None = None,
        bus: MessageBus | None = None,
        recipes: RecipeBook | None = None,
    ) -> AgentContext:
        """Assemble an agent from configuration and collaborators."""
        agent_name = name or config.agent.name
        state = SharedAgentState(agent_name)
        metrics = MetricsCollector()
        if recipes is None:
            recipes = (
                RecipeBook.from_file(config.dispatch.recipes_file)
                if config.dispatch.recipes_file
                else RecipeBook()
            )
        memory = Memory(state, capacity=config.memory.short_term_capacity)
        social = Social(
            state,
            reasoner=reasoner,
            personality=config.agent.personality or DEFAULT_PERSONALITY,
            metrics=metrics,
        )
        planner = GoalTreeBuilder(reasoner, metrics=metrics)
        consolidator = MemoryConsolidator(
            reasoner,
            memory,
            state,
            round_limit=config.memory.consolidation_round_limit,
            recent_events=config.memory.consolidation_recent_events,
            metrics=metrics,
        )
        mailbox = bus.register(agent_name) if bus is not None else None

        dispatcher = None
        if actions is not None:
            retrying = TimeoutRetryingActions(
                actions,
                TimeoutRetryPolicy(
                    pathfind_retries=config.actions.pathfind_retries,
                    backoff_seconds=config.actions.pathfind_backoff_seconds,
                ),
            )
            dispatcher = ToolDispatcher(
                reasoner,
                build_action_menu(retrying, speech_filter=social.filter_message_for_speech),
                state,
                threat_check=perception.check_threat if perception is not None else None,
                config=DispatchConfig(
                    round_limit=config.dispatch.round_limit,
                    include_state_diff=config.dispatch.include_state_diff,
                ),
                recipes=recipes,
                metrics=metrics,
            )

        controller = None
        if perception is not None:
            controller = CognitiveController(
                state,
                perception,
                planner,
                social=social,
                memory=memory,
                mailbox=mailbox,
                metrics=metrics,
                config=ControllerConfig(
                    fast_loop_seconds=config.agent.fast_loop_seconds,
                    slow_loop_seconds=config.agent.slow_loop_seconds,
                    threat_distance=config.agent.threat_distance,
                    hostile_mobs=frozenset(m.lower() for m in config.agent.hostile_mobs),
                    allow_overlap=config.agent.allow_overlap,
                ),
            )

        logger.info(
            f"Agent {agent_name} assembled "
            f"(actions={'yes' if dispatcher else 'no'}, controller={'yes' if controller else 'no'})"
        )
        return cls(
            name=agent_name,
            config=config,
            state=state,
            reasoner=reasoner,
            metrics=metrics,
            memory=memory,
            social=social,
            planner=planner,
            recipes=recipes,
            consolidator=consolidator,
            mailbox=mailbox,
            dispatcher=dispatcher,
            controller=controller,
        )

    async def plan(
        self,
        goal: str,
        mode: PlanMode | str | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> list[StepNode]:
        """Build a goal tree using this agent's state as ambient context."""
        return await self.planner.build(
            goal,
            mode or self.config.planner.default_mode,
            on_progress=on_progress,
            ambient_state=self.state,
        )

    async def run_instruction(self, instruction: str, consolidate: bool = True) -> str:
        """Dispatch ``instruction`` through the action menu.

        The final response is then folded into memory unless ``consolidate``
        is False.

        Raises:
            RuntimeError: If the agent has no action collaborator.
            ReasonerError: If the reasoner fails.
        """
        if self.dispatcher is None:
            raise RuntimeError(f"Agent {self.name} has no action collaborator")
        response = await self.dispatcher.run_instruction(instruction)
        if consolidate:
            await self.consolidator.consolidate(response)
        return response

    def toggle_llm(self) -> bool | None:
        """Flip the reasoner enable switch; None if the reasoner has none."""
        if isinstance(self.reasoner, LLMReasoner):
            return self.reasoner.toggle_enabled()
        return None

    def start(self) -> None:
        if self.controller is not None:
            self.controller.start()

    def stop(self) -> None:
        if self.controller is not None:
            self.controller.stop()
