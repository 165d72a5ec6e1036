"""FastAPI application exposing agent state, events, metrics and goal planning.

Endpoints:
- GET  /ping                 liveness
- GET  /agents               names of observed agents
- GET  /state                serialized shared state (``?agent=`` selects one)
- GET  /events?since=N       event-log entries from index N onward
- GET  /metrics              controller metrics and reasoner usage
- POST /toggle-llm           flip the reasoner enable switch
- WS   /ws/state             periodic push of every agent's state
- WS   /ws/goal-plan         stream a goal tree as it is built
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Sequence
from typing import Any

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from pydantic import BaseModel, Field, ValidationError

from craftmind.agent import AgentContext
from craftmind.interfaces.reasoner import ReasonerError
from craftmind.llm.client import LLMReasoner
from craftmind.models.plan import PlanMode, StepNode

logger = logging.getLogger(__name__)

DEFAULT_PUSH_SECONDS = 1.0


class GoalPlanRequest(BaseModel):
    """Client request on the goal-plan socket."""

    goal: str = Field(..., min_length=1)
    mode: PlanMode = PlanMode.BFS
    agent: str | None = None


def _tree_payload(nodes: list[StepNode]) -> list[dict[str, Any]]:
    return [node.model_dump(mode="json") for node in nodes]


def create_app(
    agents: AgentContext | Sequence[AgentContext],
    push_interval: float = DEFAULT_PUSH_SECONDS,
) -> FastAPI:
    """Create FastAPI app observing one or more agents.

    Args:
        agents: Agents to expose. The first one is the default target of
            requests that do not name an agent.
        push_interval: Seconds between pushes on /ws/state.
    """
    contexts = [agents] if isinstance(agents, AgentContext) else list(agents)
    if not contexts:
        raise ValueError("At least one agent is required")

    app = FastAPI(title="craftmind Observer", version="0.1.0")
    app.state.agents = {ctx.name: ctx for ctx in contexts}
    app.state.primary = contexts[0].name

    def resolve(name: str | None) -> AgentContext:
        registry: dict[str, AgentContext] = app.state.agents
        ctx = registry.get(name or app.state.primary)
        if ctx is None:
            raise HTTPException(status_code=404, detail=f"Unknown agent: {name}")
        return ctx

    @app.get("/ping")
    async def ping() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/agents")
    async def list_agents() -> dict[str, Any]:
        return {"agents": list(app.state.agents), "primary": app.state.primary}

    @app.get("/state")
    async def get_state(agent: str | None = None) -> dict[str, Any]:
        return resolve(agent).state.to_dict()

    @app.get("/events")
    async def get_events(since: int = 0, agent: str | None = None) -> dict[str, Any]:
        state = resolve(agent).state
        events = state.events_since(since)
        return {
            "since": max(since, 0),
            "next": len(state.event_log),
            "events": [entry.model_dump(mode="json") for entry in events],
        }

    @app.get("/metrics")
    async def get_metrics(agent: str | None = None) -> dict[str, Any]:
        ctx = resolve(agent)
        payload: dict[str, Any] = {"controller": ctx.metrics.get_metrics().model_dump(mode="json")}
        if isinstance(ctx.reasoner, LLMReasoner):
            payload["llm"] = ctx.reasoner.usage().model_dump()
        return payload

    @app.post("/toggle-llm")
    async def toggle_llm(agent: str | None = None) -> dict[str, Any]:
        enabled = resolve(agent).toggle_llm()
        if enabled is None:
            raise HTTPException(status_code=409, detail="Reasoner has no enable switch")
        message = "LLM requests enabled." if enabled else "LLM requests disabled."
        return {"message": message, "enabled": enabled}

    @app.websocket("/ws/state")
    async def state_stream(websocket: WebSocket) -> None:
        await websocket.accept()
        registry: dict[str, AgentContext] = app.state.agents
        try:
            while True:
                await websocket.send_json(
                    {
                        "type": "allSharedStates",
                        "data": {name: ctx.state.to_dict() for name, ctx in registry.items()},
                    }
                )
                await asyncio.sleep(push_interval)
        except WebSocketDisconnect:
            logger.debug("State WebSocket client disconnected")
        except Exception as e:
            logger.warning(f"State stream error: {e}")

    @app.websocket("/ws/goal-plan")
    async def goal_plan_stream(websocket: WebSocket) -> None:
        await websocket.accept()
        try:
            while True:
                text = await websocket.receive_text()
                try:
                    raw = json.loads(text)
                except json.JSONDecodeError:
                    await websocket.send_json({"type": "goalPlanError", "error": "Request is not valid JSON"})
                    continue
                await _run_goal_plan(websocket, raw)
        except WebSocketDisconnect:
            logger.debug("Goal-plan WebSocket client disconnected")

    async def _run_goal_plan(websocket: WebSocket, raw: Any) -> None:
        try:
            request = GoalPlanRequest.model_validate(raw)
            ctx = resolve(request.agent)
        except ValidationError as e:
            await websocket.send_json({"type": "goalPlanError", "error": f"Invalid request: {e}"})
            return
        except HTTPException as e:
            await websocket.send_json({"type": "goalPlanError", "error": str(e.detail)})
            return

        logger.info(f"Starting goal planning for '{request.goal}' (mode: {request.mode}, context: {ctx.name})")

        async def on_progress(nodes: list[StepNode]) -> None:
            await websocket.send_json({"type": "goalPlanProgress", "tree": _tree_payload(nodes)})

        try:
            tree = await ctx.plan(request.goal, request.mode, on_progress=on_progress)
        except ReasonerError as e:
            logger.warning(f"Goal planning failed: {e}")
            await websocket.send_json({"type": "goalPlanError", "error": str(e)})
            return
        await websocket.send_json({"type": "goalPlanComplete", "tree": _tree_payload(tree)})

    return app
