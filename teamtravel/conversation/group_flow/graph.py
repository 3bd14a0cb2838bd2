"""
Group Flow State Machine Definition

Every turn enters at START and is routed on the stored step to exactly one
node, which produces the reply and the next stored flow.
"""

from typing import Any, Literal

from langgraph.graph import StateGraph, START, END

from teamtravel.conversation.group_flow.nodes import (
    ApproveNode,
    AssignTeamNode,
    DetectConferencesNode,
    FinishedNode,
    ResetNode,
)
from teamtravel.conversation.group_flow.state import (
    AWAITING_APPROVAL,
    AWAITING_TEAM,
    COMPLETE,
    CONFERENCES_DETECTED,
    SHOWING_RESULTS,
    GroupFlowGraphState,
)

Route = Literal["detect_conferences", "assign_team", "approve", "finished", "reset"]


def route_step(state: GroupFlowGraphState) -> Route:
    """Pick the node for the stored step; nothing stored starts detection"""
    flow = state.get("flow")
    if flow is None:
        return "detect_conferences"
    step = flow.get("step")
    if step in (CONFERENCES_DETECTED, AWAITING_TEAM):
        return "assign_team"
    if step in (SHOWING_RESULTS, AWAITING_APPROVAL):
        return "approve"
    if step == COMPLETE:
        return "finished"
    return "reset"


def create_group_flow_graph(detect: DetectConferencesNode, assign: AssignTeamNode,
                            approve: ApproveNode) -> StateGraph:
    workflow = StateGraph(GroupFlowGraphState)
    finished = FinishedNode()
    reset = ResetNode()

    async def detect_conferences_node(state: GroupFlowGraphState):
        return await detect(state)

    async def assign_team_node(state: GroupFlowGraphState):
        return await assign(state)

    async def approve_node(state: GroupFlowGraphState):
        return await approve(state)

    async def finished_node(state: GroupFlowGraphState):
        return await finished(state)

    async def reset_node(state: GroupFlowGraphState):
        return await reset(state)

    workflow.add_node("detect_conferences", detect_conferences_node)
    workflow.add_node("assign_team", assign_team_node)
    workflow.add_node("approve", approve_node)
    workflow.add_node("finished", finished_node)
    workflow.add_node("reset", reset_node)

    workflow.add_conditional_edges(
        START,
        route_step,
        {
            "detect_conferences": "detect_conferences",
            "assign_team": "assign_team",
            "approve": "approve",
            "finished": "finished",
            "reset": "reset",
        }
    )

    for name in ("detect_conferences", "assign_team", "approve", "finished", "reset"):
        workflow.add_edge(name, END)

    return workflow


def compile_group_flow_graph(detect: DetectConferencesNode, assign: AssignTeamNode,
                             approve: ApproveNode) -> Any:
    return create_group_flow_graph(detect, assign, approve).compile()
