"""Agent graph endpoint."""

from fastapi import APIRouter, Depends

from factory import ServiceFactory
from adapters.rest.dependencies import get_factory
from adapters.rest.schemas import AgentGraphOut, AgentOut

router = APIRouter(tags=["agents"])


@router.get("/agents", response_model=AgentGraphOut)
async def list_agents(factory: ServiceFactory = Depends(get_factory)):
    agents = []
    for spec in factory.agents.all():
        summary = spec.summary()
        agents.append(AgentOut(
            name=summary.name,
            handoff_description=summary.handoff_description,
            tools=list(summary.tools),
            handoff_targets=list(summary.handoff_targets),
        ))
    return AgentGraphOut(initial_agent=factory.config.initial_agent, agents=agents)
