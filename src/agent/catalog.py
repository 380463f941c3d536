"""
agent.catalog - The default deployment: a hub voice agent and its specialists.

    voice_agent   -> weather_agent, stock_agent, checkin_agent, contact_agent
    weather_agent -> voice_agent
    stock_agent   -> voice_agent, weather_agent
    checkin_agent -> voice_agent   (index-driven daily check-in)
    contact_agent -> voice_agent   (completion-flag contact form)
"""

from __future__ import annotations

from typing import Iterable

from agent.agents import AgentRegistry, AgentSpec
from agent.interview import InterviewDefinition, InterviewMachine, InterviewMode
from agent.tools.interview import build_interview_tools
from agent.tools.registry import ToolRegistry
from agent.tools.stock import GetStockPriceTool
from agent.tools.weather import GetWeatherTool
from domain.models import InterviewField
from domain.ports import RecordParserPort
from domain.records import ContactDetails, DailyCheckIn

VOICE_AGENT = "voice_agent"
WEATHER_AGENT = "weather_agent"
STOCK_AGENT = "stock_agent"
CHECKIN_AGENT = "checkin_agent"
CONTACT_AGENT = "contact_agent"

DAILY_CHECKIN_FIELDS = (
    InterviewField(
        key="daily_cigarettes",
        prompt="How many cigarettes did you smoke today?",
        description="number of cigarettes smoked today",
    ),
    InterviewField(
        key="daily_sleep",
        prompt="How many hours did you sleep last night?",
        description="hours slept last night",
    ),
    InterviewField(
        key="daily_feeling",
        prompt="How did you feel today?",
        description="how the user felt today",
    ),
    InterviewField(
        key="daily_reason",
        prompt="What was the main reason you smoked today?",
        description="reason for smoking today",
    ),
)

CONTACT_FIELDS = (
    InterviewField(key="name", prompt="What is your full name?", description="full name"),
    InterviewField(key="email", prompt="What is your email address?", description="email address"),
    InterviewField(
        key="phone",
        prompt="What is your 10-digit phone number?",
        description="10-digit phone number",
    ),
    InterviewField(key="address", prompt="What is your street address?", description="street address"),
    InterviewField(key="city", prompt="Which city do you live in?", description="city"),
)


def daily_checkin_definition(*, strict: bool = False) -> InterviewDefinition:
    return InterviewDefinition(
        name="daily_checkin",
        fields=DAILY_CHECKIN_FIELDS,
        record_schema=DailyCheckIn,
        mode=InterviewMode.INDEX,
        strict=strict,
        finalize_handoff_target=VOICE_AGENT,
    )


def contact_details_definition(*, strict: bool = False) -> InterviewDefinition:
    return InterviewDefinition(
        name="contact_details",
        fields=CONTACT_FIELDS,
        record_schema=ContactDetails,
        mode=InterviewMode.COMPLETION_FLAG,
        strict=strict,
    )


RECORD_SCHEMAS = {
    "daily_checkin": DailyCheckIn,
    "contact_details": ContactDetails,
}


def build_default_agents(
    parser: RecordParserPort,
    *,
    strict_interviews: bool = False,
    approval_required_tools: Iterable[str] = (),
) -> AgentRegistry:
    """Build and validate the default agent graph.

    Args:
        parser:                  Record parser shared by both interviews.
        strict_interviews:       Reject answers for undeclared field keys.
        approval_required_tools: Tool names that need a human decision
                                 before they run, on whichever agent has them.
    """
    checkin = InterviewMachine(daily_checkin_definition(strict=strict_interviews), parser)
    contact = InterviewMachine(contact_details_definition(strict=strict_interviews), parser)

    agents = [
        AgentSpec(
            name=VOICE_AGENT,
            instructions=(
                "You are a voice agent that can answer questions and help with tasks. "
                "When users want to switch topics or need help with different areas, "
                "you can hand them off to specialists."
            ),
            handoff_targets=frozenset({WEATHER_AGENT, STOCK_AGENT, CHECKIN_AGENT, CONTACT_AGENT}),
            handoff_description="The main assistant for general questions",
        ),
        AgentSpec(
            name=WEATHER_AGENT,
            instructions=(
                "Talk with a New York accent. You are an expert in weather. When users "
                "want to ask about other topics like stocks, or want to return to general "
                "assistance, hand them back to the main agent."
            ),
            tools=ToolRegistry([GetWeatherTool()]),
            handoff_targets=frozenset({VOICE_AGENT}),
            handoff_description="This agent is an expert in weather",
        ),
        AgentSpec(
            name=STOCK_AGENT,
            instructions=(
                "You are an expert in stocks. When users want to ask about other topics "
                "like weather, or want to return to general assistance, hand them back "
                "to the main agent."
            ),
            tools=ToolRegistry([GetStockPriceTool()]),
            handoff_targets=frozenset({VOICE_AGENT, WEATHER_AGENT}),
            handoff_description="This agent is an expert in stock prices",
        ),
        AgentSpec(
            name=CHECKIN_AGENT,
            instructions=(
                "You run the user's daily smoking check-in. Ask one question at a time, "
                "in order, and record each answer with record_field exactly as the user "
                "said it. If the user asks something unrelated, answer briefly, then call "
                "get_current_field and continue. When every question is answered, call "
                "finalize_interview, read the saved summary back, and hand the user back "
                "to the main agent."
            ),
            tools=ToolRegistry(build_interview_tools(checkin)),
            handoff_targets=frozenset({VOICE_AGENT}),
            handoff_description="Runs the daily smoking check-in (cigarettes, sleep, mood)",
        ),
        AgentSpec(
            name=CONTACT_AGENT,
            instructions=(
                "You collect the user's contact details: name, email, phone, address "
                "and city. Accept answers in any order and record each one with "
                "record_field. Set is_complete=true on the call that records the last "
                "missing field. If saving fails, ask the user to correct the field named "
                "in the error. Hand the user back to the main agent when you are done."
            ),
            tools=ToolRegistry(build_interview_tools(contact)),
            handoff_targets=frozenset({VOICE_AGENT}),
            handoff_description="Collects contact details (name, email, phone, address)",
        ),
    ]

    approval_required = list(approval_required_tools)
    if approval_required:
        for spec in agents:
            spec.tools.require_approval(approval_required)

    registry = AgentRegistry(agents)
    registry.validate()
    return registry
