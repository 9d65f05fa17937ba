from __future__ import annotations

from typing import List

from ..screening.models import ConversationTurn, ResponseSet, serialize_responses

ASSISTANT_PLACEHOLDER = "[previous assessment provided]"

PERSONA = """You are a compassionate mental health screening assistant specializing in providing supportive, non-diagnostic guidance.
You must not claim to diagnose or replace a clinician."""

GUIDELINES = """IMPORTANT GUIDELINES:
- Do NOT provide a clinical diagnosis or use diagnostic labels
- Maintain a compassionate, supportive tone
- Focus on providing constructive, helpful insights
- Always recommend consultation with a mental health professional"""

FORMAT_RULES = """Respond with a single valid JSON object and nothing else.
Do not wrap it in markdown, and do not add any text before or after it."""

INITIAL_SKELETON = """{
  "risk_level": "Low" | "Moderate" | "High",
  "observations": ["..."],
  "follow_up_questions": ["..."],
  "conversation_complete": false
}"""

CONTINUATION_SKELETON = """{
  "risk_level": "Low" | "Moderate" | "High",
  "observations": ["..."],
  "recommended_resources": {"Category": ["..."]},
  "guidance": "...",
  "follow_up_questions": ["..."],
  "conversation_complete": true
}"""

SINGLE_SHOT_SKELETON = """{
  "risk_level": "Low" | "Moderate" | "High",
  "observations": ["..."],
  "recommended_resources": {"Category": ["..."]},
  "guidance": "..."
}"""


def redact_history(history: List[ConversationTurn]) -> str:
    lines = []
    for turn in history:
        if turn.role == "assistant":
            lines.append(f"Assistant: {ASSISTANT_PLACEHOLDER}")
        else:
            lines.append(f"User: {turn.content}")
    return "\n".join(lines)


def build_prompt(responses: ResponseSet, history: List[ConversationTurn]) -> str:
    """Instruction text for one conversational turn.

    The first turn asks the model to assess and probe for what is missing.
    Later turns replay earlier user answers (the model's own replies are
    replaced by a marker) and ask it to either keep probing or finalize.
    """
    if not history:
        parts = [
            PERSONA,
            "The user has answered an initial mental health screening. Their responses:",
            serialize_responses(responses),
            "",
            "Assess the information available so far and decide what is still missing.",
            "Ask 1-3 targeted follow-up questions that would help you understand the user's situation better.",
            "Set conversation_complete to true only when you have gathered sufficient information for a supportive assessment.",
            "",
            GUIDELINES,
            "",
            FORMAT_RULES,
            "Use exactly these keys: risk_level, observations, follow_up_questions, conversation_complete.",
            "Example:",
            INITIAL_SKELETON,
        ]
    else:
        parts = [
            PERSONA,
            "This is a continuing screening conversation. Conversation so far:",
            redact_history(history),
            "",
            "The user's new responses:",
            serialize_responses(responses),
            "",
            "Integrate the new information with what you already know.",
            "Do not repeat questions that were already asked.",
            "If important information is still missing, ask 1-3 new follow-up questions and set conversation_complete to false.",
            "Otherwise finalize: set conversation_complete to true, leave follow_up_questions empty, and include recommended local mental health resources and supportive guidance for next steps.",
            "",
            GUIDELINES,
            "",
            FORMAT_RULES,
            "Use exactly these keys: risk_level, observations, recommended_resources, guidance, follow_up_questions, conversation_complete.",
            "Example:",
            CONTINUATION_SKELETON,
        ]
    return "\n".join(parts)


def build_single_shot_prompt(responses: ResponseSet) -> str:
    parts = [
        PERSONA,
        "Analyze the following user responses carefully:",
        serialize_responses(responses),
        "",
        "Please provide a comprehensive, empathetic assessment that includes:",
        "1. A general risk level assessment (Low/Moderate/High)",
        "2. Key observations about the user's mental health state",
        "3. Recommended local South Jersey mental health resources",
        "4. Supportive guidance for next steps",
        "",
        GUIDELINES,
        "",
        FORMAT_RULES,
        "Use exactly these keys: risk_level, observations, recommended_resources, guidance.",
        "Example:",
        SINGLE_SHOT_SKELETON,
    ]
    return "\n".join(parts)
