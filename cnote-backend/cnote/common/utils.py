from typing import Optional

from cnote.common.constants import AIPrompts, Common


def build_chat_system_prompt(context_section: str, with_tools: bool = True) -> str:
    tools_section = AIPrompts.TOOLS_SECTION if with_tools else ""
    return AIPrompts.CHAT_SYSTEM_PROMPT.format(
        context_section=context_section,
        tools_section=tools_section,
    )


def make_excerpt(content: Optional[str]) -> str:
    return (content or "")[: Common.EXCERPT_LENGTH] + "..."
