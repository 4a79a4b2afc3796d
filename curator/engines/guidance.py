"""System prompt guidance for tools withheld this turn.

When tools are excluded the model should know, so it can explain that a
capability is temporarily unavailable instead of silently failing.
"""

from collections.abc import Iterable

from curator.core.arms import parse_arm_id
from curator.core.models import ArmType


def build_excluded_tools_guidance(excluded_arms: Iterable[str] | None) -> str | None:
    """Prompt fragment naming excluded tools, or None if no tool was excluded."""
    if not excluded_arms:
        return None

    tool_names = []
    for arm_id in excluded_arms:
        parsed = parse_arm_id(arm_id)
        if parsed is not None and parsed.type is ArmType.TOOL:
            tool_names.append(parsed.id)

    if not tool_names:
        return None

    return (
        f"Note: The following tools are currently unavailable: {', '.join(tool_names)}. "
        "If the user requests a capability that requires an unavailable tool, "
        "briefly explain that the capability is temporarily unavailable and suggest "
        "alternatives or ask them to try again later."
    )
