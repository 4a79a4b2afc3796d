"""Reference detection: was an included arm actually used this turn?

This is a heuristic proxy reward. No ground truth exists for "was this
component worth including", so the detector's accuracy bounds how well the
bandit can learn. Each arm type has its own policy:

- tool: a tool call whose name equals the arm's id segment
- skill: the skill name appears in assistant text or tool-call metadata
- file: the file label appears in assistant text
- memory: short labels need a verbatim match; long labels match on a
  lowercased prefix fingerprint (robust to paraphrase and truncation)
- section: structural sections are used by definition once included
"""

from collections.abc import Sequence

from curator.core.defaults import (
    ARM_ID_SEPARATOR,
    REFERENCE_DETECTION_DEFAULTS,
    ReferenceDetectionConfig,
)
from curator.core.models import ArmType, ToolMeta


def _tool_name(arm_id: str) -> str:
    return ARM_ID_SEPARATOR.join(arm_id.split(ARM_ID_SEPARATOR)[2:])


def _contains(needle: str, haystacks: Sequence[str]) -> bool:
    return any(needle in text for text in haystacks)


def detect_reference(
    arm_id: str,
    arm_type: ArmType | str,
    arm_label: str,
    assistant_texts: Sequence[str],
    tool_metas: Sequence[ToolMeta],
    config: ReferenceDetectionConfig = REFERENCE_DETECTION_DEFAULTS,
) -> bool:
    """Decide whether an included arm was referenced by the model's output.

    Args:
        arm_id: Full arm ID (type:category:id)
        arm_type: Arm type; unknown values are never referenced
        arm_label: Label to look for (skill name, file path, memory text)
        assistant_texts: Assistant messages produced during the turn
        tool_metas: Tool calls made during the turn
        config: Memory-match thresholds

    Returns:
        True if the arm counts as used
    """
    try:
        kind = ArmType(arm_type)
    except ValueError:
        return False

    match kind:
        case ArmType.TOOL:
            name = _tool_name(arm_id)
            return any(meta.tool_name == name for meta in tool_metas)

        case ArmType.SKILL:
            needle = arm_label.lower()
            texts = [text.lower() for text in assistant_texts]
            texts.extend(meta.meta.lower() for meta in tool_metas if meta.meta)
            return _contains(needle, texts)

        case ArmType.FILE:
            needle = arm_label.lower()
            return _contains(needle, [text.lower() for text in assistant_texts])

        case ArmType.MEMORY:
            if len(arm_label) < config.memory_exact_match_max_chars:
                return _contains(arm_label, assistant_texts)
            fingerprint = arm_label[: config.memory_fingerprint_chars].lower()
            return _contains(fingerprint, [text.lower() for text in assistant_texts])

        case ArmType.SECTION:
            return True

    return False
