"""Arm identity, type taxonomy, and token cost accounting.

Arm IDs have the form ``type:category:id`` where ``id`` is everything after
the second separator and may itself contain ``:`` (file paths, memory keys).

Example:
    >>> parse_arm_id("file:workspace:path:to:file.md")
    ParsedArmId(type=<ArmType.FILE: 'file'>, category='workspace', id='path:to:file.md')
    >>> build_arm_id("tool", infer_tool_category("bash"), "bash")
    'tool:exec:bash'
"""

import math
import re

from curator.core.defaults import (
    ARM_ID_SEPARATOR,
    CHARS_PER_TOKEN,
    DEFAULT_TOOL_CATEGORY,
    FILE_ARM_CATEGORY,
    MEMORY_ARM_CATEGORY,
    SECTION_ARM_CATEGORY,
    SKILL_ARM_ID,
    TOOL_CATEGORY_PATTERNS,
)
from curator.core.models import Arm, ArmType, ParsedArmId

_ARM_TYPES = {member.value: member for member in ArmType}

_COMPILED_TOOL_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = tuple(
    (re.compile(pattern, re.IGNORECASE), category)
    for pattern, category in TOOL_CATEGORY_PATTERNS
)


def parse_arm_id(arm_id: str) -> ParsedArmId | None:
    """Parse an arm ID into its (type, category, id) triple.

    Args:
        arm_id: Candidate arm ID string

    Returns:
        ParsedArmId, or None when the string has fewer than three segments,
        an unknown type, or an empty category or id. Never raises.
    """
    if not isinstance(arm_id, str):
        return None
    parts = arm_id.split(ARM_ID_SEPARATOR)
    if len(parts) < 3:
        return None
    arm_type = _ARM_TYPES.get(parts[0])
    category = parts[1]
    ident = ARM_ID_SEPARATOR.join(parts[2:])
    if arm_type is None or not category or not ident:
        return None
    return ParsedArmId(type=arm_type, category=category, id=ident)


def build_arm_id(arm_type: ArmType | str, category: str, ident: str) -> str:
    """Join (type, category, id) into an arm ID."""
    type_value = arm_type.value if isinstance(arm_type, ArmType) else arm_type
    return ARM_ID_SEPARATOR.join((type_value, category, ident))


def infer_tool_category(tool_name: str) -> str:
    """Infer a tool's category from its name prefix (first match wins)."""
    for pattern, category in _COMPILED_TOOL_PATTERNS:
        if pattern.match(tool_name):
            return category
    return DEFAULT_TOOL_CATEGORY


def infer_arm_type(arm_id: str) -> ArmType:
    """Type segment of an arm ID, defaulting to tool for unknown types."""
    return _ARM_TYPES.get(arm_id.split(ARM_ID_SEPARATOR, 1)[0], ArmType.TOOL)


def arm_label(arm_id: str) -> str:
    """Label used for reference detection when only the ID is known.

    Skills are named by their category (``skill:<name>:main``); every other
    type is named by the id segment.
    """
    parts = arm_id.split(ARM_ID_SEPARATOR)
    if infer_arm_type(arm_id) is ArmType.SKILL and len(parts) > 1 and parts[1]:
        return parts[1]
    return ARM_ID_SEPARATOR.join(parts[2:])


def estimate_tokens(chars: int) -> int:
    """Estimate token cost as ceil(chars / 4).

    This is a fixed chars-per-token approximation, not a tokenizer. It is
    applied to each component's own character accounting.
    """
    if chars <= 0:
        return 0
    return math.ceil(chars / CHARS_PER_TOKEN)


# Arm builders for each component kind


def tool_arm(name: str, schema_chars: int) -> Arm:
    category = infer_tool_category(name)
    return Arm(
        id=build_arm_id(ArmType.TOOL, category, name),
        type=ArmType.TOOL,
        category=category,
        label=name,
        token_cost=estimate_tokens(schema_chars),
    )


def skill_arm(name: str, block_chars: int) -> Arm:
    return Arm(
        id=build_arm_id(ArmType.SKILL, name, SKILL_ARM_ID),
        type=ArmType.SKILL,
        category=name,
        label=name,
        token_cost=estimate_tokens(block_chars),
    )


def file_arm(path: str, injected_chars: int) -> Arm:
    return Arm(
        id=build_arm_id(ArmType.FILE, FILE_ARM_CATEGORY, path),
        type=ArmType.FILE,
        category=FILE_ARM_CATEGORY,
        label=path,
        token_cost=estimate_tokens(injected_chars),
    )


def memory_arm(key: str, text: str, source: str | None = None) -> Arm:
    """Memory arms are labelled by their text so references can be fingerprinted."""
    category = source or MEMORY_ARM_CATEGORY
    return Arm(
        id=build_arm_id(ArmType.MEMORY, category, key),
        type=ArmType.MEMORY,
        category=category,
        label=text,
        token_cost=estimate_tokens(len(text)),
    )


def section_arm(name: str, chars: int) -> Arm:
    return Arm(
        id=build_arm_id(ArmType.SECTION, SECTION_ARM_CATEGORY, name),
        type=ArmType.SECTION,
        category=SECTION_ARM_CATEGORY,
        label=name,
        token_cost=estimate_tokens(chars),
    )
