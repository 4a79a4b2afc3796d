"""Centralized default values and configuration constants.

All magic numbers and hardcoded thresholds should be defined here
to avoid duplication and ensure consistency across the codebase.
"""

from dataclasses import dataclass

# =============================================================================
# ARM MODEL
# =============================================================================

# Arm ID separator: "type:category:id" (id may itself contain the separator)
ARM_ID_SEPARATOR = ":"

# Token cost approximation (not a tokenizer)
CHARS_PER_TOKEN = 4

# Tool category inference. Ordered: first matching prefix wins, so the
# order is part of the contract and must not be re-sorted.
TOOL_CATEGORY_PATTERNS: tuple[tuple[str, str], ...] = (
    (r"^(bash|exec|shell|run)", "exec"),
    (r"^(read|write|edit|glob|grep)", "fs"),
    (r"^(memory|remember|recall)", "memory"),
    (r"^(web|fetch|browse|search)", "web"),
    (r"^(send|reply|message)", "messaging"),
)
DEFAULT_TOOL_CATEGORY = "other"

# Fixed categories for non-tool arms
SKILL_ARM_ID = "main"  # skill:<name>:main
FILE_ARM_CATEGORY = "workspace"  # file:workspace:<path>
SECTION_ARM_CATEGORY = "prompt"  # section:prompt:<name>
MEMORY_ARM_CATEGORY = "recall"  # memory:recall:<key> when no source is known

# Core tools that are never excluded by the local Thompson oracle
SEED_ARM_IDS: tuple[str, ...] = (
    "tool:fs:Read",
    "tool:fs:Write",
    "tool:fs:Edit",
    "tool:exec:Bash",
    "tool:fs:Glob",
    "tool:fs:Grep",
)

# =============================================================================
# PRIORS & POSTERIORS
# =============================================================================

# Curated components (tools, skills, memory, sections): optimistic, mean=0.75
CURATED_PRIOR = (3.0, 1.0)
# Learned components (workspace files): neutral, mean=0.50
LEARNED_PRIOR = (1.0, 1.0)
# State after an explicit reset
RESET_PRIOR = (1.0, 1.0)

# Confidence buckets for posterior summaries
CONFIDENCE_HIGH_PULLS = 20
CONFIDENCE_MEDIUM_PULLS = 5

# Credible interval z-score for the 95% level
CREDIBLE_INTERVAL_Z95 = 1.96

# =============================================================================
# SELECTION & BASELINE
# =============================================================================

DEFAULT_TOKEN_BUDGET = 8000
DEFAULT_BASELINE_RATE = 0.10  # 10% of runs use the full, unfiltered context
DEFAULT_MIN_PULLS = 5  # Arms below this are always included
DEFAULT_LEARNER_NAME = "curator"

# Recommended baseline rate by arm inventory size
BASELINE_RATE_SMALL = 0.20  # <= 10 arms
BASELINE_RATE_MEDIUM = 0.10  # 11..50 arms
BASELINE_RATE_LARGE = 0.05  # > 50 arms
BASELINE_SMALL_ARM_COUNT = 10
BASELINE_MEDIUM_ARM_COUNT = 50

# Seeded baseline PRNG (numerical recipes LCG)
LCG_MULTIPLIER = 1664525
LCG_INCREMENT = 1013904223
LCG_MODULUS = 2**32

# =============================================================================
# DECISION ORACLE
# =============================================================================

ORACLE_SELECT_TIMEOUT = 10.0  # seconds
ORACLE_OBSERVE_TIMEOUT = 10.0  # seconds
ORACLE_QUERY_TIMEOUT = 15.0  # seconds

# =============================================================================
# STORAGE
# =============================================================================

SQLITE_DB_FILENAME = "learning.db"
SQLITE_BUSY_TIMEOUT_MS = 3000
DEFAULT_TRACE_LIST_LIMIT = 100

# =============================================================================
# REFERENCE DETECTION
# =============================================================================


@dataclass
class ReferenceDetectionConfig:
    """Thresholds for the memory-arm reference heuristic.

    Short memory labels are matched verbatim. Long labels are matched by a
    lowercased prefix fingerprint so paraphrased or truncated echoes of the
    memory still count as a reference. The values were calibrated against
    real transcripts and should be tuned, not re-derived.
    """

    # Labels shorter than this require an exact substring match
    memory_exact_match_max_chars: int = 20
    # Prefix length used as the fingerprint for longer labels
    memory_fingerprint_chars: int = 60


REFERENCE_DETECTION_DEFAULTS = ReferenceDetectionConfig()
