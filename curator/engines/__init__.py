"""Selection, reference detection, and posterior learning."""

from curator.engines.baseline import compare_baseline, should_run_baseline
from curator.engines.curator import ContextCurator, TurnPlan
from curator.engines.export import export_learning_data
from curator.engines.guidance import build_excluded_tools_guidance
from curator.engines.reference import detect_reference
from curator.engines.selector import DecisionOracle, Selector, fallback_select
from curator.engines.thompson import LocalThompsonOracle
from curator.engines.trace_capture import capture_run_trace, extract_arms
from curator.engines.updater import update_posteriors

__all__ = [
    "ContextCurator",
    "TurnPlan",
    "DecisionOracle",
    "LocalThompsonOracle",
    "Selector",
    "build_excluded_tools_guidance",
    "capture_run_trace",
    "compare_baseline",
    "detect_reference",
    "export_learning_data",
    "extract_arms",
    "fallback_select",
    "should_run_baseline",
    "update_posteriors",
]
