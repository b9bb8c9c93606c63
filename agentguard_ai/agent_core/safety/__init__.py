"""Safety gate and evaluator strategies."""

from .evaluator import SafetyAgent, SafetyEvaluator, validate_safety_decision
from .gate import SafetyEvaluatorAgent, SafetyGate
from .model_evaluator import ModelSafetyAgent

__all__ = [
    "SafetyAgent",
    "SafetyEvaluator",
    "validate_safety_decision",
    "SafetyEvaluatorAgent",
    "SafetyGate",
    "ModelSafetyAgent",
]
