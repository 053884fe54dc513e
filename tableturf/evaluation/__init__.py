"""Match running and policy evaluation."""

from .match import EvaluationResult, MatchConfig, MatchOutcome, evaluate_policies, run_match, simulate_match

__all__ = ["EvaluationResult", "MatchConfig", "MatchOutcome", "evaluate_policies", "run_match", "simulate_match"]
