from .policies import MCTSPolicy, Policy, RandomPolicy, make_policy, parse_policy_name

__all__ = ["MCTSPolicy", "Policy", "RandomPolicy", "make_policy", "parse_policy_name"]
