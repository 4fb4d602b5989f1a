from .log_governance_stack import LogGovernanceStack

__all__ = ["LogGovernanceStack"]
