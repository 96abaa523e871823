"""Account-abstraction session and transfer orchestrator."""

__version__ = "0.1.0"
