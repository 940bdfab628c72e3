"""
Autonomous vote worker for governance agents.

Discovers eligible voting agents and active proposals, runs each pair through
an AI-gated decision engine, submits signed on-chain votes and keeps an
idempotent outcome record per (agent, proposal).
"""

__all__ = [
]
