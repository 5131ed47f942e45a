"""
Backend TrustScore: reputation engine for community platform members.

Turns behavioural signal snapshots into a trust score, derives tiers, hidden
overflow benefits, access restrictions and recovery plans, and serves them
through a small cached query surface. Modular layout: scoring pipeline,
orchestrator, persistence adapter, API server.
"""

__version__ = "0.1.0"
