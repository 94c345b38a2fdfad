"""
Runtime Orchestration Module

WHAT: Runtime subsystem for the memory-augmented chat agent
WHERE: agentic/runtime/ - orchestration layer above storage and the model client
WHO: Web and console front ends running conversation turns
TIME: Turn latency dominated by the completion endpoint

Provides the execution layer for conversations: prompt assembly with memory
injection, the bounded tool-call loop, and session lifecycle management.
"""

__all__ = ["memory"]
