"""
t0ggles node — workflow-automation adapter for the t0ggles task-management API.

Exposes tasks (create, update, list) and task dependencies (create, list,
delete) as node operations. Parameters come from the host per input item,
are mapped to t0ggles JSON payloads and sent as one authenticated request.
"""

__version__ = "1.0.0"
__all__ = ["engine", "mapping", "node", "utilities"]
