"""
t0ggles Engine — config, credentials, logging, request dispatch and routing.

Submodules are imported directly (t0ggles_node.engine.router etc.); the mapping
layer depends on engine.errors, so nothing is re-exported here.
"""

__all__ = ["config", "context", "credentials", "dispatcher", "errors", "logging", "router"]
