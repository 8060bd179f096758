"""
AgentHQ CLI - Three-layer client for the AgentHQ hub.

Layers:
- core: Config store, envelope types and HTTP client
- sdk: High-level AgentHQClient with per-resource operations
- cli: Opinionated command-line interface
"""

from agenthq_cli.sdk import AgentHQClient

__version__ = "0.1.0"
__all__ = ["AgentHQClient"]
