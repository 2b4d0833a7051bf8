"""did_registry.server — HTTP surface over the registry services."""
from __future__ import annotations

from did_registry.server.app import create_server, run_server
from did_registry.server.routes import RegistryRoutes

__all__ = ["RegistryRoutes", "create_server", "run_server"]
