"""did_registry.cli — command-line interface."""
