"""Adapters connecting the core to HTTP frameworks, config files and query clients."""
