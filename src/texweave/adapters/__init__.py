"""Adapters bridging texweave to external tools."""
