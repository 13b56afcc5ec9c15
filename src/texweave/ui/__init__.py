"""User interfaces built on top of the texweave API."""
