"""Document presets shipped with texweave."""
