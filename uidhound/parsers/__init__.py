"""Topic extraction from markdown and managed reference YAML."""
