"""DocFX project discovery and content enumeration."""
