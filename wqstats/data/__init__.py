"""Sample sources and DataFrame adapters."""
