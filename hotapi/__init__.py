"""Hot-reloadable, versioned API interface registry."""

__version__ = "0.1.0"
