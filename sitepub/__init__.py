"""sitepub: publish versioned static-site content with preview and rollback."""

__version__ = "0.1.0"
