"""Access control and ordered-collection engine for kanban boards."""

__version__ = "0.1.0"
