"""dockhand: консоль для управления ресурсами Docker."""

__version__ = "0.3.0"
