"""AT command queueing, response reading and parsing for cellular modems."""

__version__ = "0.1.0"
__all__ = ["commands", "queue", "parse", "reader", "enqueue", "control"]