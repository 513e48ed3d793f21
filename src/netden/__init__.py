"""NetDen — conversational agent core for the NetDen productivity workspace."""

__version__ = "1.0.0"
