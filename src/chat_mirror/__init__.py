"""Browser mirror of a WhatsApp bot conversation."""

__version__ = "0.1.0"
