"""wagate: HTTP control surface over a WhatsApp Web session."""

__version__ = "0.1.0"
