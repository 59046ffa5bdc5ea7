"""Backend for the vassistant chat assistant and expense splitter."""

__version__ = "0.1.0"
