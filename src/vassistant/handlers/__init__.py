from . import expenses, groups, health, messages

__all__ = ["expenses", "groups", "health", "messages"]
