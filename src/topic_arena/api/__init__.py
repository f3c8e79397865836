from .app import NotFoundError, create_app, parse_items

__all__ = ["NotFoundError", "create_app", "parse_items"]
