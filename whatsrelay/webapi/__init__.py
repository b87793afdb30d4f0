from .app import RELAY_KEY, create_app, start_web

__all__ = ["RELAY_KEY", "create_app", "start_web"]
