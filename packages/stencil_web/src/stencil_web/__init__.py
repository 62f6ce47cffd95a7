from .app import StencilApp, create_app

__all__ = ["StencilApp", "create_app"]
