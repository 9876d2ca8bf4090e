"""
API Module
"""
from .main import app, create_app
from .middleware import RequestLoggingMiddleware

__all__ = [
    "app",
    "create_app",
    "RequestLoggingMiddleware",
]
