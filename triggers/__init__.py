"""
Triggers Package.

Azure Functions HTTP trigger implementations.

HTTP Endpoints:
    /api/granules: list and bulk
    /api/granules/{granuleId}: get, actions, delete

Exports:
    BaseHttpTrigger: Base class for HTTP triggers
"""

# Only import the base class; the granules module pulls in services
from .http_base import BaseHttpTrigger

__all__ = [
    'BaseHttpTrigger',
]
