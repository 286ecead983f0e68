"""
Adapters package for the Comics Service.

Contains the HTTP client wrapper for the xkcd provider. The adapter
encapsulates:

- Base URL and endpoint shapes
- Retry policy for transport failures
- Error classification that maps to shared errors

Keep adapters thin and side-effect free outside of explicit calls.
"""

from .xkcd_client import XkcdClient

__all__ = ["XkcdClient"]
