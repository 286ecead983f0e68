"""
Comic domain layer for the Comics Service.
"""

from .models import Comic, SearchResult, normalize_comic
from .service import ComicService

__all__ = ["Comic", "ComicService", "SearchResult", "normalize_comic"]
