"""Result cache keyed by file path and content fingerprint."""

from .models import Base, Categorization
from .result_cache import ResultCache

__all__ = ["Base", "Categorization", "ResultCache"]
