"""Data access layer. Repositories flush; services own commits."""

from .base_repository import BaseRepository
from .factory import RepositoryFactory

__all__ = ["BaseRepository", "RepositoryFactory"]
