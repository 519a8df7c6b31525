"""libgitlet: a small content-addressed version-control engine."""

from .objects import Blob, Commit

__all__ = ['Blob', 'Commit']

__version__ = '0.1.0'
