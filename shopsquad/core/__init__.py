"""Core module for the shopsquad application."""

from .types import FirestoreDocument, Timestamp

__all__ = ["FirestoreDocument", "Timestamp"]
