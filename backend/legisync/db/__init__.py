# Database configuration and session management
from .base import Base

__all__ = ["Base"]
