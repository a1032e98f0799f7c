"""ORM models package."""
from .base import Base
from .candidate import Candidate
from .voter import Voter

__all__ = ["Base", "Candidate", "Voter"]
