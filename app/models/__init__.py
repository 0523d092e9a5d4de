"""
Database models
All SQLAlchemy models should be defined here or imported here
"""

from app.core.database import Base
from app.models.review import Review, ReviewStats
from app.models.server import Server
from app.models.vote import Vote, VoteCounts, VoteType

__all__ = [
    "Base",
    "Review",
    "ReviewStats",
    "Server",
    "Vote",
    "VoteCounts",
    "VoteType",
]
