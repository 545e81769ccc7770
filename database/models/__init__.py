from database.models.users import User, UserRole
from database.models.positions import Position, Question
from database.models.applications import Answer, Application

__all__ = [
    "Answer",
    "Application",
    "Position",
    "Question",
    "User",
    "UserRole",
]
