from app.models.models import Base, Roast, User

__all__ = [
    "Base",
    "User",
    "Roast",
]
