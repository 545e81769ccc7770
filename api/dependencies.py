"""FastAPI dependencies for dependency injection."""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.services.notifications import NotificationService, get_notification_service
from database.engine import get_db
from database.repository import HiringRepository


async def get_repository(db: AsyncSession = Depends(get_db)) -> HiringRepository:
    """Repository bound to the request's database session."""
    return HiringRepository(db)


def get_notifier() -> NotificationService:
    """Notification service; overridden in tests."""
    return get_notification_service()
