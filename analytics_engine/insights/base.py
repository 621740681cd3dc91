"""
Shared plumbing for the read-side services.
"""

from typing import Any, Dict, Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from analytics_engine.config import AnalyticsSettings, get_settings
from analytics_engine.database import queries
from analytics_engine.database.models import Business
from analytics_engine.errors import NotFoundError
from analytics_engine.insights.fanout import ReadFn, run_reads

logger = structlog.get_logger(__name__)


class InsightService:
    """
    Base class for services that read collaborator records.

    Holds the session factory and analytics settings, resolves businesses
    before any aggregate query runs and fans reads out concurrently.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        settings: Optional[AnalyticsSettings] = None,
    ):
        self.session_factory = session_factory
        self.settings = settings or get_settings().analytics

    async def require_business(self, business_id: str, with_relations: bool = False) -> Business:
        """
        Load a business or fail before any other work is done.

        Raises:
            NotFoundError: If no business has this id
        """
        async with self.session_factory() as session:
            business = await queries.fetch_business(session, business_id, with_relations=with_relations)

        if business is None:
            logger.info("Business not found", business_id=business_id)
            raise NotFoundError.business(business_id)
        return business

    async def read_all(self, operation: str, reads: Dict[str, ReadFn]) -> Dict[str, Any]:
        return await run_reads(self.session_factory, operation, reads)
