from sqlalchemy.ext.asyncio import AsyncSession

from src.utils.logger import get_logger


class BaseService:
    """Base class for services working on one request-scoped session.

    Public service methods own their transaction and commit before
    returning. Helpers documented as "does not commit" leave that to the
    caller so several writes land atomically.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.logger = get_logger(self.__class__.__name__)
