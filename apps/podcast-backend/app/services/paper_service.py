import logging

from app.core.errors import PaperNotFoundError, PaperStateError
from app.services.contracts import DatabaseServiceProtocol
from app.services.conversation_models import Paper

logger = logging.getLogger(__name__)

SELECTED_STATUS = "SELECTED"


class PaperService:
    """Read access to discovered papers and their lifecycle state."""

    def __init__(self, database: DatabaseServiceProtocol) -> None:
        self._database = database

    async def get_paper(self, paper_id: str) -> Paper | None:
        row = await self._database.fetchrow(
            "SELECT id::text AS id, title, status FROM papers WHERE id = $1::uuid",
            paper_id,
        )
        if row is None:
            logger.debug("paper lookup returned no rows", extra={"paper_id": paper_id})
            return None
        return Paper(id=row["id"], title=row["title"], status=row["status"])

    async def get_selected_paper(self, paper_id: str) -> Paper:
        paper = await self.get_paper(paper_id)
        if paper is None:
            raise PaperNotFoundError(paper_id)
        if paper.status.upper() != SELECTED_STATUS:
            logger.info("paper not in selected state", extra={"paper_id": paper_id, "status": paper.status})
            raise PaperStateError(paper_id, paper.status)
        return paper
