"""
Coach Service
Coach directory reads and once-per-user ratings
"""

from typing import List, Optional
import logging

from pydantic import ValidationError

from app.models.coach import Coach

logger = logging.getLogger(__name__)


class CoachNotFound(Exception):
    pass


class AlreadyRated(Exception):
    pass


class CoachService:
    """Pass-through access to coach records in the document store"""

    def __init__(
        self,
        document_store,
        coaches_collection: str = "coaches",
        rating_history_collection: str = "rating_history",
    ):
        self.document_store = document_store
        self.coaches_collection = coaches_collection
        self.rating_history_collection = rating_history_collection

    async def list_coaches(self) -> List[Coach]:
        documents = await self.document_store.list_documents(self.coaches_collection)
        coaches = []
        for document in documents:
            try:
                coaches.append(Coach.model_validate(document))
            except ValidationError as e:
                logger.warning(f"Skipping malformed coach record {document.get('id')}: {e}")
        return coaches

    async def get_coach(self, coach_id: str) -> Optional[Coach]:
        document = await self.document_store.get_document(self.coaches_collection, coach_id)
        if document is None:
            return None
        return Coach.model_validate(document)

    async def rate_coach(self, uid: str, coach_id: str, rating: int) -> Coach:
        """
        Record a rating from uid for coach_id

        Raises:
            CoachNotFound: no such coach
            AlreadyRated: uid has already rated this coach
        """
        coach = await self.get_coach(coach_id)
        if coach is None:
            raise CoachNotFound(coach_id)

        history = await self.document_store.get_document(self.rating_history_collection, uid) or {}
        rated = list(history.get("coach_ids") or [])
        if coach_id in rated:
            raise AlreadyRated(coach_id)

        updated = coach.model_copy(update={"ratings": coach.ratings + [rating]})
        await self.document_store.set_document(
            self.coaches_collection, coach_id, updated.model_dump(exclude={"id"})
        )
        rated.append(coach_id)
        await self.document_store.set_document(
            self.rating_history_collection, uid, {"coach_ids": rated}
        )

        logger.info(f"User {uid} rated coach {coach_id}: {rating}")
        return updated
