"""Primary-key lookups shared by every repository."""

from typing import Generic, Optional, Type, TypeVar

from sqlalchemy.orm import Session

from ..database import Base
from ..exceptions import ArtigovException

ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository(Generic[ModelT]):
    """Subclasses set ``model_class`` and the ``not_found_error`` raised on a miss."""

    model_class: Type[ModelT]
    not_found_error: Type[ArtigovException]

    def __init__(self, db: Session):
        self.db = db

    def get_by_id_optional(self, entity_id: str) -> Optional[ModelT]:
        return self.db.get(self.model_class, entity_id)

    def get_by_id(self, entity_id: str) -> ModelT:
        entity = self.db.get(self.model_class, entity_id)
        if entity is None:
            raise self.not_found_error(entity_id)
        return entity

    def get_for_update(self, entity_id: str) -> ModelT:
        """Like ``get_by_id`` but re-reads the row under ``SELECT ... FOR UPDATE``.

        SQLite has no row locks; there the database-wide write lock taken by
        the first write in the transaction serialises writers instead.
        """
        entity = self.db.get(
            self.model_class, entity_id, with_for_update=True, populate_existing=True
        )
        if entity is None:
            raise self.not_found_error(entity_id)
        return entity
