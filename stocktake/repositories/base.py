"""
Base Repository — Repository Pattern (GoF)

Generic CRUD over one mapped class. Writes commit by default; pass
``commit=False`` to enlist the change in a larger unit of work owned by the
calling service.
"""
from typing import Any, Dict, Generic, List, Optional, Tuple, Type, TypeVar

from sqlalchemy.orm import Session

from stocktake.database import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):

    def __init__(self, model: Type[ModelType], db: Session):
        self.model = model
        self.db = db

    def get_by_id(self, entity_id: int) -> Optional[ModelType]:
        return self.db.get(self.model, entity_id)

    def list_paginated(self, page: int = 1, page_size: int = 20, **filters) -> Tuple[List[ModelType], int]:
        q = self.db.query(self.model)
        for attr, value in filters.items():
            if value is not None:
                q = q.filter(getattr(self.model, attr) == value)
        total = q.count()
        items = (
            q.order_by(self.model.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return items, total

    def create(self, obj: ModelType, commit: bool = True) -> ModelType:
        self.db.add(obj)
        if commit:
            self.db.commit()
            self.db.refresh(obj)
        else:
            self.db.flush()
        return obj

    def update(self, obj: ModelType, updates: Dict[str, Any], commit: bool = True) -> ModelType:
        for field, value in updates.items():
            setattr(obj, field, value)
        if commit:
            self.db.commit()
            self.db.refresh(obj)
        else:
            self.db.flush()
        return obj

    def delete(self, obj: ModelType, commit: bool = True) -> None:
        self.db.delete(obj)
        if commit:
            self.db.commit()
