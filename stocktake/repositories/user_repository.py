from typing import Optional

from sqlalchemy.orm import Session

from stocktake.repositories.base import BaseRepository
from stocktake.models.user import User


class UserRepository(BaseRepository[User]):

    def __init__(self, db: Session):
        super().__init__(User, db)

    def get_active(self, user_id: int) -> Optional[User]:
        return (
            self.db.query(User)
            .filter(User.id == user_id, User.is_active.is_(True))
            .first()
        )
