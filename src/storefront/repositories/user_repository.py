from typing import Optional

from sqlalchemy import select

from storefront.models.user import User
from storefront.repositories.base import BaseRepository
from storefront.utils.validators import ValidationUtils


class UserRepository(BaseRepository[User]):

    @property
    def model(self):
        return User

    def get_by_email(self, email: str) -> Optional[User]:
        return self.scalar(select(User).where(User.email == ValidationUtils.normalize_email(email)))
