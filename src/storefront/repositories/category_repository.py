from typing import List, Optional

from sqlalchemy import select

from storefront.models.product import Category
from storefront.repositories.base import BaseRepository


class CategoryRepository(BaseRepository[Category]):
    """Category tree lookups"""

    @property
    def model(self):
        return Category

    def get_by_slug(self, slug: str) -> Optional[Category]:
        return self.scalar(select(Category).where(Category.slug == slug))

    def roots(self) -> List[Category]:
        """Top-level categories, by name"""
        return self.scalars(select(Category).where(Category.parent_id.is_(None)).order_by(Category.name))

    def siblings(self, category: Category) -> List[Category]:
        """Other categories under the same parent, by name; other roots for a root"""
        if category.parent is None:
            return [c for c in self.roots() if c.id != category.id]
        return sorted((c for c in category.parent.children if c.id != category.id), key=lambda c: c.name)
