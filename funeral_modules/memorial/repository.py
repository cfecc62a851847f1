"""Memorial template repository."""

from sqlalchemy import or_

from funeral_kernel.db.scd2 import SCD2Repository
from funeral_modules.memorial.models import MemorialTemplate, TemplateCategory
from funeral_modules.memorial.orm import MemorialTemplateModel


class MemorialTemplateRepository(SCD2Repository[MemorialTemplateModel, MemorialTemplate]):
    model = MemorialTemplateModel
    entity_type = "MemorialTemplate"

    def find_visible(
        self,
        funeral_home_id: str,
        category: TemplateCategory | None = None,
    ) -> list[MemorialTemplate]:
        """System templates plus the funeral home's own, ordered by name."""
        criteria = [
            or_(
                MemorialTemplateModel.funeral_home_id.is_(None),
                MemorialTemplateModel.funeral_home_id == funeral_home_id,
            ),
        ]
        if category is not None:
            criteria.append(MemorialTemplateModel.category == TemplateCategory(category).value)
        return self.find_current(*criteria, order_by=MemorialTemplateModel.name)
