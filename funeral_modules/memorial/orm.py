"""
Memorial Template ORM Model (``funeral_modules.memorial.orm``).

Print settings are stored as one JSON document per version.
"""

from typing import Any

from sqlalchemy import JSON, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from funeral_kernel.db.base import TemporalBase, temporal_table_args


class MemorialTemplateModel(TemporalBase):
    """ORM model for memorial template versions."""

    __tablename__ = "memorial_templates"

    __table_args__ = temporal_table_args(
        "memorial_templates",
        Index("idx_memorial_templates_category_current", "category", "is_current"),
        Index("idx_memorial_templates_funeral_home", "funeral_home_id"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(String(30), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    funeral_home_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    html_template: Mapped[str] = mapped_column(Text, nullable=False)
    css_styles: Mapped[str] = mapped_column(Text, nullable=False, default="")
    preview_image_url: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    settings: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    change_reason: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    def to_dto(self):
        from funeral_modules.memorial.models import (
            MemorialTemplate,
            TemplateCategory,
            TemplateSettings,
            TemplateStatus,
        )

        return MemorialTemplate(
            id=self.id,
            business_key=self.business_key,
            version=self.version,
            created_at=self.created_at,
            created_by=self.created_by,
            name=self.name,
            category=TemplateCategory(self.category),
            status=TemplateStatus(self.status),
            funeral_home_id=self.funeral_home_id,
            html_template=self.html_template,
            css_styles=self.css_styles or "",
            preview_image_url=self.preview_image_url,
            settings=TemplateSettings.from_dict(self.settings),
            change_reason=self.change_reason,
        )

    @classmethod
    def from_dto(cls, dto) -> "MemorialTemplateModel":
        return cls(
            name=dto.name,
            category=dto.category.value,
            status=dto.status.value,
            funeral_home_id=dto.funeral_home_id,
            html_template=dto.html_template,
            css_styles=dto.css_styles,
            preview_image_url=dto.preview_image_url,
            settings=dto.settings.to_dict(),
            change_reason=dto.change_reason,
        )

    def __repr__(self) -> str:
        return f"<MemorialTemplateModel {self.business_key} v{self.version} {self.name}>"
