"""
Memorial Module (``funeral_modules.memorial``).

Versioned print templates (service programs, prayer cards, bookmarks, ...)
and rendering of those templates into print-ready documents.
"""

from funeral_modules.memorial.models import (
    MemorialTemplate,
    Orientation,
    RenderedDocument,
    TemplateCategory,
    TemplateSettings,
    TemplateStatus,
)
from funeral_modules.memorial.repository import MemorialTemplateRepository
from funeral_modules.memorial.service import MemorialService
from funeral_modules.memorial.workflows import MEMORIAL_TEMPLATE_WORKFLOW

__all__ = [
    "MEMORIAL_TEMPLATE_WORKFLOW",
    "MemorialService",
    "MemorialTemplate",
    "MemorialTemplateRepository",
    "Orientation",
    "RenderedDocument",
    "TemplateCategory",
    "TemplateSettings",
    "TemplateStatus",
]
