"""
Memorial Template Domain Model (``funeral_modules.memorial.models``).

Responsibility
--------------
Versioned print templates for service programs, prayer cards, bookmarks,
acknowledgement cards and memorial folders.  A template is either a system
template (no funeral home, offered to all) or a custom template owned by one
funeral home.

Invariants enforced
-------------------
* HTML content is required and must be a valid jinja2 template.
* CSS never contains a closing </style> tag.
* Margins lie in [0, 2] inches; print quality is 150, 300 or 600 DPI.
* Content changes produce a new version; deprecated templates do not change.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from jinja2 import TemplateSyntaxError, meta
from jinja2.sandbox import SandboxedEnvironment

from funeral_kernel.domain.temporal import new_business_key, next_version
from funeral_kernel.exceptions import BusinessRuleViolationError, ValidationError
from funeral_modules.memorial.workflows import MEMORIAL_TEMPLATE_WORKFLOW

MAX_MARGIN_INCHES = Decimal("2")
PRINT_QUALITIES = (150, 300, 600)

# (width, height) in inches, portrait
PAGE_SIZES_INCHES: dict[str, tuple[Decimal, Decimal]] = {
    "letter": (Decimal("8.5"), Decimal("11")),
    "a4": (Decimal("8.27"), Decimal("11.69")),
    "legal": (Decimal("8.5"), Decimal("14")),
    "4x6": (Decimal("4"), Decimal("6")),
    "5x7": (Decimal("5"), Decimal("7")),
}

_PARSER = SandboxedEnvironment()


class TemplateCategory(str, Enum):
    SERVICE_PROGRAM = "service_program"
    PRAYER_CARD = "prayer_card"
    BOOKMARK = "bookmark"
    ACKNOWLEDGEMENT_CARD = "acknowledgement_card"
    MEMORIAL_FOLDER = "memorial_folder"


CATEGORY_DISPLAY_NAMES = {
    TemplateCategory.SERVICE_PROGRAM: "Service Program",
    TemplateCategory.PRAYER_CARD: "Prayer Card",
    TemplateCategory.BOOKMARK: "Memorial Bookmark",
    TemplateCategory.ACKNOWLEDGEMENT_CARD: "Acknowledgement Card",
    TemplateCategory.MEMORIAL_FOLDER: "Memorial Folder",
}


class TemplateStatus(str, Enum):
    """Must align with ``workflows.MEMORIAL_TEMPLATE_WORKFLOW.states``."""
    DRAFT = "draft"
    ACTIVE = "active"
    DEPRECATED = "deprecated"


class Orientation(str, Enum):
    PORTRAIT = "portrait"
    LANDSCAPE = "landscape"


@dataclass(frozen=True)
class TemplateSettings:
    page_size: str = "letter"
    orientation: Orientation = Orientation.PORTRAIT
    margin_top: Decimal = Decimal("0.5")
    margin_right: Decimal = Decimal("0.5")
    margin_bottom: Decimal = Decimal("0.5")
    margin_left: Decimal = Decimal("0.5")
    print_quality: int = 300

    def __post_init__(self) -> None:
        if self.page_size not in PAGE_SIZES_INCHES:
            raise ValidationError(f"Unknown page size: {self.page_size}", field="page_size")
        object.__setattr__(self, "orientation", Orientation(self.orientation))
        for side in ("top", "right", "bottom", "left"):
            name = f"margin_{side}"
            value = Decimal(str(getattr(self, name)))
            if not 0 <= value <= MAX_MARGIN_INCHES:
                raise ValidationError(
                    f"{side.capitalize()} margin must be between 0 and 2 inches", field=name,
                )
            object.__setattr__(self, name, value)
        if self.print_quality not in PRINT_QUALITIES:
            raise ValidationError(
                f"Print quality must be one of {PRINT_QUALITIES}", field="print_quality",
            )

    def to_dict(self) -> dict[str, Any]:
        return {
            "page_size": self.page_size,
            "orientation": self.orientation.value,
            "margin_top": str(self.margin_top),
            "margin_right": str(self.margin_right),
            "margin_bottom": str(self.margin_bottom),
            "margin_left": str(self.margin_left),
            "print_quality": self.print_quality,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TemplateSettings:
        return cls(**data)


def _validate_html(html: str) -> None:
    if not html or not html.strip():
        raise ValidationError("Template must have HTML content", field="html_template")
    try:
        _PARSER.parse(html)
    except TemplateSyntaxError as exc:
        raise ValidationError(
            f"Template HTML is not valid: {exc.message} (line {exc.lineno})",
            field="html_template",
        ) from exc


def _validate_css(css: str) -> None:
    # Rendered inside a <style> element; a closing tag would end it early.
    if "</style" in css.lower():
        raise ValidationError("CSS must not contain a </style> tag", field="css_styles")


@dataclass(frozen=True)
class MemorialTemplate:
    business_key: str
    name: str
    category: TemplateCategory
    status: TemplateStatus
    html_template: str
    created_by: str
    css_styles: str = ""
    preview_image_url: str | None = None
    settings: TemplateSettings = field(default_factory=TemplateSettings)
    funeral_home_id: str | None = None
    change_reason: str | None = None
    version: int = 1
    created_at: datetime | None = None
    id: UUID | None = None

    @classmethod
    def create(
        cls,
        name: str,
        category: TemplateCategory,
        html_template: str,
        created_by: str,
        css_styles: str = "",
        settings: TemplateSettings | None = None,
        funeral_home_id: str | None = None,
        preview_image_url: str | None = None,
        business_key: str | None = None,
    ) -> MemorialTemplate:
        if not name or not name.strip():
            raise ValidationError("Template name is required", field="name")
        _validate_html(html_template)
        _validate_css(css_styles)
        return cls(
            business_key=business_key or new_business_key(),
            name=name.strip(),
            category=TemplateCategory(category),
            status=TemplateStatus(MEMORIAL_TEMPLATE_WORKFLOW.initial_state),
            html_template=html_template,
            css_styles=css_styles,
            preview_image_url=preview_image_url,
            settings=settings or TemplateSettings(),
            funeral_home_id=funeral_home_id,
            created_by=created_by,
        )

    def create_new_version(
        self,
        html_template: str,
        css_styles: str,
        settings: TemplateSettings | None = None,
        change_reason: str | None = None,
        preview_image_url: str | None = None,
    ) -> MemorialTemplate:
        if self.status is TemplateStatus.DEPRECATED:
            raise BusinessRuleViolationError(
                "Deprecated templates cannot be changed", rule="deprecated_template_frozen",
            )
        _validate_html(html_template)
        _validate_css(css_styles)
        return next_version(
            self,
            html_template=html_template,
            css_styles=css_styles,
            settings=settings or self.settings,
            change_reason=change_reason,
            preview_image_url=preview_image_url or self.preview_image_url,
        )

    def transition_status(self, new_status: TemplateStatus, change_reason: str | None = None) -> MemorialTemplate:
        MEMORIAL_TEMPLATE_WORKFLOW.require_transition(
            "MemorialTemplate", self.status.value, TemplateStatus(new_status).value,
        )
        return next_version(self, status=TemplateStatus(new_status), change_reason=change_reason)

    def activate(self) -> MemorialTemplate:
        return self.transition_status(TemplateStatus.ACTIVE)

    def deprecate(self, reason: str | None = None) -> MemorialTemplate:
        return self.transition_status(TemplateStatus.DEPRECATED, reason)

    @property
    def is_active(self) -> bool:
        return self.status is TemplateStatus.ACTIVE

    @property
    def is_available_for_use(self) -> bool:
        return self.status is not TemplateStatus.DEPRECATED

    @property
    def is_system_template(self) -> bool:
        return self.funeral_home_id is None

    @property
    def is_custom_template(self) -> bool:
        return not self.is_system_template

    @property
    def category_display_name(self) -> str:
        return CATEGORY_DISPLAY_NAMES[self.category]

    def is_visible_to_funeral_home(self, funeral_home_id: str) -> bool:
        return self.is_system_template or self.funeral_home_id == funeral_home_id

    def page_dimensions(self) -> tuple[int, int]:
        """(width, height) in pixels at the template's print quality."""
        width, height = PAGE_SIZES_INCHES[self.settings.page_size]
        if self.settings.orientation is Orientation.LANDSCAPE:
            width, height = height, width
        dpi = self.settings.print_quality
        return _to_pixels(width, dpi), _to_pixels(height, dpi)

    def template_variables(self) -> list[str]:
        """Sorted names of the variables the template reads from its context."""
        return sorted(meta.find_undeclared_variables(_PARSER.parse(self.html_template)))


@dataclass(frozen=True)
class RenderedDocument:
    template_key: str
    template_version: int
    html: str
    page_width_px: int
    page_height_px: int


def _to_pixels(inches: Decimal, dpi: int) -> int:
    return int((inches * dpi).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
