"""
Memorial Service (``funeral_modules.memorial.service``).

Responsibility
--------------
Template maintenance for memorial print products and rendering of a
template into a print-ready HTML document.

Rendering
---------
Templates are jinja2 source evaluated in a sandboxed environment with
``StrictUndefined``: a variable the caller did not supply is reported as a
``ValidationError`` rather than rendered as an empty string.  Supplied
values are HTML-escaped.  The template's CSS is inlined in a ``<style>``
block so the document renders without external assets.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from jinja2 import StrictUndefined, TemplateError, UndefinedError
from jinja2.sandbox import SandboxedEnvironment
from sqlalchemy.orm import Session

from funeral_kernel.domain.clock import Clock, SystemClock
from funeral_kernel.exceptions import BusinessRuleViolationError, ValidationError
from funeral_kernel.logging_config import get_logger
from funeral_modules._unit_of_work import unit_of_work
from funeral_modules.memorial.models import (
    MemorialTemplate,
    RenderedDocument,
    TemplateCategory,
    TemplateSettings,
)
from funeral_modules.memorial.repository import MemorialTemplateRepository

logger = get_logger("modules.memorial.service")


class MemorialService:
    """Maintain memorial templates and render documents from them."""

    def __init__(self, session: Session, clock: Clock | None = None):
        self._session = session
        self._clock = clock or SystemClock()
        self._templates = MemorialTemplateRepository(session, self._clock)
        self._env = SandboxedEnvironment(autoescape=True, undefined=StrictUndefined)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_template(self, business_key: str) -> MemorialTemplate:
        return self._templates.get_current(business_key)

    def get_template_history(self, business_key: str) -> list[MemorialTemplate]:
        return self._templates.find_history(business_key)

    def list_templates(
        self,
        funeral_home_id: str,
        category: TemplateCategory | None = None,
        include_deprecated: bool = False,
    ) -> list[MemorialTemplate]:
        templates = self._templates.find_visible(funeral_home_id, category)
        if include_deprecated:
            return templates
        return [t for t in templates if t.is_available_for_use]

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def create_template(
        self,
        name: str,
        category: TemplateCategory,
        html_template: str,
        actor_id: str,
        css_styles: str = "",
        settings: TemplateSettings | None = None,
        funeral_home_id: str | None = None,
        preview_image_url: str | None = None,
    ) -> MemorialTemplate:
        template = MemorialTemplate.create(
            name=name,
            category=category,
            html_template=html_template,
            created_by=actor_id,
            css_styles=css_styles,
            settings=settings,
            funeral_home_id=funeral_home_id,
            preview_image_url=preview_image_url,
        )
        with unit_of_work(self._session, "create_template"):
            saved = self._templates.save(template, actor_id)
        logger.info("memorial_template_created", extra={
            "template_id": saved.business_key,
            "category": saved.category.value,
            "funeral_home_id": funeral_home_id,
            "system_template": saved.is_system_template,
        })
        return saved

    def update_template_content(
        self,
        business_key: str,
        html_template: str,
        css_styles: str,
        actor_id: str,
        settings: TemplateSettings | None = None,
        change_reason: str | None = None,
    ) -> MemorialTemplate:
        return self._apply(
            business_key, actor_id, "memorial_template_content_updated",
            lambda t: t.create_new_version(html_template, css_styles, settings, change_reason),
        )

    def activate_template(self, business_key: str, actor_id: str) -> MemorialTemplate:
        return self._apply(
            business_key, actor_id, "memorial_template_activated", MemorialTemplate.activate,
        )

    def deprecate_template(
        self,
        business_key: str,
        actor_id: str,
        reason: str | None = None,
    ) -> MemorialTemplate:
        return self._apply(
            business_key, actor_id, "memorial_template_deprecated",
            lambda t: t.deprecate(reason),
        )

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def render_document(self, template_key: str, data: Mapping[str, Any]) -> RenderedDocument:
        template = self._templates.get_current(template_key)
        if not template.is_active:
            raise BusinessRuleViolationError(
                f"Template {template_key} is {template.status.value}; only active templates render",
                rule="active_template_required",
            )

        try:
            body = self._env.from_string(template.html_template).render(**data)
        except UndefinedError as exc:
            raise ValidationError(
                f"Missing template data: {exc.message}", field="data",
            ) from exc
        except TemplateError as exc:
            raise ValidationError(
                f"Template could not be rendered: {exc.message}", field="html_template",
            ) from exc

        width, height = template.page_dimensions()
        document = RenderedDocument(
            template_key=template.business_key,
            template_version=template.version,
            html=_inline_css(body, template.css_styles),
            page_width_px=width,
            page_height_px=height,
        )
        logger.info("memorial_document_rendered", extra={
            "template_id": template.business_key,
            "template_version": template.version,
            "category": template.category.value,
            "page_width_px": width,
            "page_height_px": height,
        })
        return document

    def _apply(
        self,
        business_key: str,
        actor_id: str,
        event: str,
        change: Callable[[MemorialTemplate], MemorialTemplate],
    ) -> MemorialTemplate:
        with unit_of_work(self._session, event):
            updated = change(self._templates.get_current(business_key))
            saved = self._templates.save(updated, actor_id)
        logger.info(event, extra={
            "template_id": business_key,
            "version": saved.version,
            "status": saved.status.value,
        })
        return saved


def _inline_css(html: str, css: str) -> str:
    if not css.strip():
        return html
    style = f"<style>\n{css}\n</style>"
    head_end = html.find("</head>")
    if head_end == -1:
        return f"{style}\n{html}"
    return f"{html[:head_end]}{style}\n{html[head_end:]}"
