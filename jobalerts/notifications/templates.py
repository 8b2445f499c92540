"""Template rendering for email notifications using Jinja2.

Each notification kind has three templates in the email_templates package
directory: ``<template_id>_subject.j2``, ``<template_id>_body.html.j2`` and
``<template_id>_body.txt.j2``. Only the HTML body is autoescaped.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Mapping, Optional

from jinja2 import Environment, PackageLoader, StrictUndefined, TemplateError, select_autoescape

from jobalerts.utils.text import format_date, format_location, format_salary

from .models import NotificationTemplateError, RenderedEmail

logger = logging.getLogger(__name__)

COMPANY_JOB_ALERT = "company_job_alert"
CUSTOM_JOB_ALERT = "custom_job_alert"
BATCH_JOB_ALERT = "batch_job_alert"

TEMPLATE_IDS = (COMPANY_JOB_ALERT, CUSTOM_JOB_ALERT, BATCH_JOB_ALERT)


def _salary_filter(salary: Optional[Mapping[str, Any]]) -> str:
    salary = salary or {}
    return format_salary(
        salary.get("min"),
        salary.get("max"),
        salary.get("currency") or "USD",
        salary.get("period") or "yearly",
    )


def _location_filter(location: Optional[Mapping[str, Any]]) -> str:
    location = location or {}
    return format_location(location.get("type"), location.get("city"), location.get("country"))


def _date_filter(value: Optional[datetime]) -> str:
    return format_date(value)


def _capitalize_filter(value: Optional[str]) -> str:
    """Upper-case the first character only, leaving the rest untouched."""
    if not value:
        return ""
    return value[0].upper() + value[1:]


class TemplateRenderer:
    """Renders email templates using Jinja2.

    Templates are loaded from the jobalerts.notifications.email_templates
    package directory and cached by Jinja2 after first use. Missing context
    variables raise instead of rendering as empty strings.
    """

    def __init__(self, template_dir: str = "email_templates"):
        self.env = Environment(
            loader=PackageLoader("jobalerts.notifications", template_dir),
            autoescape=select_autoescape(
                enabled_extensions=("html.j2",), default_for_string=False, default=False
            ),
            undefined=StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.env.filters["format_salary"] = _salary_filter
        self.env.filters["format_location"] = _location_filter
        self.env.filters["format_date"] = _date_filter
        self.env.filters["capitalize"] = _capitalize_filter

        logger.debug(f"Initialized TemplateRenderer with templates from {template_dir}")

    def render(self, template_id: str, context: Dict[str, Any]) -> RenderedEmail:
        """Render the subject and both bodies of one notification kind.

        Args:
            template_id: One of TEMPLATE_IDS
            context: Template variables

        Returns:
            RenderedEmail with a single-line subject

        Raises:
            NotificationTemplateError: If the template is unknown or rendering fails
        """
        if template_id not in TEMPLATE_IDS:
            raise NotificationTemplateError(f"Unknown template id: {template_id}")

        try:
            subject = self.env.get_template(f"{template_id}_subject.j2").render(context)
            html_body = self.env.get_template(f"{template_id}_body.html.j2").render(context)
            text_body = self.env.get_template(f"{template_id}_body.txt.j2").render(context)
        except TemplateError as e:
            error_msg = f"Template rendering failed for {template_id}: {e}"
            logger.error(error_msg, exc_info=True)
            raise NotificationTemplateError(error_msg) from e

        return RenderedEmail(
            subject=" ".join(subject.split()),
            html_body=html_body,
            text_body=text_body,
        )
