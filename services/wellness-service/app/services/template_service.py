"""
Template Service
Renders the welcome and feedback emails from Jinja2 files in app/templates
"""

import html
import re
import logging
from pathlib import Path
from typing import Dict, Any, Optional
from datetime import datetime

from jinja2 import Environment, FileSystemLoader, TemplateNotFound, select_autoescape

from app.utils.config import get_app_config

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"

# Subject lines are rendered without autoescaping
SUBJECT_TEMPLATES = {
    "welcome": "Welcome to {{ platform_name }}!",
    "feedback": "[User Feedback] {{ subject }}",
}

_BLOCK_TAGS = re.compile(r'<br\s*/?>|</?(p|div|h[1-6]|tr)\b[^>]*>', re.IGNORECASE)
_ANY_TAG = re.compile(r'<[^>]+>')
_BLANK_LINES = re.compile(r'\n[ \t]*(\n[ \t]*)+')


class TemplateService:
    """File-based email templates: <name>.html, optional <name>.txt"""

    def __init__(self, templates_dir: Optional[str] = None):
        app_config = get_app_config()
        self.templates_dir = Path(templates_dir) if templates_dir else TEMPLATES_DIR

        self.jinja_env = Environment(
            loader=FileSystemLoader(str(self.templates_dir)),
            autoescape=select_autoescape(['html']),
            trim_blocks=True,
            lstrip_blocks=True
        )
        self.subject_env = Environment(autoescape=False)

        self.globals = {
            "platform_name": app_config.platform_name,
            "support_email": app_config.support_email,
            "current_year": datetime.now().year,
        }

    def render_template(self, template_name: str, variables: Dict[str, Any]) -> Dict[str, Optional[str]]:
        """
        Render subject, HTML and text for a template

        A missing .txt file falls back to a plain-text conversion of the HTML.

        Raises:
            ValueError: unknown template or no template files
        """
        subject_source = SUBJECT_TEMPLATES.get(template_name)
        if subject_source is None:
            raise ValueError(f"Unknown email template '{template_name}'")

        context = {**self.globals, **variables}
        html_content = self._render_file(f"{template_name}.html", context)
        text_content = self._render_file(f"{template_name}.txt", context)
        if text_content is None and html_content is not None:
            text_content = self._html_to_text(html_content)
        if html_content is None and text_content is None:
            raise ValueError(f"No template files found for '{template_name}'")

        return {
            "subject": self.subject_env.from_string(subject_source).render(**context),
            "html_content": html_content,
            "text_content": text_content
        }

    def _render_file(self, filename: str, context: Dict[str, Any]) -> Optional[str]:
        try:
            template = self.jinja_env.get_template(filename)
        except TemplateNotFound:
            logger.debug(f"Template file not found: {filename}")
            return None
        return template.render(**context)

    @staticmethod
    def _html_to_text(markup: str) -> str:
        """Rough plain-text rendition of an HTML body"""
        text = _BLOCK_TAGS.sub('\n', markup)
        text = html.unescape(_ANY_TAG.sub('', text))
        text = text.replace('\xa0', ' ')
        text = _BLANK_LINES.sub('\n\n', text)
        return '\n'.join(line.rstrip() for line in text.split('\n')).strip()


# Global instance
_template_service: Optional[TemplateService] = None


def get_template_service() -> TemplateService:
    """Get template service singleton"""
    global _template_service
    if _template_service is None:
        _template_service = TemplateService()
    return _template_service
