"""
Message composer - loads bot copy from YAML and renders it.

Copy lives in app/copy/<locale>.yml. Top-level keys are message templates;
the nested "buttons" mapping holds inline keyboard labels.

Templates use Telegram's legacy Markdown, so placeholder values (comments,
usernames, addresses) are escaped before substitution. Button labels are
never parsed by Telegram and are substituted as-is.
"""

import logging
import re
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

COPY_DIR = Path(__file__).resolve().parent.parent.parent / "copy"
DEFAULT_LOCALE = "en"

# Characters legacy Markdown treats as entity delimiters
_MARKDOWN_SPECIAL = re.compile(r"([_*`\[])")


def escape_markdown(value: Any) -> str:
    """Escape a value for interpolation into a legacy-Markdown message."""
    return _MARKDOWN_SPECIAL.sub(r"\\\1", str(value))


class MessageComposer:
    """Renders messages from a YAML copy file with str.format placeholders."""

    def __init__(self, locale: str = DEFAULT_LOCALE):
        self.locale = locale
        self.copy_file = COPY_DIR / f"{locale}.yml"
        self._copy_data: dict[str, Any] = {}
        self._load_copy()

    def _load_copy(self) -> None:
        if not self.copy_file.exists():
            logger.warning(f"Copy file not found: {self.copy_file}, using empty copy")
            return
        with open(self.copy_file, encoding="utf-8") as f:
            self._copy_data = yaml.safe_load(f) or {}
        logger.info(f"Loaded copy from {self.copy_file}")

    def _template(self, key: str, section: dict[str, Any]) -> str:
        template = section.get(key)
        if not isinstance(template, str):
            logger.warning(f"Message key not found: {key}")
            return f"[MISSING: {key}]"
        return template

    def _format(self, key: str, template: str, kwargs: dict[str, Any]) -> str:
        try:
            return template.format(**kwargs)
        except KeyError as e:
            logger.warning(f"Missing template variable {e} for key {key}")
            return template

    def render(self, key: str, markdown: bool = True, **kwargs: Any) -> str:
        """
        Render a message.

        With markdown=True (messages sent with parse_mode=Markdown) every
        string placeholder value is escaped; pass markdown=False for text
        sent as plain text.

        Example:
            composer.render("houses_not_found", city="Lisbon")
        """
        if markdown:
            kwargs = {k: escape_markdown(v) if isinstance(v, str) else v for k, v in kwargs.items()}
        return self._format(key, self._template(key, self._copy_data), kwargs)

    def button(self, key: str, **kwargs: Any) -> str:
        """Render an inline keyboard label from the "buttons" section."""
        section = self._copy_data.get("buttons") or {}
        return self._format(key, self._template(key, section), kwargs)


_composer: MessageComposer | None = None


def reset_cache() -> None:
    """Clear the global composer cache."""
    global _composer
    _composer = None


def get_composer(locale: str = DEFAULT_LOCALE) -> MessageComposer:
    global _composer
    if _composer is None or _composer.locale != locale:
        _composer = MessageComposer(locale=locale)
    return _composer


def render_message(key: str, markdown: bool = True, **kwargs: Any) -> str:
    return get_composer().render(key, markdown=markdown, **kwargs)
