"""
Plain-text → HTML email rendering.

Email copy comes from a model, so every interpolated string is HTML-escaped
and call-to-action links are restricted to http(s).
"""
from typing import Optional

from markupsafe import escape

SAFE_URL_PLACEHOLDER = '#'

_WRAPPER_STYLE = (
    "font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, "
    "'Helvetica Neue', Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;"
)
_CTA_STYLE = (
    "display: inline-block; background-color: #D3F36B; color: #000; padding: 12px 24px; "
    "text-decoration: none; border-radius: 8px; font-weight: bold;"
)

FOOTER_HTML = (
    '<hr style="margin-top: 32px; border: none; border-top: 1px solid #e5e5e5;">'
    '<p style="font-size: 12px; color: #666;">Khanect Automation Agency<br>Making Deep Work Possible</p>'
)


def escape_html(text: str) -> str:
    """Escape &, <, >, " and ' to entities."""
    return str(escape(text or ''))


def sanitize_url(url: Optional[str]) -> str:
    """Return the escaped URL if it is http(s), otherwise a harmless placeholder."""
    trimmed = (url or '').strip()
    if not trimmed.lower().startswith(('http://', 'https://')):
        return SAFE_URL_PLACEHOLDER
    return escape_html(trimmed)


def text_to_html(text: str, cta_text: Optional[str] = None, cta_url: Optional[str] = None) -> str:
    """Render a plain-text body as a minimal HTML email."""
    escaped = escape_html(text)
    paragraphs = [
        f"<p>{block.replace(chr(10), '<br>')}</p>"
        for block in escaped.replace('\r\n', '\n').split('\n\n')
        if block.strip()
    ]

    parts = [f'<div style="{_WRAPPER_STYLE}">', ''.join(paragraphs)]

    if cta_text and cta_url:
        parts.append(
            f'<p style="margin-top: 24px;">'
            f'<a href="{sanitize_url(cta_url)}" style="{_CTA_STYLE}">{escape_html(cta_text)}</a>'
            f'</p>'
        )

    parts.append(FOOTER_HTML)
    parts.append('</div>')
    return ''.join(parts)
