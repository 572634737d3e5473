"""TrueType font registration shared by measurement and PDF rendering."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Dict, Tuple

from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFError, TTFont

if TYPE_CHECKING:  # pragma: no cover
    from .config import StyleConfig

logger = logging.getLogger(__name__)

FALLBACK_FONTS: Tuple[str, str] = ("Helvetica", "Helvetica-Bold")

_FONT_STATE: Dict[tuple, Tuple[str, str]] = {}


def ensure_pdf_fonts_registered(style: "StyleConfig") -> Tuple[str, str]:
    """Register the configured TrueType fonts and return (base, bold).

    The returned names are the ones every paragraph must use: the configured
    names, or Helvetica when the font files could not be loaded.
    """

    key = (style.font_name, style.bold_font_name, style.font_path, style.bold_font_path)
    if key in _FONT_STATE:
        return _FONT_STATE[key]

    fonts = (style.font_name, style.bold_font_name)
    if style.font_path is not None:
        try:
            pdfmetrics.registerFont(TTFont(style.font_name, str(style.font_path)))
            bold_path = style.bold_font_path or style.font_path
            pdfmetrics.registerFont(TTFont(style.bold_font_name, str(bold_path)))
            pdfmetrics.registerFontFamily(
                style.font_name,
                normal=style.font_name,
                bold=style.bold_font_name,
                italic=style.font_name,
                boldItalic=style.bold_font_name,
            )
        except (OSError, TTFError) as exc:
            logger.warning("Could not register font %s (%s); using Helvetica", style.font_path, exc)
            fonts = FALLBACK_FONTS
        else:
            logger.info("Registered PDF fonts %s / %s", style.font_name, style.bold_font_name)
    _FONT_STATE[key] = fonts
    return fonts


__all__ = ["FALLBACK_FONTS", "ensure_pdf_fonts_registered"]
