"""Utilities to render finished slide plans into PPTX files."""

from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import Iterable, Sequence

from pptx import Presentation
from pptx.dml.color import RGBColor
from pptx.util import Emu, Inches, Pt

from .slide_models import SlidePlan

LOGGER = logging.getLogger(__name__)

SLIDE_WIDTH = Inches(13.333)
SLIDE_HEIGHT = Inches(7.5)
BLANK_LAYOUT_INDEX = 6
MARGIN = Inches(0.6)
TITLE_SIZE = Pt(24)
BODY_SIZE = Pt(14)


class SlideDeckRenderer:
    """Render slide plans into a 16:9 PPTX, one page per slide in order.

    Slides with a generated image become a full-bleed picture; slides
    without one fall back to a plain page showing title and content.
    """

    def __init__(self, *, width: Emu = SLIDE_WIDTH, height: Emu = SLIDE_HEIGHT) -> None:
        self.width = width
        self.height = height

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def render_document(self, slides: Sequence[SlidePlan]) -> io.BytesIO:
        """Return a PPTX stream that represents ``slides``."""

        presentation = Presentation()
        presentation.slide_width = self.width
        presentation.slide_height = self.height
        layout = presentation.slide_layouts[BLANK_LAYOUT_INDEX]

        for slide_plan in slides:
            page = presentation.slides.add_slide(layout)
            if slide_plan.generated_image is not None:
                self._write_image(page, slide_plan)
            else:
                LOGGER.info("Slide %s has no image; exporting text fallback", slide_plan.id)
                self._write_text_fallback(page, slide_plan)

        buffer = io.BytesIO()
        presentation.save(buffer)
        buffer.seek(0)
        return buffer

    def save(self, slides: Iterable[SlidePlan], path: Path) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(self.render_document(list(slides)).getvalue())
        return path

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _write_image(self, page, slide_plan: SlidePlan) -> None:
        stream = io.BytesIO(slide_plan.generated_image.data)
        page.shapes.add_picture(stream, 0, 0, width=self.width, height=self.height)

    def _write_text_fallback(self, page, slide_plan: SlidePlan) -> None:
        background = page.background.fill
        background.solid()
        background.fore_color.rgb = RGBColor(0xFF, 0xFF, 0xFF)

        inner_width = self.width - 2 * MARGIN
        title_box = page.shapes.add_textbox(MARGIN, MARGIN, inner_width, Inches(1.0))
        _fill_text(title_box.text_frame, slide_plan.title, TITLE_SIZE, bold=True)

        body_top = MARGIN + Inches(1.2)
        body_box = page.shapes.add_textbox(
            MARGIN, body_top, inner_width, self.height - body_top - MARGIN
        )
        _fill_text(body_box.text_frame, slide_plan.content, BODY_SIZE)


# ----------------------------------------------------------------------
# Helper functions
# ----------------------------------------------------------------------

def _fill_text(text_frame, text: str, size: Pt, *, bold: bool = False) -> None:
    text_frame.clear()
    text_frame.word_wrap = True
    lines = (text or "").splitlines() or [""]
    for idx, line in enumerate(lines):
        paragraph = text_frame.paragraphs[0] if idx == 0 else text_frame.add_paragraph()
        run = paragraph.add_run()
        run.text = line
        run.font.size = size
        run.font.bold = bold
        run.font.color.rgb = RGBColor(0, 0, 0)
