# hv_maintenance/utils/slide_deck.py

import io
import logging
from datetime import date
from typing import Optional, Sequence
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.units import inch
from reportlab.lib.styles import ParagraphStyle
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas
from reportlab.platypus import Frame, KeepInFrame, Paragraph

from hv_maintenance import schemas
from hv_maintenance.constants import NOT_AVAILABLE
from hv_maintenance.domain import plain_value
from hv_maintenance.utils.table_export import Municipalities, municipality_lookup

logger = logging.getLogger(__name__)

# 16:9 page, in inches
SLIDE_WIDTH = 10.0
SLIDE_HEIGHT = 5.625
HEADER_BAR_HEIGHT = 0.6

SLOT_LABELS = {
    schemas.EvidenceSlot.BEFORE: "Before",
    schemas.EvidenceSlot.DURING: "During",
    schemas.EvidenceSlot.AFTER: "After",
}

# Fixed evidence positions, left to right; they never move with occupancy
_PLACEHOLDER_TOP = 2.75
_PLACEHOLDER_WIDTH = 2.8
_PLACEHOLDER_HEIGHT = 2.55
_PLACEHOLDER_GAP = 0.3
PLACEHOLDER_BOXES = {
    slot: schemas.Box(
        x=0.5 + index * (_PLACEHOLDER_WIDTH + _PLACEHOLDER_GAP),
        y=_PLACEHOLDER_TOP,
        w=_PLACEHOLDER_WIDTH,
        h=_PLACEHOLDER_HEIGHT,
    )
    for index, slot in enumerate(schemas.EVIDENCE_SLOTS)
}

PENDING_EVIDENCE = "Pending evidence"


def _stage_slide(record, stage) -> schemas.StageSlide:
    placeholders = []
    for slot in schemas.EVIDENCE_SLOTS:
        image = getattr(stage, slot.value)
        placeholders.append(schemas.EvidencePlaceholder(
            slot=slot,
            label=SLOT_LABELS[slot],
            box=PLACEHOLDER_BOXES[slot],
            image_id=image.id if image is not None else None,
            image_data=image.data if image is not None else None,
            mime_type=image.mime_type if image is not None else None,
        ))
    return schemas.StageSlide(
        record_id=record.id,
        stage_id=stage.id,
        stage_name=stage.name,
        description=stage.description or "",
        placeholders=placeholders,
    )


def _record_slides(record, municipality):
    overview = schemas.OverviewSlide(
        record_id=record.id,
        title=record.title,
        municipality=municipality.name if municipality else NOT_AVAILABLE,
        region=plain_value(municipality.region) if municipality else NOT_AVAILABLE,
        technician=record.technician or "",
        date=record.date,
        category=record.nature,
        status=plain_value(record.status),
        description=record.description or "",
    )
    return [overview] + [_stage_slide(record, stage) for stage in record.stages]


def to_slides(records: Sequence, municipalities: Municipalities, generated_on: Optional[date] = None) -> schemas.SlideDeck:
    """
    Describes the slide deck: a cover, then per record an overview slide
    followed by exactly one slide per stage.
    """
    generated_on = generated_on or date.today()
    lookup = municipality_lookup(municipalities)
    deck = schemas.SlideDeck(generated_on=generated_on, width_in=SLIDE_WIDTH, height_in=SLIDE_HEIGHT)

    body = []
    for record in records:
        try:
            body.extend(_record_slides(record, lookup.get(record.municipality_id)))
        except (AttributeError, TypeError, ValueError) as e:
            record_id = str(getattr(record, "id", "?"))
            logger.warning("Skipping record %s in slide export: %s", record_id, e)
            deck.skipped_record_ids.append(record_id)

    exported = len(records) - len(deck.skipped_record_ids)
    deck.slides.append(schemas.CoverSlide(
        title="Maintenance Operations Report",
        subtitle=f"Amazonas - River Basins • {generated_on.strftime('%d/%m/%Y')}",
        record_count=exported,
        generated_on=generated_on,
    ))
    deck.slides.extend(body)
    return deck


# =================================================================================
# PDF RENDERING (16:9 pages)
# =================================================================================
ORANGE = colors.HexColor("#EA580C")
NAVY = colors.HexColor("#0F172A")
SLATE = colors.HexColor("#64748B")
PANEL = colors.HexColor("#F1F5F9")
PANEL_LINE = colors.HexColor("#CBD5E1")

body_style = ParagraphStyle("SlideBody", fontName="Helvetica", fontSize=11, leading=14, textColor=colors.HexColor("#1E293B"))


class _SlideCanvas:
    """Draws in inches with a top-left origin, like the slide geometry."""

    def __init__(self, c: canvas.Canvas):
        self.c = c

    def _y(self, y: float, h: float = 0.0) -> float:
        return (SLIDE_HEIGHT - y - h) * inch

    def text(self, x, y, value, size=12, bold=False, color=NAVY, italic=False):
        font = "Helvetica-Bold" if bold else ("Helvetica-Oblique" if italic else "Helvetica")
        self.c.setFont(font, size)
        self.c.setFillColor(color)
        # y is the top of the line
        self.c.drawString(x * inch, self._y(y) - size, value)

    def rect(self, box: schemas.Box, fill=None, stroke=PANEL_LINE, dashed=False):
        self.c.saveState()
        self.c.setStrokeColor(stroke)
        if dashed:
            self.c.setDash(4, 3)
        if fill is not None:
            self.c.setFillColor(fill)
        self.c.rect(box.x * inch, self._y(box.y, box.h), box.w * inch, box.h * inch, stroke=1, fill=1 if fill is not None else 0)
        self.c.restoreState()

    def paragraph(self, box: schemas.Box, value: str, style=body_style):
        markup = escape(value).replace("\n", "<br/>")
        frame = Frame(box.x * inch, self._y(box.y, box.h), box.w * inch, box.h * inch, showBoundary=0,
                      leftPadding=0, rightPadding=0, topPadding=0, bottomPadding=0)
        frame.addFromList([KeepInFrame(box.w * inch, box.h * inch, [Paragraph(markup, style)], mode="shrink")], self.c)

    def image_fit(self, box: schemas.Box, data: bytes) -> bool:
        """Draws the image scaled to fit inside box, aspect preserved. False if unreadable."""
        try:
            reader = ImageReader(io.BytesIO(data))
            iw, ih = reader.getSize()
        except Exception as e:
            # Any decoder failure from PIL or reportlab
            logger.warning("Unreadable evidence image: %s", e)
            return False
        scale = min(box.w / iw, box.h / ih)
        dw, dh = iw * scale, ih * scale
        x = box.x + (box.w - dw) / 2
        y = box.y + (box.h - dh) / 2
        self.c.drawImage(reader, x * inch, self._y(y, dh), dw * inch, dh * inch, mask="auto")
        return True

    def header_bar(self, header: str):
        self.c.setFillColor(NAVY)
        self.c.rect(0, self._y(0, HEADER_BAR_HEIGHT), SLIDE_WIDTH * inch, HEADER_BAR_HEIGHT * inch, stroke=0, fill=1)
        self.text(0.4, 0.18, header, size=14, bold=True, color=colors.white)


def _draw_cover(sc: _SlideCanvas, slide: schemas.CoverSlide):
    sc.text(1, 1.9, slide.title, size=32, bold=True)
    sc.text(1, 2.8, slide.subtitle, size=18, color=ORANGE)
    sc.text(1, 3.4, f"{slide.record_count} Consolidated Records", size=14, italic=True)


def _draw_overview(sc: _SlideCanvas, slide: schemas.OverviewSlide):
    sc.text(0.5, 0.8, slide.title.upper(), size=22, bold=True, color=ORANGE)
    sc.text(0.5, 1.35, f"LOCATION: {slide.municipality} ({slide.region})", size=12, bold=True)
    sc.text(0.5, 1.65, f"TECHNICIAN: {slide.technician}", size=12)
    sc.text(0.5, 1.95, f"DATE: {slide.date.strftime('%d/%m/%Y')}", size=12)
    sc.text(5.2, 1.65, f"CATEGORY: {slide.category}", size=11)
    sc.text(5.2, 1.95, f"STATUS: {plain_value(slide.status)}", size=11)

    panel = schemas.Box(x=0.5, y=2.45, w=9.0, h=2.8)
    sc.rect(panel, fill=PANEL)
    sc.text(0.6, 2.6, "GENERAL DESCRIPTION:", size=10, bold=True, color=SLATE)
    sc.paragraph(schemas.Box(x=0.6, y=2.95, w=8.8, h=2.2), slide.description or "No general description provided.")


def _draw_stage(sc: _SlideCanvas, slide: schemas.StageSlide):
    sc.text(0.5, 0.8, f"STAGE: {slide.stage_name}", size=20, bold=True, color=ORANGE)
    sc.paragraph(schemas.Box(x=0.5, y=1.3, w=9.0, h=1.05), slide.description or "Stage technical description pending.")

    for placeholder in slide.placeholders:
        box = placeholder.box
        sc.text(box.x, box.y - 0.3, placeholder.label.upper(), size=10, bold=True, color=SLATE)
        if not placeholder.is_pending and sc.image_fit(box, placeholder.image_data):
            sc.rect(box)
            continue
        # Empty (or unreadable) slot keeps its position with a distinct marker
        sc.rect(box, fill=PANEL, stroke=ORANGE, dashed=True)
        label = PENDING_EVIDENCE if placeholder.is_pending else "Unreadable image"
        sc.text(box.x + 0.2, box.y + box.h / 2 - 0.1, label, size=11, italic=True, color=ORANGE)


def render_slide_deck(deck: schemas.SlideDeck, header: str = "HV TEAM - MAINTENANCE REPORT") -> bytes:
    """
    Renders the deck as a PDF with one 16:9 page per slide.

    This is a fixed-layout rendition of the presentation, not an editable
    .pptx. Consumers get pages to view or print, not slides to re-edit in a
    presentation tool.
    """
    buffer = io.BytesIO()
    c = canvas.Canvas(buffer, pagesize=(deck.width_in * inch, deck.height_in * inch), invariant=1)
    c.setTitle("Maintenance Operations Report")
    sc = _SlideCanvas(c)

    for slide in deck.slides:
        if isinstance(slide, schemas.CoverSlide):
            _draw_cover(sc, slide)
        elif isinstance(slide, schemas.OverviewSlide):
            sc.header_bar(header)
            _draw_overview(sc, slide)
        else:
            sc.header_bar(header)
            _draw_stage(sc, slide)
        c.showPage()

    c.save()
    buffer.seek(0)
    return buffer.getvalue()
