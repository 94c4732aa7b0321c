import io
import logging
from xml.sax.saxutils import escape

from reportlab.lib.colors import HexColor
from reportlab.lib.enums import TA_CENTER, TA_JUSTIFY
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import PageBreak, Paragraph, SimpleDocTemplate, Spacer

from report_renderer import ReportView

logger = logging.getLogger(__name__)


# Function to add page numbers to the canvas
def _header_footer(canvas_obj, doc):
    canvas_obj.saveState()
    canvas_obj.setFont('Helvetica', 9)
    canvas_obj.drawString(doc.rightMargin, 0.75 * inch, f"Page {doc.page}")
    canvas_obj.restoreState()


def _styles():
    styles = getSampleStyleSheet()
    styles.add(ParagraphStyle(name='EyebrowStyle', fontSize=9, leading=12, alignment=TA_CENTER, spaceAfter=14,
                              fontName='Helvetica-Bold', textColor=HexColor('#6B7280')))
    styles.add(ParagraphStyle(name='TitleStyle', fontSize=22, leading=30, alignment=TA_CENTER, spaceAfter=16,
                              fontName='Helvetica'))
    styles.add(ParagraphStyle(name='SubHeadingStyle', fontSize=14, leading=18, spaceBefore=20, spaceAfter=10,
                              alignment=TA_CENTER, fontName='Helvetica-Bold'))
    styles.add(ParagraphStyle(name='SectionHeadingStyle', fontSize=11, leading=16, spaceBefore=18, spaceAfter=8,
                              alignment=TA_CENTER, fontName='Helvetica-Bold'))
    styles.add(ParagraphStyle(name='NormalBodyText', fontSize=10, leading=15, spaceAfter=8, fontName='Helvetica',
                              alignment=TA_JUSTIFY))
    styles.add(ParagraphStyle(name='ItalicBodyText', fontSize=10, leading=14, spaceAfter=6,
                              fontName='Helvetica-Oblique', alignment=TA_JUSTIFY))
    styles.add(ParagraphStyle(name='IndicatorStyle', fontSize=10, leading=14, spaceAfter=6, leftIndent=12,
                              fontName='Helvetica'))
    styles.add(ParagraphStyle(name='BlessingStyle', fontSize=12, leading=18, spaceBefore=24, alignment=TA_CENTER,
                              fontName='Helvetica-Oblique', textColor=HexColor('#4B5563')))
    return styles


def create_report_pdf(report: ReportView) -> bytes:
    """Generates the PDF rendition of a report view using ReportLab."""
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=letter,
                            rightMargin=inch, leftMargin=inch,
                            topMargin=inch, bottomMargin=inch,
                            title=report.header.eyebrow)
    styles = _styles()
    header = report.header

    Story = []

    # Header
    Story.append(Paragraph(escape(header.eyebrow.upper()), styles['EyebrowStyle']))
    Story.append(Paragraph(escape(header.introduction), styles['TitleStyle']))
    Story.append(Paragraph(escape(header.main_color_description), styles['ItalicBodyText']))
    Story.append(Paragraph(
        f"<b>Main color</b>: <font color=\"{header.main_color_hex}\">{escape(header.main_color_hex)}</font>"
        f" | <b>Birth date</b>: {escape(header.birth_date)}",
        styles['NormalBodyText']))
    if header.intention:
        Story.append(Paragraph(f"<b>Intention</b>: {escape(header.intention)}", styles['NormalBodyText']))
    Story.append(PageBreak())

    # Indicators
    Story.append(Paragraph(escape(report.indicators_title), styles['SubHeadingStyle']))
    for item in report.indicators:
        line = f"<b>{escape(item.title)}</b>: {escape(item.value)}"
        if item.description:
            line += f" - {escape(item.description)}"
        Story.append(Paragraph(line, styles['IndicatorStyle']))
    Story.append(PageBreak())

    # Reading
    for block in report.reading:
        if block.kind == "heading":
            Story.append(Paragraph(escape(block.text), styles['SectionHeadingStyle']))
        elif block.text:
            Story.append(Paragraph(escape(block.text).replace('\n', '<br/>'), styles['NormalBodyText']))
        else:
            Story.append(Spacer(1, 0.1 * inch))

    # Closing
    Story.append(Paragraph(escape(report.blessing), styles['BlessingStyle']))

    doc.build(Story, onFirstPage=_header_footer, onLaterPages=_header_footer)
    buffer.seek(0)
    pdf_bytes = buffer.getvalue()
    logger.info(f"Generated PDF bytes size: {len(pdf_bytes)} bytes")
    return pdf_bytes
