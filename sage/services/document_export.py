"""
Sage - Document Export
======================
Download a writing session as Word, PDF or plain text.

Page breaks come from the pagination engine so the exported pages match
the page view students see in the editor.
"""
import io
import re
from datetime import datetime

from docx import Document
from docx.shared import Pt, Inches
from docx.enum.text import WD_ALIGN_PARAGRAPH
from reportlab.lib.pagesizes import letter
from reportlab.lib.units import inch
from reportlab.pdfgen import canvas

from ..config import config, SUPPORTED_EXPORT_FORMATS
from .pagination import split_into_pages, wrap_lines

MIME_TYPES = {
    'docx': 'application/vnd.openxmlformats-officedocument.wordprocessingml.document',
    'pdf': 'application/pdf',
    'txt': 'text/plain; charset=utf-8',
}


def _header_line(session, student_name=None, assignment_title=None):
    parts = []
    if student_name:
        parts.append(student_name)
    if assignment_title:
        parts.append(assignment_title)
    submitted = session.get('submitted_at')
    if isinstance(submitted, datetime):
        parts.append(submitted.strftime('%B %d, %Y'))
    elif submitted:
        parts.append(str(submitted)[:10])
    parts.append(f"{session.get('word_count', 0)} words")
    return "  |  ".join(parts)


def export_filename(session, fmt: str) -> str:
    slug = re.sub(r'[^A-Za-z0-9]+', '_', session.get('title') or 'Untitled').strip('_') or 'Untitled'
    return f"{slug}.{fmt}"


def export_session_txt(session, student_name=None, assignment_title=None) -> bytes:
    title = session.get('title') or 'Untitled'
    lines = [title, _header_line(session, student_name, assignment_title), '', session.get('content') or '']
    return '\n'.join(lines).encode('utf-8')


def export_session_docx(session, student_name=None, assignment_title=None,
                        lines_per_page=None, chars_per_line=None) -> bytes:
    """Word document: title, header line, then one section of paragraphs per page."""
    doc = Document()
    for section in doc.sections:
        section.left_margin = Inches(1)
        section.right_margin = Inches(1)

    title = doc.add_heading(session.get('title') or 'Untitled', 0)
    title.alignment = WD_ALIGN_PARAGRAPH.CENTER

    header = doc.add_paragraph()
    header.alignment = WD_ALIGN_PARAGRAPH.CENTER
    header.add_run(_header_line(session, student_name, assignment_title)).italic = True

    lines_per_page = lines_per_page or config.lines_per_page
    chars_per_line = chars_per_line or config.chars_per_line
    pages = split_into_pages(session.get('content') or '', lines_per_page, chars_per_line)
    for i, page in enumerate(pages):
        if i > 0:
            doc.add_page_break()
        for paragraph_text in page.text.strip('\n').split('\n'):
            p = doc.add_paragraph()
            p.paragraph_format.line_spacing = 2.0
            run = p.add_run(paragraph_text)
            run.font.size = Pt(12)

    buffer = io.BytesIO()
    doc.save(buffer)
    return buffer.getvalue()


def export_session_pdf(session, student_name=None, assignment_title=None,
                       lines_per_page=None, chars_per_line=None) -> bytes:
    """PDF with one canvas page per pagination page, header and page numbers."""
    buffer = io.BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=letter)
    width, height = letter
    left = inch
    line_height = 0.36 * inch

    lines_per_page = lines_per_page or config.lines_per_page
    chars_per_line = chars_per_line or config.chars_per_line
    pages = split_into_pages(session.get('content') or '', lines_per_page, chars_per_line)
    header = _header_line(session, student_name, assignment_title)
    title = session.get('title') or 'Untitled'

    for page in pages:
        pdf.setFont('Helvetica-Bold', 14)
        pdf.drawCentredString(width / 2, height - 0.75 * inch, title)
        pdf.setFont('Helvetica-Oblique', 9)
        pdf.drawCentredString(width / 2, height - inch, header)

        pdf.setFont('Times-Roman', 12)
        y = height - 1.5 * inch
        for line in _wrapped_page_lines(page.text, chars_per_line):
            pdf.drawString(left, y, line)
            y -= line_height

        pdf.setFont('Helvetica', 9)
        pdf.drawCentredString(width / 2, 0.5 * inch, f"Page {page.number} of {len(pages)}")
        pdf.showPage()

    pdf.save()
    return buffer.getvalue()


def _wrapped_page_lines(page_text, chars_per_line):
    return [page_text[start:end] for start, end in wrap_lines(page_text.rstrip('\n'), chars_per_line)]


PAGED_EXPORTERS = {
    'docx': export_session_docx,
    'pdf': export_session_pdf,
}


def export_session(session, fmt: str, student_name=None, assignment_title=None,
                   lines_per_page=None, chars_per_line=None):
    """
    Page layout defaults to config.lines_per_page and config.chars_per_line,
    the same layout the page view uses.

    Returns:
        (data, mimetype, filename)
    """
    fmt = (fmt or 'docx').lower()
    if fmt not in SUPPORTED_EXPORT_FORMATS:
        raise ValueError(f"Unsupported export format: {fmt}")
    if fmt == 'txt':
        data = export_session_txt(session, student_name, assignment_title)
    else:
        data = PAGED_EXPORTERS[fmt](session, student_name, assignment_title, lines_per_page, chars_per_line)
    return data, MIME_TYPES[fmt], export_filename(session, fmt)
