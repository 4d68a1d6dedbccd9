"""
Exam rendering - ExamDocument to printable layout and PDF.

The layout is computed first as plain lines (``PrintableDocument``), so the
same document and timestamp always give the same text. ``to_pdf`` lays those
lines out on A4 pages with reportlab:
- Centered title, then the three metadata lines
- One block per question, sub-questions indented and lettered a, b, c...
- "Generated By" watermark at the top right of every page
"""

from __future__ import annotations

import logging
import re
from datetime import datetime
from io import BytesIO
from typing import Any, List

from pydantic import BaseModel, ConfigDict
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_LEFT
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import cm
from reportlab.platypus import KeepTogether, Paragraph, SimpleDocTemplate, Spacer

from .types import ExamDocument, Question, parse_document

log = logging.getLogger(__name__)

PRODUCT_NAME = "SyllabusX"
DOCUMENT_EXTENSION = ".pdf"
TIMESTAMP_FORMAT = "%d/%m/%Y, %H:%M"


def format_timestamp(moment: datetime) -> str:
    """DD/MM/YYYY, HH:MM on a 24-hour clock, e.g. ``17/10/2026, 14:05``."""
    return moment.strftime(TIMESTAMP_FORMAT)


def format_number(value: float) -> str:
    """Print marks the way they appear in the JSON payload (10.0 -> 10, 2.5 -> 2.5)."""
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def sub_question_letter(index: int) -> str:
    # Positional: 0 -> a, 1 -> b, ...
    return chr(ord("a") + index)


# ─── Layout model ───────────────────────────────────────────────────────────────

class QuestionBlock(BaseModel):
    model_config = ConfigDict(frozen=True)

    header: str
    lines: List[str]


class PrintableDocument(BaseModel):
    """Rendered exam, ready to print or export."""
    model_config = ConfigDict(frozen=True)

    title: str
    metadata_lines: List[str]
    questions: List[QuestionBlock]
    watermark: str
    filename: str

    @property
    def safe_filename(self) -> str:
        """``filename`` with path separators and colons replaced, for writing to disk."""
        return re.sub(r"[\\/:]", "-", self.filename)

    def as_text(self) -> str:
        out = [self.title, ""]
        out.extend(self.metadata_lines)
        for block in self.questions:
            out.append("")
            out.append(block.header)
            out.extend(f"    {line}" for line in block.lines)
        out.append("")
        out.append(self.watermark)
        return "\n".join(out) + "\n"

    def to_pdf(self) -> bytes:
        """Build the A4 PDF. Identical documents give byte-identical output."""
        buffer = BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            rightMargin=30,
            leftMargin=30,
            topMargin=30,
            bottomMargin=30,
            title=self.title,
            author=PRODUCT_NAME,
            invariant=1,
        )
        styles = get_exam_styles()
        story: List[Any] = [
            Paragraph(_escape(self.title), styles["ExamTitle"]),
            Spacer(1, 0.3 * cm),
        ]
        for line in self.metadata_lines:
            story.append(Paragraph(_escape(line), styles["ExamMetadata"]))
        story.append(Spacer(1, 0.4 * cm))

        for block in self.questions:
            flowables = [Paragraph(_escape(block.header), styles["QuestionHeader"])]
            flowables.extend(Paragraph(_escape(line), styles["SubQuestion"]) for line in block.lines)
            flowables.append(Spacer(1, 0.4 * cm))
            story.append(KeepTogether(flowables))

        def _watermark(canvas, _doc):
            canvas.saveState()
            canvas.setFont("Helvetica", 8)
            canvas.setFillColor(colors.HexColor("#666666"))
            width, height = A4
            canvas.drawRightString(width - 30, height - 18, self.watermark)
            canvas.restoreState()

        doc.build(story, onFirstPage=_watermark, onLaterPages=_watermark)
        log.debug("built %s (%d question block(s))", self.filename, len(self.questions))
        return buffer.getvalue()


def _escape(text: str) -> str:
    """Escape characters reportlab's Paragraph markup would otherwise interpret."""
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def get_exam_styles():
    styles = getSampleStyleSheet()
    styles.add(ParagraphStyle(
        name="ExamTitle",
        parent=styles["Heading1"],
        fontSize=18,
        alignment=TA_CENTER,
        spaceAfter=10,
        fontName="Helvetica-Bold",
    ))
    styles.add(ParagraphStyle(
        name="ExamMetadata",
        parent=styles["Normal"],
        fontSize=12,
        alignment=TA_LEFT,
        spaceAfter=5,
        fontName="Helvetica",
    ))
    styles.add(ParagraphStyle(
        name="QuestionHeader",
        parent=styles["Normal"],
        fontSize=12,
        spaceAfter=5,
        fontName="Helvetica-Bold",
    ))
    styles.add(ParagraphStyle(
        name="SubQuestion",
        parent=styles["Normal"],
        fontSize=12,
        leftIndent=20,
        spaceAfter=5,
        leading=15,
        fontName="Helvetica",
    ))
    return styles


# ─── Renderer ───────────────────────────────────────────────────────────────────

def question_header(question: Question) -> str:
    header = f"Q{question.question_number}. "
    if question.is_compulsory:
        header += "(Compulsory) "
    if question.alternative_question_number:
        header += f"(OR Q{question.alternative_question_number}) "
    return header + f"[{format_number(question.total_marks)} Marks]"


def artifact_name(document: ExamDocument, generated_at: datetime) -> str:
    meta = document.metadata
    return f"{meta.subject}_{meta.exam_type.value}_{format_timestamp(generated_at)}_exam{DOCUMENT_EXTENSION}"


def render(document: ExamDocument, generated_at: datetime) -> PrintableDocument:
    """Lay out an exam document.

    Questions keep their input order; they are not re-sorted by number.

    Args:
        document: Validated exam document.
        generated_at: Moment stamped into the watermark and file name.

    Returns:
        PrintableDocument whose text depends only on the two arguments.
    """
    meta = document.metadata
    blocks = [
        QuestionBlock(
            header=question_header(q),
            lines=[
                f"{sub_question_letter(i)}. {sub.sub_question} [{format_number(sub.marks)} Marks]"
                for i, sub in enumerate(q.content)
            ],
        )
        for q in document.questions
    ]
    return PrintableDocument(
        title=f"{meta.subject} - {meta.exam_type.label} Examination",
        metadata_lines=[
            f"Total Marks: {format_number(meta.total_marks)}",
            f"Duration: {meta.duration}",
            f"Questions to Attempt: {meta.questions_to_attempt} out of {meta.total_questions}",
        ],
        questions=blocks,
        watermark=f"Generated By {PRODUCT_NAME} on {format_timestamp(generated_at)}",
        filename=artifact_name(document, generated_at),
    )


def render_payload(payload: Any, generated_at: datetime) -> PrintableDocument:
    """Validate a raw backend payload, then render it.

    Raises:
        DocumentError: if the payload is not a well-formed exam document.
    """
    return render(parse_document(payload), generated_at)
