"""Paper export - Word documents and printable HTML."""

from __future__ import annotations

import html
import io
import logging
import re
from pathlib import Path

from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.shared import Pt

from paperforge.errors import ValidationError
from paperforge.knowledge_base.models import PAPER_SECTIONS, GeneratedPaper

logger = logging.getLogger(__name__)

DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
HTML_MEDIA_TYPE = "text/html"

# Request format -> (media type, download filename)
EXPORT_FORMATS: dict[str, tuple[str, str]] = {
    "pdf": (HTML_MEDIA_TYPE, "research-paper.html"),
    "html": (HTML_MEDIA_TYPE, "research-paper.html"),
    "docx": (DOCX_MEDIA_TYPE, "research-paper.docx"),
}

_ROMAN = ("I", "II", "III", "IV", "V")
SECTION_HEADINGS: dict[str, str] = {
    name: f"{numeral}. {name.capitalize()}" for numeral, name in zip(_ROMAN, PAPER_SECTIONS)
}
REFERENCES_HEADING = "References"
KEYWORDS_LABEL = "Keywords: "

_REF_PREFIX_RE = re.compile(r"^\[\d+\]\s")

_HTML_STYLE = """
    body { font-family: Arial, sans-serif; line-height: 1.6; margin: 40px; }
    h1 { font-size: 18pt; text-align: center; margin-bottom: 30px; }
    h2 { font-size: 14pt; margin-top: 25px; margin-bottom: 10px; }
    .abstract { font-style: italic; margin: 20px 0; white-space: pre-wrap; }
    .keywords { margin-bottom: 20px; }
    p { text-align: justify; margin-bottom: 12px; white-space: pre-wrap; }
    .references { font-size: 10pt; }
    .ref-item { margin-bottom: 8px; }
    @media print { body { margin: 0; } }
"""


def numbered_references(references: list[str]) -> list[str]:
    return [f"[{i}] {ref}" for i, ref in enumerate(references, start=1)]


class PaperExporter:
    """Renders a :class:`GeneratedPaper` as DOCX bytes or a printable HTML page."""

    def export(self, paper: GeneratedPaper, fmt: str) -> bytes:
        """Render ``paper`` in ``fmt`` (``pdf``/``html`` or ``docx``)."""
        fmt = (fmt or "").lower()
        if fmt not in EXPORT_FORMATS:
            raise ValidationError("Invalid format")
        if fmt == "docx":
            return self.to_docx(paper)
        return self.to_html(paper).encode("utf-8")

    def to_html(self, paper: GeneratedPaper) -> str:
        esc = html.escape
        parts = [
            "<!DOCTYPE html>",
            "<html>",
            "<head>",
            '  <meta charset="UTF-8">',
            f"  <title>{esc(paper.title)}</title>",
            f"  <style>{_HTML_STYLE}  </style>",
            "</head>",
            "<body>",
            f"  <h1>{esc(paper.title)}</h1>",
            "  <h2>Abstract</h2>",
            f'  <div class="abstract">{esc(paper.abstract)}</div>',
            f'  <div class="keywords"><strong>Keywords:</strong> {esc(", ".join(paper.keywords))}</div>',
        ]
        for name in PAPER_SECTIONS:
            parts.append(f"  <h2>{SECTION_HEADINGS[name]}</h2>")
            parts.append(f"  <p>{esc(getattr(paper, name))}</p>")

        parts.append(f"  <h2>{REFERENCES_HEADING}</h2>")
        parts.append('  <div class="references">')
        for ref in numbered_references(paper.references):
            parts.append(f'    <div class="ref-item">{esc(ref)}</div>')
        parts.append("  </div>")
        parts.append("</body>")
        parts.append("</html>")
        return "\n".join(parts)

    def to_docx(self, paper: GeneratedPaper) -> bytes:
        doc = Document()
        style = doc.styles["Normal"]
        style.font.name = "Times New Roman"
        style.font.size = Pt(12)

        title = doc.add_heading(paper.title, level=0)
        title.alignment = WD_ALIGN_PARAGRAPH.CENTER
        doc.add_paragraph()

        label = doc.add_paragraph()
        label.add_run("Abstract").bold = True
        doc.add_paragraph(paper.abstract)
        doc.add_paragraph()

        keywords = doc.add_paragraph()
        keywords.add_run(KEYWORDS_LABEL).bold = True
        keywords.add_run(", ".join(paper.keywords))
        doc.add_paragraph()

        for name in PAPER_SECTIONS:
            doc.add_heading(SECTION_HEADINGS[name], level=1)
            doc.add_paragraph(getattr(paper, name))
            doc.add_paragraph()

        doc.add_heading(REFERENCES_HEADING, level=1)
        for ref in numbered_references(paper.references):
            doc.add_paragraph(ref)

        buffer = io.BytesIO()
        doc.save(buffer)
        return buffer.getvalue()

    def export_to_file(self, paper: GeneratedPaper, output_path: str | Path, fmt: str) -> Path:
        """Write an export to disk, creating parent directories."""
        output = Path(output_path)
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_bytes(self.export(paper, fmt))
        logger.info("Exported %s to %s", fmt, output)
        return output


def docx_to_paper(data: bytes) -> GeneratedPaper:
    """Read a document written by :meth:`PaperExporter.to_docx` back into a paper.

    Blank spacer paragraphs are skipped, so section text that is itself an
    empty string does not survive the trip.
    """
    doc = Document(io.BytesIO(data))
    headings = {heading: name for name, heading in SECTION_HEADINGS.items()}

    fields: dict[str, object] = {"keywords": [], "references": []}
    current: str | None = None
    for para in doc.paragraphs:
        text = para.text
        style = para.style.name if para.style is not None else ""
        if style == "Title":
            fields["title"] = text
            current = None
        elif style == "Heading 1":
            current = headings.get(text, "references" if text == REFERENCES_HEADING else None)
        elif not text:
            continue
        elif current is None and text == "Abstract":
            current = "abstract"
        elif current is None and text.startswith(KEYWORDS_LABEL):
            body = text[len(KEYWORDS_LABEL):]
            fields["keywords"] = body.split(", ") if body else []
        elif current == "references":
            fields["references"].append(_REF_PREFIX_RE.sub("", text, count=1))
        elif current is not None:
            fields[current] = text
            if current == "abstract":
                current = None
    return GeneratedPaper(**fields)
