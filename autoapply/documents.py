"""Resume and cover-letter PDF generation."""

import asyncio
import logging
import re
from abc import ABC, abstractmethod

from fpdf import FPDF

from autoapply.exceptions import DocumentGenerationError
from autoapply.handlers.models import DocumentFile
from autoapply.models import CoverLetterData, ResumeData

logger = logging.getLogger(__name__)

# Core PDF fonts only cover Latin-1
UNICODE_REPLACEMENTS = {
    "\u2018": "'",
    "\u2019": "'",
    "\u201c": '"',
    "\u201d": '"',
    "\u2013": "-",
    "\u2014": "-",
    "\u2022": "-",
    "\u2026": "...",
    "\u00a0": " ",
}


def sanitize(text: str | None) -> str:
    """Make text printable with the built-in Helvetica font."""
    if not text:
        return ""
    for char, replacement in UNICODE_REPLACEMENTS.items():
        text = text.replace(char, replacement)
    return text.encode("latin-1", "replace").decode("latin-1")


def document_filename(full_name: str, suffix: str) -> str:
    """``Jane_Doe_Resume.pdf`` style file name."""
    name = re.sub(r"\s+", "_", full_name.strip())
    return f"{name}_{suffix}.pdf"


class DocumentRenderer(ABC):
    """Produces the resume and cover-letter documents attached to a form."""

    @abstractmethod
    def render_resume(self, data: ResumeData) -> bytes: ...

    @abstractmethod
    def render_cover_letter(self, data: CoverLetterData) -> bytes: ...

    async def build_resume(self, data: ResumeData) -> DocumentFile:
        """Render the resume off the event loop.

        Raises:
            DocumentGenerationError: If rendering fails
        """
        content = await self._render(self.render_resume, data, "resume")
        return DocumentFile(filename=document_filename(data.full_name, "Resume"), content=content)

    async def build_cover_letter(self, data: CoverLetterData) -> DocumentFile:
        """Render the cover letter off the event loop.

        Raises:
            DocumentGenerationError: If rendering fails
        """
        content = await self._render(self.render_cover_letter, data, "cover letter")
        return DocumentFile(filename=document_filename(data.full_name, "Cover_Letter"), content=content)

    @staticmethod
    async def _render(render, data, description: str) -> bytes:
        try:
            return await asyncio.to_thread(render, data)
        except DocumentGenerationError:
            raise
        except Exception as e:
            raise DocumentGenerationError(f"Failed to render {description}: {e}") from e


class PDFDocumentRenderer(DocumentRenderer):
    """Generate resume and cover letter PDFs with fpdf2."""

    def render_resume(self, data: ResumeData) -> bytes:
        """Generate a resume in PDF format."""
        pdf = FPDF()
        pdf.add_page()
        pdf.set_auto_page_break(auto=True, margin=20)

        # Header
        pdf.set_font("Helvetica", "B", 18)
        pdf.cell(0, 12, sanitize(data.full_name), align="C", new_x="LMARGIN", new_y="NEXT")

        contact = " | ".join(
            filter(None, [data.email, data.phone, data.location, data.linkedin_url, data.portfolio_url])
        )
        pdf.set_font("Helvetica", size=9)
        pdf.cell(0, 6, sanitize(contact), align="C", new_x="LMARGIN", new_y="NEXT")
        pdf.ln(4)

        if data.summary:
            self._section(pdf, "SUMMARY")
            pdf.multi_cell(0, 6, sanitize(data.summary), new_x="LMARGIN", new_y="NEXT")

        if data.experiences:
            self._section(pdf, "EXPERIENCE")
            for experience in data.experiences:
                end = "Present" if experience.is_current else (experience.end_date or "")
                pdf.set_font("Helvetica", "B", 10)
                pdf.cell(
                    0,
                    6,
                    sanitize(f"{experience.title} - {experience.company}"),
                    new_x="LMARGIN",
                    new_y="NEXT",
                )
                pdf.set_font("Helvetica", "I", 9)
                dates = f"{experience.start_date} - {end}".strip(" -")
                if experience.location:
                    dates += f" | {experience.location}"
                pdf.cell(0, 5, sanitize(dates), new_x="LMARGIN", new_y="NEXT")
                pdf.set_font("Helvetica", size=10)
                if experience.description:
                    pdf.multi_cell(0, 6, sanitize(experience.description), new_x="LMARGIN", new_y="NEXT")
                for highlight in experience.highlights:
                    pdf.set_x(20)
                    pdf.multi_cell(0, 6, sanitize(f"- {highlight}"), new_x="LMARGIN", new_y="NEXT")
                pdf.ln(2)

        if data.education:
            self._section(pdf, "EDUCATION")
            for education in data.education:
                degree = education.degree
                if education.field_of_study:
                    degree += f" in {education.field_of_study}"
                pdf.set_font("Helvetica", "B", 10)
                pdf.cell(0, 6, sanitize(f"{degree} - {education.institution}"), new_x="LMARGIN", new_y="NEXT")
                details = " | ".join(
                    filter(
                        None,
                        [
                            " - ".join(filter(None, [education.start_date, education.end_date])),
                            f"GPA {education.gpa}" if education.gpa else None,
                        ],
                    )
                )
                if details:
                    pdf.set_font("Helvetica", "I", 9)
                    pdf.cell(0, 5, sanitize(details), new_x="LMARGIN", new_y="NEXT")

        if data.skills:
            self._section(pdf, "SKILLS")
            pdf.multi_cell(0, 6, sanitize(", ".join(data.skills)), new_x="LMARGIN", new_y="NEXT")

        return bytes(pdf.output())

    def render_cover_letter(self, data: CoverLetterData) -> bytes:
        """Generate a cover letter in PDF format."""
        pdf = FPDF()
        pdf.add_page()
        pdf.set_auto_page_break(auto=True, margin=25)
        pdf.set_margins(25, 25, 25)

        # Sender
        pdf.set_font("Helvetica", "B", 12)
        pdf.cell(0, 7, sanitize(data.full_name), new_x="LMARGIN", new_y="NEXT")
        pdf.set_font("Helvetica", size=10)
        pdf.cell(0, 6, sanitize(" | ".join(filter(None, [data.email, data.phone]))), new_x="LMARGIN", new_y="NEXT")
        pdf.ln(6)

        # Date - right aligned
        pdf.set_font("Helvetica", size=11)
        pdf.cell(0, 10, sanitize(data.date), align="R", new_x="LMARGIN", new_y="NEXT")
        pdf.ln(6)

        # Recipient
        pdf.cell(0, 6, sanitize(f"To: {data.hiring_manager_name or 'Hiring Manager'}"), new_x="LMARGIN", new_y="NEXT")
        pdf.cell(0, 6, sanitize(data.company_name), new_x="LMARGIN", new_y="NEXT")
        pdf.set_font("Helvetica", "B", 11)
        pdf.cell(0, 6, sanitize(f"Re: {data.job_title}"), new_x="LMARGIN", new_y="NEXT")
        pdf.ln(10)

        # Content
        pdf.set_font("Helvetica", size=11)
        for para_text in data.content.split("\n\n"):
            para_text = para_text.strip().replace("\n", " ")
            if para_text:
                pdf.multi_cell(0, 7, sanitize(para_text), new_x="LMARGIN", new_y="NEXT")
                pdf.ln(5)

        pdf.ln(5)
        pdf.cell(0, 6, "Sincerely,", new_x="LMARGIN", new_y="NEXT")
        pdf.cell(0, 6, sanitize(data.full_name), new_x="LMARGIN", new_y="NEXT")

        return bytes(pdf.output())

    @staticmethod
    def _section(pdf: FPDF, title: str) -> None:
        pdf.ln(3)
        pdf.set_font("Helvetica", "B", 12)
        pdf.set_fill_color(240, 240, 240)
        pdf.cell(0, 8, title, fill=True, new_x="LMARGIN", new_y="NEXT")
        pdf.set_font("Helvetica", size=10)
