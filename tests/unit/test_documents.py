"""Tests for document generation."""

import pytest

from autoapply.documents import DocumentRenderer, PDFDocumentRenderer, document_filename, sanitize
from autoapply.exceptions import DocumentGenerationError
from autoapply.models import CoverLetterData, ResumeData, ResumeEducation


@pytest.fixture
def cover_letter_data():
    return CoverLetterData(
        full_name="Jane Doe",
        email="jane@example.com",
        phone="+1 555 0100",
        company_name="Acme",
        job_title="Staff Engineer",
        content="I’m excited to apply — here’s why.\n\nI have built platforms for six years.",
    )


class TestPDFDocumentRenderer:
    """Tests for PDFDocumentRenderer."""

    def test_render_resume(self, resume_data):
        """Test the resume renders to a PDF."""
        resume_data.education = [ResumeEducation(institution="MIT", degree="BSc", field_of_study="CS", gpa="3.9")]

        content = PDFDocumentRenderer().render_resume(resume_data)

        assert content.startswith(b"%PDF")

    def test_render_minimal_resume(self):
        """Test a resume with only the required fields renders."""
        content = PDFDocumentRenderer().render_resume(ResumeData(full_name="Jane Doe", email="jane@example.com"))

        assert content.startswith(b"%PDF")

    def test_render_cover_letter_with_smart_quotes(self, cover_letter_data):
        """Test typographic characters do not break the core font."""
        content = PDFDocumentRenderer().render_cover_letter(cover_letter_data)

        assert content.startswith(b"%PDF")

    @pytest.mark.asyncio
    async def test_build_documents(self, resume_data, cover_letter_data):
        """Test documents carry bytes and the expected file names."""
        renderer = PDFDocumentRenderer()

        resume = await renderer.build_resume(resume_data)
        cover_letter = await renderer.build_cover_letter(cover_letter_data)

        assert resume.filename == "Jane_Doe_Resume.pdf"
        assert resume.mime_type == "application/pdf"
        assert resume.content.startswith(b"%PDF")
        assert cover_letter.filename == "Jane_Doe_Cover_Letter.pdf"

    @pytest.mark.asyncio
    async def test_render_failure_is_wrapped(self, resume_data):
        """Test renderer errors become DocumentGenerationError."""

        class BrokenRenderer(DocumentRenderer):
            def render_resume(self, data):
                raise ValueError("font missing")

            def render_cover_letter(self, data):
                return b""

        with pytest.raises(DocumentGenerationError, match="font missing"):
            await BrokenRenderer().build_resume(resume_data)


class TestHelpers:
    """Tests for text and file-name helpers."""

    def test_sanitize(self):
        """Test Unicode punctuation is mapped to Latin-1."""
        assert sanitize("“Hi” – it’s me…") == '"Hi" - it\'s me...'
        assert sanitize("Café") == "Café"
        assert sanitize("你好") == "??"
        assert sanitize(None) == ""

    def test_document_filename(self):
        """Test names are joined with underscores."""
        assert document_filename("  Mary Ann  Smith ", "Resume") == "Mary_Ann_Smith_Resume.pdf"
