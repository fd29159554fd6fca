"""
Resume text extraction.

Turns an uploaded PDF or DOCX into plain text for the language model.
Both parsers are synchronous; callers run extract_text() in a thread.
"""

import logging
from io import BytesIO

import pdfplumber
from docx import Document

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = (".pdf", ".docx")
MIN_RESUME_CHARS = 100


class UnsupportedFileType(ValueError):
    """Raised for anything that isn't a .pdf or .docx upload."""


def is_supported(filename: str) -> bool:
    return (filename or "").lower().endswith(SUPPORTED_EXTENSIONS)


def extract_text(filename: str, data: bytes) -> str:
    """Extract text from PDF or DOCX bytes, chosen by file extension."""
    name = (filename or "").lower()

    if name.endswith(".pdf"):
        pages = []
        with pdfplumber.open(BytesIO(data)) as pdf:
            for page in pdf.pages:
                pages.append(page.extract_text() or "")
        text = "\n".join(pages)
        logger.debug("Extracted %d chars from %d PDF pages", len(text), len(pages))
        return text

    if name.endswith(".docx"):
        doc = Document(BytesIO(data))
        parts = [para.text for para in doc.paragraphs if para.text and para.text.strip()]
        return "\n".join(parts)

    raise UnsupportedFileType("Unsupported file type. Please upload a PDF or DOCX file.")


def has_enough_text(text: str) -> bool:
    """True when extraction produced something worth roasting."""
    return bool(text) and len(text.strip()) >= MIN_RESUME_CHARS
