"""
Text extraction for uploaded CVs (PDF, DOCX, DOC, TXT) plus the regex helpers
the parsers use to pull contact details and dates out of raw text.
"""
import io
import logging
import os
import re
from typing import Iterable, List, Optional, Pattern

import docx
import fitz  # PyMuPDF
import mammoth
from striprtf.striprtf import rtf_to_text

from .exceptions import TextExtractionError, UnsupportedFileTypeError
from .schemas import ExtractedSection, ExtractedText, ExtractedTextMetadata

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = {".pdf": "pdf", ".docx": "docx", ".doc": "doc", ".txt": "txt"}


# ============================================================================
# File -> text
# ============================================================================

def get_file_type(filename: str) -> str:
    ext = os.path.splitext(filename or "")[1].lower()
    if ext not in SUPPORTED_EXTENSIONS:
        raise UnsupportedFileTypeError(
            f"Unsupported file type: {ext or 'unknown'}. Please upload PDF, DOCX, DOC, or TXT files."
        )
    return SUPPORTED_EXTENSIONS[ext]


def _extract_pdf(content: bytes):
    pages = []
    has_images = False
    with fitz.open(stream=content, filetype="pdf") as pdf_document:
        page_count = pdf_document.page_count
        for page in pdf_document:
            pages.append(page.get_text())
            if page.get_images():
                has_images = True
    return "\n".join(pages), page_count, has_images


def _extract_docx(content: bytes) -> str:
    document = docx.Document(io.BytesIO(content))
    lines = [para.text for para in document.paragraphs if para.text.strip()]
    # Many CV templates lay out sections in tables
    for table in document.tables:
        for row in table.rows:
            for cell in row.cells:
                if cell.text.strip():
                    lines.append(cell.text)
    return "\n".join(lines)


def _extract_doc(content: bytes) -> str:
    """
    mammoth reads .doc files that are really OOXML; RTF saved under a .doc name
    goes through striprtf. Binary Word 97 files are rejected.
    """
    try:
        text = mammoth.extract_raw_text(io.BytesIO(content)).value
    except Exception as e:
        logger.debug(f"mammoth could not read DOC content: {e}")
        text = ""
    if text.strip():
        return text

    if content.lstrip().startswith(b"{\\rtf"):
        return rtf_to_text(content.decode("utf-8", errors="ignore"))

    raise TextExtractionError("Legacy binary DOC files are not supported, please upload DOCX or PDF")


def extract_text_from_file(filename: str, content: bytes) -> ExtractedText:
    """
    Extract plain text and section structure from an uploaded CV.

    Args:
        filename: Original file name, used to pick the extractor
        content: Raw file bytes

    Returns:
        ExtractedText with the full text, detected sections and metadata
    """
    file_type = get_file_type(filename)
    page_count = None
    has_images = False

    try:
        if file_type == "pdf":
            text, page_count, has_images = _extract_pdf(content)
        elif file_type == "docx":
            text = _extract_docx(content)
        elif file_type == "doc":
            text = _extract_doc(content)
        else:
            text = content.decode("utf-8", errors="replace")
    except Exception as e:
        logger.error(f"Failed to extract text from {filename}: {e}")
        raise TextExtractionError(f"Failed to extract text from {file_type.upper()} file: {e}") from e

    full_text = text.replace("\r\n", "\n").replace("\r", "\n").strip()
    if not full_text:
        raise TextExtractionError("No text could be extracted from the document")

    logger.info(f"Extracted {len(full_text)} characters from {filename} ({file_type})")
    return ExtractedText(
        full_text=full_text,
        sections=detect_sections(full_text),
        metadata=ExtractedTextMetadata(
            page_count=page_count,
            word_count=count_words(full_text),
            has_images=has_images,
        ),
    )


# ============================================================================
# Section detection
# ============================================================================

MAX_HEADING_LENGTH = 50
HEADING_QUALIFIERS = (
    r"(?:(?:professional|technical|work|core|key|relevant|personal|academic|career"
    r"|selected|additional|other|my)\s+)?"
)
SECTION_PATTERNS = [
    ("Personal Information", [r"personal\s+(?:information|info|details)", r"contact(?:\s+(?:information|info|details))?",
                              r"about\s+me"]),
    ("Summary", [r"summary", r"objective", r"profile(?:\s+summary)?"]),
    ("Education", [r"education(?:al\s+background)?", r"academic\s+(?:background|qualifications|history)",
                   r"academics", r"qualifications"]),
    ("Experience", [r"experience", r"employment(?:\s+history)?", r"work\s+history", r"career\s+history"]),
    ("Skills", [r"skills?", r"competencies", r"expertise", r"skill\s+set"]),
    ("Projects", [r"projects"]),
    ("Certifications", [r"certifications?", r"licen[cs]es?"]),
    ("Courses", [r"courses?(?:\s+taken)?", r"training", r"coursework"]),
    ("References", [r"references"]),
]
_COMPILED_SECTIONS = [
    (heading, [re.compile(HEADING_QUALIFIERS + p, re.IGNORECASE) for p in patterns])
    for heading, patterns in SECTION_PATTERNS
]
HEADING_JOINER = re.compile(r"\s+(?:&|and)\s+", re.IGNORECASE)


def _heading_for(phrase: str) -> Optional[str]:
    for heading, patterns in _COMPILED_SECTIONS:
        if any(p.fullmatch(phrase) for p in patterns):
            return heading
    return None


def match_section_heading(line: str) -> Optional[str]:
    """
    Canonical heading name when the whole line is a section heading.

    "Skills & Expertise" or "Education and Training" count when every part is
    itself a heading phrase; the first part names the section.
    """
    candidate = line.strip().lstrip("#").strip().rstrip(":").strip()
    if not candidate or len(candidate) > MAX_HEADING_LENGTH:
        return None
    if "@" in candidate or "://" in candidate:
        return None
    headings = [_heading_for(part) for part in HEADING_JOINER.split(candidate)]
    if not all(headings):
        return None
    return headings[0]


def detect_sections(text: str) -> List[ExtractedSection]:
    sections = []
    current = None
    content_lines = []

    for index, line in enumerate(text.split("\n")):
        heading = match_section_heading(line)
        if heading:
            if current is not None:
                current.content = "\n".join(content_lines)
                sections.append(current)
            current = ExtractedSection(
                heading=heading,
                confidence=0.8,
                start_index=index,
                end_index=index,
            )
            content_lines = []
        elif current is not None and line.strip():
            content_lines.append(line.strip())
            current.end_index = index

    if current is not None:
        current.content = "\n".join(content_lines)
        sections.append(current)

    return sections


def count_words(text: str) -> int:
    return len(text.split())


# ============================================================================
# Field extractors
# ============================================================================

EMAIL_PATTERN = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b")
PHONE_PATTERNS = [
    re.compile(r"\(\d{3}\)\s*\d{3}-\d{4}"),
    re.compile(r"\b\d{3}-\d{3}-\d{4}\b"),
    re.compile(r"\+?\d{1,3}[-. ]?\(?\d{1,4}\)?[-. ]?\d{1,4}[-. ]?\d{1,9}"),
]
URL_PATTERN = re.compile(r"https?://[^\s<>\"']+")
LINKEDIN_PATTERN = re.compile(r"(?:https?://)?(?:www\.)?linkedin\.com/in/[\w-]+", re.IGNORECASE)
GITHUB_PATTERN = re.compile(r"(?:https?://)?(?:www\.)?github\.com/[\w-]+", re.IGNORECASE)
MONTHS = r"(?:Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)"
DATE_PATTERNS = [
    re.compile(rf"\b{MONTHS}[a-z]*\.?\s+\d{{4}}\b", re.IGNORECASE),
    re.compile(r"\b\d{1,2}/\d{1,2}/\d{2,4}\b"),
    re.compile(r"\b\d{4}-\d{2}-\d{2}\b"),
    re.compile(r"\b(?:19|20)\d{2}\b"),
]
YEAR_RANGE_PATTERN = re.compile(r"^(?:19|20)\d{2}\s*[-–]\s*(?:19|20)\d{2}$")
ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def _collect_matches(patterns: Iterable[Pattern], text: str) -> List[str]:
    """Non-overlapping matches in text order; at the same position the longer match wins."""
    candidates = []
    for priority, pattern in enumerate(patterns):
        for match in pattern.finditer(text):
            start, end = match.span()
            candidates.append((start, -(end - start), priority, end, match.group(0).strip()))
    candidates.sort()

    values = []
    last_end = -1
    for start, _, _, end, value in candidates:
        if start < last_end:
            continue
        last_end = end
        if value and value not in values:
            values.append(value)
    return values


def _with_protocol(url: str) -> str:
    return url if url.lower().startswith("http") else f"https://{url}"


def extract_emails(text: str) -> List[str]:
    return list(dict.fromkeys(EMAIL_PATTERN.findall(text)))


def extract_phone_numbers(text: str) -> List[str]:
    """Phone-like strings of 7-15 digits, skipping dates and year ranges; one per digit sequence."""
    phones = {}
    for candidate in _collect_matches(PHONE_PATTERNS, text):
        digits = re.sub(r"\D", "", candidate)
        if not 7 <= len(digits) <= 15:
            continue
        if YEAR_RANGE_PATTERN.match(candidate) or ISO_DATE_PATTERN.match(candidate):
            continue
        phones.setdefault(digits, candidate)
    return list(phones.values())


def extract_urls(text: str) -> List[str]:
    return list(dict.fromkeys(url.rstrip(".,;)") for url in URL_PATTERN.findall(text)))


def extract_linkedin_profile(text: str) -> Optional[str]:
    match = LINKEDIN_PATTERN.search(text)
    return _with_protocol(match.group(0)) if match else None


def extract_github_profile(text: str) -> Optional[str]:
    match = GITHUB_PATTERN.search(text)
    return _with_protocol(match.group(0)) if match else None


def extract_dates(text: str) -> List[str]:
    return _collect_matches(DATE_PATTERNS, text)
