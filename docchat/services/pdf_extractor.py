"""
PDF text extraction with PyMuPDF.

The document is opened from memory in the calling thread (no rendering
worker). Text is read per page as positioned fragments and line breaks are
reconstructed from their coordinates.
"""
import logging
from collections.abc import Iterable, Iterator

import fitz  # PyMuPDF

from docchat.config import settings
from docchat.errors import CorruptedPdfError, EncryptedPdfError, PdfPageLimitError

logger = logging.getLogger(__name__)

OCR_SUGGESTION = "This PDF appears to be image-based or contains non-extractable text. Consider OCR."

# Max coordinate drift (points) still treated as the same line
LINE_EPSILON = 2.0

Fragment = tuple[float, float, str]


def truncation_marker(scanned: int, total: int) -> str:
    return f"[Truncated at {scanned}/{total} pages for size/performance.]"


def assemble_lines(fragments: Iterable[Fragment]) -> list[str]:
    """
    Joins positioned fragments (x, y, text) into lines.

    A new line starts when y moves by more than LINE_EPSILON or x goes back
    by more than LINE_EPSILON; otherwise fragments are joined with one space.
    """
    lines: list[str] = []
    line = ""
    last_x = 0.0
    last_y = 0.0
    for x, y, text in fragments:
        if not text:
            continue
        new_line = abs(y - last_y) > LINE_EPSILON
        backtrack = x < last_x - LINE_EPSILON
        if new_line or backtrack:
            line = line.rstrip()
            if line:
                lines.append(line)
            line = text
        else:
            line = f"{line} {text}" if line else text
        last_x = x
        last_y = y
    line = line.rstrip()
    if line:
        lines.append(line)
    return lines


def _page_fragments(page: fitz.Page) -> Iterator[Fragment]:
    """Text spans of a page in content order, positioned by their baseline origin."""
    text_dict = page.get_text("dict")
    for block in text_dict.get("blocks", []):
        for span_line in block.get("lines", []):
            for span in span_line.get("spans", []):
                x, y = span.get("origin", (0.0, 0.0))
                yield x, y, span.get("text", "")


def _open_pdf(data: bytes) -> fitz.Document:
    try:
        doc = fitz.open(stream=data, filetype="pdf")
    except Exception as e:
        message = str(e)
        if "password" in message.lower() or "encrypt" in message.lower():
            raise EncryptedPdfError() from e
        raise CorruptedPdfError(message) from e
    if doc.needs_pass:
        doc.close()
        raise EncryptedPdfError()
    return doc


def extract_pdf_text(
    data: bytes,
    max_pages: int | None = None,
    soft_pages: int | None = None,
) -> str:
    """
    Returns the raw (unsanitized) text of a PDF, pages separated by a blank line.

    Raises:
        EncryptedPdfError: Document is password-protected
        CorruptedPdfError: Document cannot be opened
        PdfPageLimitError: Page count exceeds the hard ceiling
    """
    max_pages = settings.max_pdf_pages if max_pages is None else max_pages
    soft_pages = settings.soft_pdf_pages if soft_pages is None else soft_pages

    with _open_pdf(data) as doc:
        total = doc.page_count
        if total > max_pages:
            raise PdfPageLimitError(total, max_pages)
        cap = min(total, soft_pages)
        logger.info("Reading PDF: %s pages (scanning %s)", total, cap)

        out: list[str] = []
        for page_number in range(cap):
            out.extend(assemble_lines(_page_fragments(doc[page_number])))
            out.append("")  # page break
        # An image-only prefix stays empty so the caller can suggest OCR
        if cap < total and any(out):
            out.append(truncation_marker(cap, total))
    return "\n".join(out)
