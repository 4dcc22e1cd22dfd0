"""Dispatch by declared extension. Output is sanitized and truncated."""
from pathlib import PurePosixPath

from docchat.services.pdf_extractor import OCR_SUGGESTION, extract_pdf_text
from docchat.services.text_cleaning import decode_text, format_json, sanitize, truncate

UNSUPPORTED_TYPE_MESSAGE = (
    "Content extraction not supported for this file type. Supported: PDF, TXT, MD, CSV, JSON"
)
SUPPORTED_EXTENSIONS = (".pdf", ".txt", ".md", ".csv", ".json")


def file_extension(file_path: str) -> str:
    return PurePosixPath(file_path).suffix.lower()


def extract_content(data: bytes, file_path: str, max_chars: int | None = None) -> str:
    """Blocking; run it in a worker thread from async code."""
    ext = file_extension(file_path)
    if ext == ".pdf":
        content = truncate(sanitize(extract_pdf_text(data)), max_chars)
        return content or OCR_SUGGESTION
    # CSV rows stay on their own lines; sanitize only collapses within a line
    if ext in (".txt", ".md", ".csv"):
        return truncate(sanitize(decode_text(data)), max_chars)
    if ext == ".json":
        return truncate(format_json(decode_text(data)), max_chars)
    return UNSUPPORTED_TYPE_MESSAGE
