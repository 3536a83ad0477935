# testgenius/core/document_parser.py
import logging
import fitz  # PyMuPDF
from .config import config
from .errors import DocumentError

logger = logging.getLogger(__name__)

PDF_TYPES = ("application/pdf",)
TEXT_TYPES = ("text/plain",)

def _detect_kind(filename: str, content_type: str = None) -> str:
    name = (filename or "").lower()
    if name.endswith(".pdf") or content_type in PDF_TYPES:
        return "pdf"
    if name.endswith(".txt") or content_type in TEXT_TYPES:
        return "text"
    raise DocumentError("Unsupported file type. Please upload a PDF or TXT file.")

def extract_text(filename: str, data: bytes, content_type: str = None) -> str:
    """Turn an uploaded PDF or plain-text file into raw text"""
    kind = _detect_kind(filename, content_type)

    if not data:
        raise DocumentError("The uploaded file is empty.")

    if len(data) > config.MAX_UPLOAD_BYTES:
        raise DocumentError(f"File is too large (max {config.MAX_UPLOAD_MB}MB).")

    if kind == "pdf":
        text = _extract_pdf(filename, data)
    else:
        text = _decode_text(data)

    text = text.strip()
    if not text:
        raise DocumentError("No readable text found in the uploaded file.")

    if len(text) > config.MAX_DOCUMENT_CHARS:
        logger.warning(f"Document {filename} truncated to {config.MAX_DOCUMENT_CHARS} characters")
        text = text[:config.MAX_DOCUMENT_CHARS]

    logger.info(f"✅ Extracted {len(text)} characters from {filename}")
    return text

def _extract_pdf(filename: str, data: bytes) -> str:
    parts = []
    try:
        with fitz.open(stream=data, filetype="pdf") as doc:
            for page in doc:
                parts.append(page.get_text("text") or "")
    except Exception as e:
        logger.error(f"❌ PDF parsing failed for {filename}: {e}")
        raise DocumentError("Failed to read the PDF file. It may be corrupted or password protected.")
    return "\n".join(parts)

def _decode_text(data: bytes) -> str:
    for encoding in ("utf-8-sig", "utf-16"):
        try:
            return data.decode(encoding)
        except UnicodeDecodeError:
            continue
    raise DocumentError("Text file must be UTF-8 or UTF-16 encoded.")
