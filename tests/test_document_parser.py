# tests/test_document_parser.py
import fitz
import pytest

from testgenius.core.config import config
from testgenius.core.document_parser import extract_text
from testgenius.core.errors import DocumentError


def test_plain_text_is_decoded():
    data = "﻿1. भारत की राजधानी क्या है?\nA) मुंबई".encode("utf-8")
    text = extract_text("questions.txt", data, "text/plain")
    assert text.startswith("1. भारत")


def test_pdf_text_is_extracted():
    doc = fitz.open()
    page = doc.new_page()
    page.insert_text((72, 72), "What is the boiling point of water?")
    data = doc.tobytes()
    doc.close()

    text = extract_text("questions.pdf", data, "application/pdf")

    assert "boiling point of water" in text


def test_corrupt_pdf_is_rejected():
    with pytest.raises(DocumentError):
        extract_text("broken.pdf", b"definitely not a pdf", "application/pdf")


def test_unsupported_type_is_rejected():
    with pytest.raises(DocumentError):
        extract_text("notes.docx", b"PK\x03\x04", "application/vnd.openxmlformats-officedocument.wordprocessingml.document")


def test_empty_file_is_rejected():
    with pytest.raises(DocumentError):
        extract_text("empty.txt", b"", "text/plain")


def test_blank_text_is_rejected():
    with pytest.raises(DocumentError):
        extract_text("blank.txt", b"   \n\n  ", "text/plain")


def test_oversize_file_is_rejected(monkeypatch):
    monkeypatch.setattr(config, "MAX_UPLOAD_MB", 0)
    with pytest.raises(DocumentError):
        extract_text("big.txt", b"some text", "text/plain")
