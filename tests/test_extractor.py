import pytest

from wikitabs.errors import ExtractionError
from wikitabs.providers.extractor import TextDocumentExtractor, is_text_payload, paginate


def test_text_payload_detection():
    assert is_text_payload("a.txt", "text/plain; charset=utf-8")
    assert is_text_payload("data.json", "application/json")
    assert is_text_payload("README.md", "application/octet-stream")
    assert is_text_payload("notes.txt", "")
    assert not is_text_payload("cat.png", "image/png")
    assert not is_text_payload("paper.pdf", "application/pdf")
    assert not is_text_payload("blob.bin", "application/octet-stream")


def test_form_feeds_mark_pages():
    assert paginate("one\f\ftwo\f three ", page_chars=5) == ["one", "two", "three"]


def test_paragraphs_are_packed_into_pages():
    text = "aaaa\n\nbbbb\n\ncccc"
    assert paginate(text, page_chars=10) == ["aaaa\n\nbbbb", "cccc"]


def test_oversized_paragraph_is_split():
    assert paginate("x" * 25, page_chars=10) == ["x" * 10, "x" * 10, "x" * 5]


def test_extract_text_document():
    extractor = TextDocumentExtractor(page_chars=100)
    doc = extractor.extract("notes.txt", "\ufeffHello\r\n\r\nWorld".encode("utf-8"), "text/plain")
    assert doc.text == "Hello\n\nWorld"
    assert doc.pages == ("Hello\n\nWorld",)


def test_extract_skips_binary_and_empty_files():
    extractor = TextDocumentExtractor()
    assert extractor.extract("cat.png", b"\x89PNG", "image/png") is None
    assert extractor.extract("empty.txt", b"  \n ", "text/plain") is None


def test_extract_rejects_undecodable_text():
    with pytest.raises(ExtractionError):
        TextDocumentExtractor().extract("bad.txt", b"\xff\xfe\xfa", "text/plain")
