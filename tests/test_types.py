from wikitabs.types import (
    Attachment,
    DocumentCitation,
    WebCitation,
    content_digest,
    merge_sources,
    parse_sources,
)


def test_parse_sources_keeps_known_kinds_and_drops_malformed():
    sources = parse_sources(
        [
            {"kind": "web", "uri": "https://a.example", "title": "A"},
            {"kind": "document", "title": "notes.txt", "cited_text": "quote"},
            {"kind": "web"},
            {"kind": "video", "uri": "x"},
            WebCitation(uri="https://b.example"),
        ]
    )
    assert sources == [
        WebCitation(uri="https://a.example", title="A"),
        DocumentCitation(title="notes.txt", cited_text="quote"),
        WebCitation(uri="https://b.example"),
    ]
    assert parse_sources(None) == []


def test_merge_sources_preserves_first_occurrence():
    a = WebCitation(uri="https://a.example", title="A")
    a_again = WebCitation(uri="https://a.example", title="Other title")
    doc = DocumentCitation(title="notes.txt", cited_text="quote")
    merged = merge_sources([a], [doc, a_again, doc])
    assert merged == [a, doc]


def test_attachment_helpers():
    image = Attachment(name="cat.PNG", mime_type="Image/PNG", data=b"abc")
    assert image.is_image
    assert image.base64 == "YWJj"
    assert not Attachment(name="a.pdf", mime_type="application/pdf", data=b"").is_image


def test_content_digest_is_short_and_stable():
    assert content_digest(b"hello") == content_digest("hello")
    assert len(content_digest(b"hello")) == 8
    assert content_digest(b"hello") != content_digest(b"hello!")
