import asyncio
import random

import pytest

from conftest import ScriptedContentService, make_browser, make_settings
from wikitabs.browser import Browser
from wikitabs.errors import ExtractionError
from wikitabs.result_cache import ResultCache
from wikitabs.router.strategies import Strategy
from wikitabs.topics import RANDOM_TOPICS
from wikitabs.types import TextDelta, content_digest

NOTES = "Page one\fPage two\fPage three".encode()


def test_image_upload_switches_to_image_analysis():
    async def scenario():
        service = ScriptedContentService()
        browser = make_browser(service)
        await browser.bootstrap()
        await browser.wait_idle()
        await browser.set_web_search(True)
        await browser.wait_idle()
        plan = await browser.attach_file("cat.png", b"\x89PNG\r\n\x1a\n", "image/png")
        assert plan.strategy is Strategy.IMAGE_ANALYSIS
        await browser.wait_idle()
        return browser, service

    browser, service = asyncio.run(scenario())
    session = browser.active
    assert session.current_topic == "Analyze Image"
    assert session.document_mode
    assert not session.web_search
    assert session.attachment is not None and session.attachment.is_image
    assert session.history == ()
    assert session.title == "cat.png"
    assert service.calls[-1] == ("image", "Analyze Image", "English")


def test_pdf_upload_is_queried_as_document():
    async def scenario():
        service = ScriptedContentService()
        browser = make_browser(service)
        plan = await browser.attach_file("paper.pdf", b"%PDF-1.7", "application/pdf")
        assert plan.strategy is Strategy.DOCUMENT_QUERY
        await browser.wait_idle()
        await browser.search("Who wrote it?")
        await browser.wait_idle()
        return service

    service = asyncio.run(scenario())
    assert [c[1] for c in service.calls_for("document")] == ["Analyze Document", "Who wrote it?"]


def test_text_upload_opens_reading_view_without_generation():
    async def scenario():
        service = ScriptedContentService()
        browser = make_browser(service)
        plan = await browser.attach_file("notes.txt", NOTES, "text/plain")
        assert plan is None
        first = browser.active.content
        await browser.next_page()
        return browser, service, first

    browser, service, first = asyncio.run(scenario())
    session = browser.active
    assert first == "Page one"
    assert session.content == "Page two"
    assert session.is_reading_view
    assert session.page_count == 3
    assert session.document_digest == content_digest(NOTES)
    assert service.calls == []


def test_reading_view_translation_is_cached_per_page_and_language():
    async def scenario():
        service = ScriptedContentService()
        browser = make_browser(service)
        await browser.attach_file("notes.txt", NOTES, "text/plain")
        await browser.next_page()
        plan = await browser.set_language("French")
        assert plan.strategy is Strategy.PAGE_TRANSLATION
        await browser.wait_idle()
        await browser.previous_page()
        await browser.wait_idle()
        assert await browser.next_page() is None
        await browser.set_language("English")
        return browser, service

    browser, service = asyncio.run(scenario())
    assert [c[1] for c in service.calls_for("translate")] == ["Page two", "Page one"]
    digest = content_digest(NOTES)
    assert f"translate:doc(notes.txt@{digest}):notes.txt:1:French" in browser.cache
    assert browser.active.content == "Page two"


def test_questions_about_a_text_document_and_back_to_reading():
    async def scenario():
        service = ScriptedContentService()
        browser = make_browser(service)
        await browser.attach_file("notes.txt", NOTES, "text/plain")
        await browser.search("Summarize it")
        await browser.wait_idle()
        answer = browser.active.content
        await browser.back()
        return browser, answer

    browser, answer = asyncio.run(scenario())
    assert answer == "document Summarize it in English"
    assert browser.active.content == "Page one"
    assert browser.active.future == ("Summarize it",)


def test_unreadable_upload_leaves_session_untouched():
    async def scenario():
        browser = make_browser()
        await browser.bootstrap()
        await browser.wait_idle()
        before = browser.active
        with pytest.raises(ExtractionError):
            await browser.attach_file("broken.txt", b"\xff\xfe\xfa\x00\xc3", "text/plain")
        return before, browser.active

    before, after = asyncio.run(scenario())
    assert after is before


def test_clear_document_returns_to_default_topic():
    async def scenario():
        service = ScriptedContentService()
        browser = make_browser(service)
        await browser.bootstrap()
        await browser.wait_idle()
        await browser.attach_file("notes.txt", NOTES, "text/plain")
        await browser.set_language("German")
        await browser.wait_idle()
        await browser.clear_document()
        await browser.wait_idle()
        return browser, service

    browser, service = asyncio.run(scenario())
    session = browser.active
    assert session.current_topic == "Hypertext"
    assert session.language == "English"
    assert not session.document_mode
    assert session.document_name is None
    assert session.pages == ()
    assert session.history == ()
    assert session.content == "definition Hypertext in English"
    assert len(service.calls_for("definition")) == 1


def test_search_click_and_random_topic():
    async def scenario():
        browser = Browser(service=ScriptedContentService(), cfg=make_settings(), rng=random.Random(7))
        assert await browser.search("   ") is None
        await browser.search("  Cats ")
        await browser.click_word("Gravity,")
        await browser.random_topic()
        await browser.wait_idle()
        return browser

    browser = asyncio.run(scenario())
    session = browser.active
    assert session.history == ("Cats", "Gravity")
    assert session.current_topic in RANDOM_TOPICS
    assert session.current_topic != "Gravity"
    assert browser.recent_searches[1:] == ["Gravity", "Cats"]


def test_closing_a_tab_abandons_its_generation():
    async def scenario():
        service = ScriptedContentService()
        gate = asyncio.Event()
        service.scripts["Slow"] = [gate, TextDelta(text="never")]
        browser = make_browser(service)
        first = browser.active.id
        await browser.search("Slow")
        second = (await browser.new_tab()).id
        await browser.switch_tab(first)
        active = await browser.close_tab(first)
        gate.set()
        await browser.wait_idle()
        return browser, active, first, second

    browser, active, first, second = asyncio.run(scenario())
    assert active.id == second
    assert first not in browser.store
    assert len(browser.store) == 1


def test_closing_last_tab_leaves_a_blank_one():
    async def scenario():
        browser = make_browser()
        await browser.bootstrap()
        await browser.wait_idle()
        return await browser.close_tab(browser.active.id)

    fresh = asyncio.run(scenario())
    assert fresh.current_topic == ""
    assert fresh.title == "New Tab"


def test_bootstrap_is_a_noop_for_sessions_with_a_topic():
    async def scenario():
        service = ScriptedContentService()
        browser = make_browser(service)
        await browser.search("Cats")
        await browser.wait_idle()
        assert await browser.bootstrap() is None
        return browser, service

    browser, service = asyncio.run(scenario())
    assert browser.active.current_topic == "Cats"
    assert len(service.calls) == 1


def test_shared_empty_cache_is_used_by_every_browser():
    async def scenario():
        shared = ResultCache(max_size=8)
        first_service, second_service = ScriptedContentService(), ScriptedContentService()
        first = Browser(service=first_service, cache=shared, cfg=make_settings())
        second = Browser(service=second_service, cache=shared, cfg=make_settings())
        assert first.cache is shared
        assert second.cache is shared
        await first.search("Cats")
        await first.wait_idle()
        assert await second.search("Cats") is None
        return second, second_service

    second, second_service = asyncio.run(scenario())
    assert second.active.content == "definition Cats in English"
    assert second_service.calls == []


def test_back_and_forward_across_several_topics_reuse_cached_pages():
    async def scenario():
        service = ScriptedContentService()
        browser = make_browser(service)
        for topic in ("Alpha", "Beta", "Gamma", "Delta"):
            await browser.search(topic)
            await browser.wait_idle()
        start = browser.active
        calls = len(service.calls)
        for expected in ("Gamma", "Beta", "Alpha"):
            assert await browser.back() is None
            assert browser.active.current_topic == expected
            assert browser.active.content == f"definition {expected} in English"
        assert not browser.can_go_back()
        for expected in ("Beta", "Gamma", "Delta"):
            assert await browser.forward() is None
            assert browser.active.current_topic == expected
        assert not browser.can_go_forward()
        await browser.wait_idle()
        return browser, service, start, calls

    browser, service, start, calls = asyncio.run(scenario())
    end = browser.active
    assert end.current_topic == start.current_topic
    assert end.section_index == start.section_index
    assert end.history == start.history
    assert end.future == start.future == ()
    assert end.content == start.content
    assert len(service.calls) == calls == 4
