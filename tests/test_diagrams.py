import asyncio

from conftest import ScriptedContentService, make_browser, until
from wikitabs.diagrams import find_diagram_prompts
from wikitabs.metrics import metrics
from wikitabs.types import TextDelta


def test_find_diagram_prompts_is_ordered_and_distinct():
    content = "a [DIAGRAM: one] b [DIAGRAM:two] c [DIAGRAM: one] d [DIAGRAM: unterminated"
    assert find_diagram_prompts(content) == ["one", "two"]
    assert find_diagram_prompts("") == []


def test_each_prompt_is_requested_once_per_session():
    async def scenario():
        service = ScriptedContentService()
        service.scripts["Heart"] = [
            TextDelta(text="Intro [DIAGRAM: heart valves] "),
            TextDelta(text="more text [DIAGRAM: heart valves]"),
        ]
        browser = make_browser(service)
        await browser.search("Heart")
        await browser.wait_idle()
        return browser, service

    browser, service = asyncio.run(scenario())
    assert service.diagram_calls == ["heart valves"]
    assert browser.active.diagrams["heart valves"].mime_type == "image/svg+xml"
    assert browser.diagrams.pending(browser.active.id) == frozenset()


def test_same_prompt_in_two_sessions_is_requested_for_each():
    async def scenario():
        service = ScriptedContentService()
        service.scripts["Heart"] = [TextDelta(text="[DIAGRAM: heart valves]")]
        browser = make_browser(service)
        await browser.search("Heart")
        await browser.wait_idle()
        second = (await browser.new_tab()).id
        await browser.search("Heart", session_id=second)
        await browser.wait_idle()
        return browser, service, second

    browser, service, second = asyncio.run(scenario())
    assert service.diagram_calls == ["heart valves", "heart valves"]
    assert "heart valves" in browser.session(second).diagrams
    assert len(service.calls) == 1


def test_failed_diagram_is_not_retried():
    async def scenario():
        service = ScriptedContentService()
        service.failing_diagrams = {"bad"}
        service.scripts["Odd"] = [TextDelta(text="[DIAGRAM: bad] and [DIAGRAM: good]")]
        browser = make_browser(service)
        await browser.search("Odd")
        await browser.wait_idle()
        rescanned = browser.diagrams.scan(browser.active.id)
        return browser, service, rescanned

    browser, service, rescanned = asyncio.run(scenario())
    session = browser.active
    assert rescanned == []
    assert "bad" in session.failed_diagrams
    assert "good" in session.diagrams
    assert sorted(service.diagram_calls) == ["bad", "good"]
    assert metrics.diagram_failures == 1


def test_outstanding_requests_are_bounded_per_session():
    async def scenario():
        service = ScriptedContentService()
        service.diagram_gate = asyncio.Event()
        service.scripts["Many"] = [TextDelta(text="[DIAGRAM: a] [DIAGRAM: b] [DIAGRAM: c]")]
        browser = make_browser(service, diagram_max_concurrency=2)
        await browser.search("Many")
        await until(lambda: service.diagram_active == 2)
        for _ in range(10):
            await asyncio.sleep(0)
        assert service.diagram_active == 2
        service.diagram_gate.set()
        await browser.wait_idle()
        return browser, service

    browser, service = asyncio.run(scenario())
    assert service.diagram_peak == 2
    assert set(browser.active.diagrams) == {"a", "b", "c"}


def test_diagram_for_content_no_longer_shown_is_dropped():
    async def scenario():
        service = ScriptedContentService()
        service.diagram_gate = asyncio.Event()
        service.scripts["Heart"] = [TextDelta(text="[DIAGRAM: heart valves]")]
        browser = make_browser(service)
        await browser.search("Heart")
        await until(lambda: service.diagram_active == 1)
        await browser.search("Cats")
        await until(lambda: not browser.active.is_loading)
        service.diagram_gate.set()
        await browser.wait_idle()
        return browser

    browser = asyncio.run(scenario())
    assert browser.active.current_topic == "Cats"
    assert browser.active.diagrams == {}
