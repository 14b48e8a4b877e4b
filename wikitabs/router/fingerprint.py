from wikitabs.router.strategies import Strategy


def mode_tag(strategy: Strategy, web_search: bool) -> str:
    if strategy is Strategy.PAGE_TRANSLATION:
        return "translate"
    return "web" if web_search else "wiki"


def document_tag(name: str | None, digest: str | None = None) -> str:
    if not name:
        return ""
    return f"doc({name}@{digest})" if digest else f"doc({name})"


def normalize_topic(topic: str) -> str:
    return (topic or "").strip().lower()


def fingerprint(
    *,
    mode: str,
    topic: str,
    section_index: int,
    language: str,
    document: str = "",
) -> str:
    """Deterministic cache key, e.g. ``wiki::hypertext:0:English``."""
    return f"{mode}:{document}:{normalize_topic(topic)}:{section_index}:{language}"
