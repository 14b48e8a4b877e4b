"""Tabbed topic explorer: per-tab sessions, streamed generations, result cache and diagram side-channel."""

from wikitabs.browser import Browser

__all__ = ["Browser"]
