"""Validation for link lists and preferences submitted through the API."""

import math
from typing import Any, Optional
from urllib.parse import urlsplit

VALID_LAYOUTS = ("grid", "list", "cards")
VALID_THEMES = ("light", "dark")
VALID_ACCENT_COLORS = ("blue", "green", "purple", "red", "orange", "pink", "cyan", "yellow")
VALID_BACKGROUNDS = ("white", "gray", "slate", "zinc")
MAX_PAGE_TITLE = 50


def _url_error(url: str) -> Optional[str]:
    try:
        parsed = urlsplit(url)
    except ValueError:
        return "Invalid URL"
    if not parsed.scheme:
        return "Invalid URL"
    if parsed.scheme not in ("http", "https"):
        return "URL must be HTTP or HTTPS"
    if not parsed.netloc:
        return "Invalid URL"
    return None


def validate_links(links: Any) -> Optional[str]:
    """
    Validate a full link list.

    Returns:
        The first error message, or None if the list is valid.
    """
    if not isinstance(links, list):
        return "Links must be an array"

    ids: set[Any] = set()
    for link in links:
        if not isinstance(link, dict):
            return "Invalid link format"
        order = link.get("order")
        if (
            not link.get("id")
            or not link.get("name")
            or not isinstance(link.get("url"), str)
            or not link.get("url")
            or not isinstance(order, (int, float))
            or isinstance(order, bool)
            or not math.isfinite(order)
        ):
            return "Invalid link format"
        if not isinstance(link["id"], (str, int)):
            return "Invalid link format"
        if link["id"] in ids:
            return "Duplicate link ID"
        ids.add(link["id"])
        if order < 0:
            return "Order must be non-negative"
        error = _url_error(link["url"])
        if error:
            return error
    return None


def validate_preferences(preferences: Any, *, partial: bool = False) -> Optional[str]:
    """
    Validate a preferences object.

    Args:
        preferences: Submitted preferences.
        partial: Import mode, where backgroundColor and pageTitle may be omitted.

    Returns:
        The first error message, or None if the preferences are valid.
    """
    if not isinstance(preferences, dict):
        return "Invalid preferences"
    if preferences.get("layout") not in VALID_LAYOUTS:
        return "Invalid layout"
    if preferences.get("theme") not in VALID_THEMES:
        return "Invalid theme"
    if preferences.get("accentColor") not in VALID_ACCENT_COLORS:
        return "Invalid accent color"

    background = preferences.get("backgroundColor")
    if not (partial and background is None) and background not in VALID_BACKGROUNDS:
        return "Invalid background color"

    title = preferences.get("pageTitle")
    if partial and not title:
        return None
    if not isinstance(title, str) or not title or len(title) > MAX_PAGE_TITLE:
        return f"Page title must be 1-{MAX_PAGE_TITLE} characters"
    return None
