from __future__ import annotations

import pytest

from overlaykit.core.selectors import Selector, SelectorError, parse_selector

pytestmark = pytest.mark.fast


@pytest.mark.parametrize(
    "text, labels, expected",
    [
        ("app=web", {"app": "web"}, True),
        ("app==web", {"app": "web"}, True),
        ("app=web", {"app": "api"}, False),
        ("app!=web", {"app": "api"}, True),
        ("app!=web", {}, True),
        ("app=web,tier!=db", {"app": "web", "tier": "db"}, False),
        ("env in (dev, qa)", {"env": "qa"}, True),
        ("env in (dev, qa)", {}, False),
        ("env notin (prod)", {}, True),
        ("env notin (prod)", {"env": "prod"}, False),
        ("canary", {"canary": "true"}, True),
        ("!canary", {"canary": "true"}, False),
        ("!canary", {}, True),
        ("app.kubernetes.io/name=web", {"app.kubernetes.io/name": "web"}, True),
    ],
)
def test_selector_matching(text: str, labels, expected: bool) -> None:
    assert Selector.parse(text).matches(labels) is expected


def test_empty_selector_matches_everything() -> None:
    sel = parse_selector("  ")
    assert sel.empty
    assert sel.matches({})


def test_invalid_requirement_raises_selector_error() -> None:
    with pytest.raises(SelectorError, match="unable to parse"):
        parse_selector("a=b=c")
    # SelectorError is also a ValueError for callers that only know that.
    with pytest.raises(ValueError):
        parse_selector("in (x)")
