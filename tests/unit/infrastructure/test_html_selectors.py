"""Tests for the CSS-selector extraction helpers."""

from __future__ import annotations

from cehennemarr.infrastructure.common.html_selectors import (
    extract_attr,
    extract_links,
    extract_text,
    first_attr,
    has_attr,
    parse_html,
    select_items,
)

_HTML = """
<div class="poster">
  <a href="/inception-2010/"><img alt="Inception" src="/i.jpg"></a>
  <h4 class="title"> Inception </h4>
  <span class="year">2010</span>
  <iframe data-src="https://hdfilmcehennemi.mobi/video/embed/abc/"></iframe>
  <video><track src="/tr.vtt" srclang="tr" default></track></video>
</div>
"""


class TestSelectors:
    def test_select_items_fallback_chain(self) -> None:
        soup = parse_html(_HTML)
        assert select_items(soup, ".missing", "span.year")[0].get_text() == "2010"
        assert select_items(soup, ".missing") == []

    def test_extract_text_strips(self) -> None:
        soup = parse_html(_HTML)
        assert extract_text(soup, "h4.title") == "Inception"
        assert extract_text(soup, ".missing", default="?") == "?"

    def test_extract_attr_with_fallback(self) -> None:
        soup = parse_html(_HTML)
        assert extract_attr(soup, "a.none", "href", "a[href]") == "/inception-2010/"

    def test_first_attr_prefers_order(self) -> None:
        iframe = parse_html(_HTML).select_one("iframe")
        assert iframe is not None
        assert first_attr(iframe, "src", "data-src").endswith("/embed/abc/")

    def test_has_attr_for_boolean_attribute(self) -> None:
        track = parse_html(_HTML).select_one("video track")
        assert track is not None
        assert has_attr(track, "default") is True
        assert has_attr(track, "kind") is False

    def test_extract_links_resolves_base(self) -> None:
        links = extract_links(parse_html(_HTML), base_url="https://www.hdfilmcehennemi.ws")
        assert links == [
            {"text": "", "href": "https://www.hdfilmcehennemi.ws/inception-2010/"}
        ]
