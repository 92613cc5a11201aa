"""Tests for source extraction."""

from app.analysis.citation_extractor import extract_domain, extract_sources, get_unique_domains


class TestExtractDomain:
    def test_strips_www(self):
        assert extract_domain("https://www.G2.com/path?q=1") == "g2.com"

    def test_keeps_subdomain(self):
        assert extract_domain("https://blog.acme.io/post") == "blog.acme.io"

    def test_not_a_url(self):
        assert extract_domain("not a url") == ""


class TestExtractSources:
    def test_bare_url(self):
        sources = extract_sources("See https://www.g2.com/categories/crm.")
        assert len(sources) == 1
        assert sources[0].url == "https://www.g2.com/categories/crm"
        assert sources[0].domain == "g2.com"
        assert sources[0].title == "g2.com"

    def test_markdown_link_uses_anchor_as_title(self):
        sources = extract_sources("Read [the G2 review](https://g2.com/acme) first.")
        assert [(s.url, s.title) for s in sources] == [("https://g2.com/acme", "the G2 review")]

    def test_numeric_anchor_falls_back_to_domain(self):
        sources = extract_sources("Acme is fast [1](https://acme.com/speed).")
        assert sources[0].title == "acme.com"

    def test_footnote_definition_with_title(self):
        text = 'Acme leads [1].\n\n[1]: https://capterra.com/acme "Capterra listing"'
        sources = extract_sources(text)
        assert [(s.url, s.title) for s in sources] == [("https://capterra.com/acme", "Capterra listing")]

    def test_native_citations_come_first(self):
        text = "More at https://g2.com/acme"
        sources = extract_sources(text, [("https://acme.com/about", "About Acme")])
        assert [s.url for s in sources] == ["https://acme.com/about", "https://g2.com/acme"]
        assert sources[0].title == "About Acme"

    def test_deduplicates_by_url(self):
        text = "[Acme](https://acme.com) and again https://acme.com"
        sources = extract_sources(text, [("https://acme.com", None)])
        assert len(sources) == 1

    def test_limit(self):
        text = " ".join(f"https://site{i}.com" for i in range(15))
        assert len(extract_sources(text)) == 10
        assert len(extract_sources(text, limit=3)) == 3

    def test_no_sources(self):
        assert extract_sources("No links here.") == []


def test_unique_domains_keep_first_seen_order():
    sources = extract_sources("https://a.com/1 https://b.com https://a.com/2")
    assert get_unique_domains(sources) == ["a.com", "b.com"]
