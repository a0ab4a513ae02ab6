import pytest
import requests

from scholar.core.errors import ExtractionError, NetworkError
from scholar.core.models import SourceType
from scholar.scraper.extract import MAX_CONTENT_CHARS, extract_page
from scholar.scraper.fetch import RelayFetcher
from scholar.scraper.service import (
    SITE_PAGES,
    UNAVAILABLE_MESSAGE,
    PageScraper,
    relevant_pages,
)

PAGE = """
<html><head><title>MCA Department</title><script>var x = 1;</script></head>
<body>
<nav><a href="/html/home.html">Home</a></nav>
<h1>Master of Computer Applications</h1>
<h2>Faculty</h2>
<p>The Head of Department is Dr. Premasudha B G. Contact hodmca@sit.ac.in or 9876543210.</p>
<table>
  <tr><th>Name</th><th>Designation</th></tr>
  <tr><td>Dr. Premasudha B G</td><td>Professor</td></tr>
</table>
<a href="department.php?deptid=1">Computer Science</a>
<a href="#top">Top</a>
<footer>Copyright SIT</footer>
</body></html>
"""


class FakeResponse:
    def __init__(self, status_code=200, text=""):
        self.status_code = status_code
        self.text = text


class FakeSession:
    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.urls = []

    def get(self, url, headers=None, timeout=None):
        self.urls.append(url)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class FakeFetcher:
    def __init__(self, pages=None, fail=()):
        self.pages = pages or {}
        self.fail = set(fail)
        self.calls = []

    def fetch(self, url):
        self.calls.append(url)
        if url in self.fail:
            raise NetworkError("all relays failed")
        return self.pages.get(url, PAGE)


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_extract_page_fields():
    page = extract_page(PAGE, "https://sit.ac.in/html/department.php?deptid=15")

    assert page.title == "MCA Department"
    assert "Master of Computer Applications" in page.headings
    assert page.tables == [["Name | Designation", "Dr. Premasudha B G | Professor"]]
    assert "hodmca@sit.ac.in" in page.emails
    assert page.phones == ["9876543210"]
    assert "var x" not in page.main_content
    assert "Copyright" not in page.main_content
    hrefs = [link.href for link in page.links]
    assert "https://sit.ac.in/html/department.php?deptid=1" in hrefs
    assert not any(h.endswith("#top") for h in hrefs)


def test_extract_page_caps_content_and_falls_back_to_untitled():
    page = extract_page("<html><body><p>" + "word " * 5000 + "</p></body></html>", "https://x.org")

    assert page.title == "Untitled Page"
    assert len(page.main_content) == MAX_CONTENT_CHARS


def test_extract_page_rejects_empty_markup():
    with pytest.raises(ExtractionError):
        extract_page("   \n", "https://sit.ac.in/html/home.html")


def test_empty_page_is_a_failed_scrape_and_not_cached():
    url = SITE_PAGES["contact"]
    scraper = PageScraper(FakeFetcher(pages={url: ""}), clock=FakeClock())

    result = scraper.scrape_page(url)

    assert result.success is False
    assert "Empty response" in result.error
    assert scraper.cache_stats()["size"] == 0


def test_relevant_pages_routing():
    assert relevant_pages("What is the hostel fee?") == [
        SITE_PAGES["admissions"],
        SITE_PAGES["facilities"],
    ]
    assert relevant_pages("Who is the HOD of MCA?") == [SITE_PAGES["mca"]]
    assert relevant_pages("tell me something") == [SITE_PAGES["home"], SITE_PAGES["mca"]]
    assert relevant_pages("mca syllabus") == [SITE_PAGES["mca"]]


def test_scrape_page_uses_cache_within_ttl():
    clock = FakeClock()
    fetcher = FakeFetcher()
    scraper = PageScraper(fetcher, ttl_s=1800, clock=clock)
    url = SITE_PAGES["mca"]

    first = scraper.scrape_page(url)
    clock.now += 1799
    second = scraper.scrape_page(url)

    assert first.success and not first.from_cache
    assert second.success and second.from_cache
    assert fetcher.calls == [url]

    clock.now += 2
    third = scraper.scrape_page(url)
    assert not third.from_cache
    assert fetcher.calls == [url, url]


def test_force_refresh_bypasses_cache():
    fetcher = FakeFetcher()
    scraper = PageScraper(fetcher, clock=FakeClock())
    url = SITE_PAGES["home"]

    scraper.scrape_page(url)
    scraper.scrape_page(url, force_refresh=True)

    assert fetcher.calls == [url, url]


def test_scrape_failure_is_reported_not_raised():
    url = SITE_PAGES["home"]
    scraper = PageScraper(FakeFetcher(fail=[url]), clock=FakeClock())

    result = scraper.scrape_page(url)

    assert result.success is False
    assert "all relays failed" in result.error
    assert scraper.cache_stats()["size"] == 0


def test_search_site_builds_context_and_citations():
    scraper = PageScraper(FakeFetcher(), clock=FakeClock())

    found = scraper.search_site("Who is the HOD of MCA?")

    assert found.relevant_pages == [SITE_PAGES["mca"]]
    assert f"--- SOURCE: {SITE_PAGES['mca']} ---" in found.content
    assert "Emails: hodmca@sit.ac.in" in found.content
    assert len(found.citations) == 1
    citation = found.citations[0]
    assert citation.source_type is SourceType.COLLEGE_WEB
    assert citation.url == SITE_PAGES["mca"]
    assert citation.title == "MCA Department"
    assert citation.snippet.startswith("...")


def test_search_site_when_every_page_fails():
    scraper = PageScraper(FakeFetcher(fail=SITE_PAGES.values()), clock=FakeClock())

    found = scraper.search_site("placement record")

    assert found.content == UNAVAILABLE_MESSAGE
    assert found.citations == []
    assert found.relevant_pages == [SITE_PAGES["placement"]]


def test_prefetch_and_clear_cache():
    scraper = PageScraper(FakeFetcher(), clock=FakeClock())

    assert scraper.prefetch() == 4
    assert scraper.cache_stats()["size"] == 4

    scraper.clear_cache()
    assert scraper.cache_stats() == {"size": 0, "urls": []}


def test_relay_fetcher_rotates_after_failure():
    sleeps = []
    session = FakeSession(
        [requests.ConnectionError("refused"), FakeResponse(500), FakeResponse(200, "<html/>")]
    )
    fetcher = RelayFetcher(
        ["https://r1/?u=", "https://r2/?u=", "https://r3/?u="],
        session=session,
        sleep=sleeps.append,
    )

    assert fetcher.fetch("https://sit.ac.in/a b") == "<html/>"
    assert [u.split("?")[0] for u in session.urls] == ["https://r1/", "https://r2/", "https://r3/"]
    assert session.urls[0].endswith("https%3A%2F%2Fsit.ac.in%2Fa%20b")
    assert sleeps == [0.5, 1.0]
    assert fetcher.current_relay == "https://r3/?u="


def test_relay_fetcher_raises_network_error_when_all_fail():
    session = FakeSession([FakeResponse(502)] * 3)
    fetcher = RelayFetcher(["https://r1/?u="], session=session, sleep=lambda _s: None)

    with pytest.raises(NetworkError):
        fetcher.fetch("https://sit.ac.in")
    assert len(session.urls) == 3
