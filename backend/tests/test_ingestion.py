"""
Tests for data ingestion services.

These tests use mocked HTTP responses (httpx.MockTransport) to verify
parsing logic without requiring network access.
"""

import random
from datetime import datetime, timezone

import httpx

from llm_news.errors import FetchErrorKind
from llm_news.models.domain import UNKNOWN_AUTHOR
from llm_news.services.data_ingestion.articles import (
    CSDNFetcher,
    DevToFetcher,
    HackerNewsFetcher,
    parse_devto_tags,
)
from llm_news.services.data_ingestion.base import (
    normalize_authors,
    parse_count,
    parse_timestamp,
)
from llm_news.services.data_ingestion.curated import CURATED_REPOS, CuratedRepoFetcher
from llm_news.services.data_ingestion.github import (
    GitHubSearchFetcher,
    GitHubTrendingFetcher,
    create_search_config,
    parse_trending_page,
)
from llm_news.services.data_ingestion.papers_with_code import (
    PapersWithCodePaperFetcher,
    PapersWithCodeRepoFetcher,
)


# Sample GitHub trending page: a broad-keyword match, a non-AI row, a core match
SAMPLE_TRENDING_HTML = """
<html><body>
<article class="Box-row">
  <h2 class="h3 lh-condensed"><a href="/bob/vector-store"> <span>bob /</span> vector-store </a></h2>
  <p class="col-9 color-fg-muted my-1 pr-4">Fast tensor storage</p>
  <div class="f6 color-fg-muted mt-2">
    <span class="d-inline-block ml-0 mr-3"><span itemprop="programmingLanguage">Rust</span></span>
    <a class="Link--muted d-inline-block mr-3" href="/bob/vector-store/stargazers">2,100</a>
    <a class="Link--muted d-inline-block mr-3" href="/bob/vector-store/forks">40</a>
    <span class="d-inline-block float-sm-right">70 stars today</span>
  </div>
</article>
<article class="Box-row">
  <h2 class="h3 lh-condensed"><a href="/someone/dotfiles"> someone / dotfiles </a></h2>
  <p class="col-9 color-fg-muted my-1 pr-4">My personal config</p>
  <div class="f6 color-fg-muted mt-2">
    <a class="Link--muted d-inline-block mr-3" href="/someone/dotfiles/stargazers">99</a>
  </div>
</article>
<article class="Box-row">
  <h2 class="h3 lh-condensed"><a href="/acme/llm-toolkit"> <span>acme /</span> llm-toolkit </a></h2>
  <p class="col-9 color-fg-muted my-1 pr-4">Toolkit for building agents</p>
  <div class="f6 color-fg-muted mt-2">
    <span class="d-inline-block ml-0 mr-3"><span itemprop="programmingLanguage">Python</span></span>
    <a class="Link--muted d-inline-block mr-3" href="/acme/llm-toolkit/stargazers">12,345</a>
    <a class="Link--muted d-inline-block mr-3" href="/acme/llm-toolkit/forks">678</a>
    <span class="d-inline-block float-sm-right">1,400 stars today</span>
  </div>
</article>
<article class="Box-row">
  <h2 class="h3 lh-condensed"><a href="/acme/bare-ml"> acme / bare-ml </a></h2>
</article>
</body></html>
"""

SAMPLE_SEARCH_RESPONSE = {
    "total_count": 2,
    "items": [
        {
            "full_name": "acme/llm-toolkit",
            "html_url": "https://github.com/acme/llm-toolkit",
            "description": "Toolkit for building agents",
            "language": "Python",
            "stargazers_count": 12345,
            "forks_count": 678,
            "pushed_at": "2025-02-27T08:00:00Z",
            "topics": ["llm", "agents"],
        },
        {
            "full_name": "acme/old-ml",
            "html_url": "https://github.com/acme/old-ml",
            "description": None,
            "language": None,
            "stargazers_count": 999,
            "forks_count": 1,
            "pushed_at": "yesterday-ish",
            "topics": [],
        },
    ],
}

SAMPLE_PWC_RESPONSE = {
    "count": 2,
    "results": [
        {
            "title": "A Novel Approach to Language Modeling",
            "url_abs": "https://paperswithcode.com/paper/a-novel-approach",
            "url_pdf": "https://arxiv.org/pdf/2401.00001",
            "arxiv_id": "2401.00001",
            "published": "2025-02-20",
            "authors": [{"name": "Ada Lovelace"}, {"name": "Alan Turing"}],
            "abstract": "We present a new transformer. Code is available.",
            "tasks": [{"name": "Language Modelling"}],
            "repositories": [
                {"url": "https://github.com/ada/novel-lm", "framework": "pytorch", "stars": 120},
                {"url": "https://github.com/someone/novel-lm/fork", "framework": "pytorch"},
                {"url": "https://gitlab.com/ada/mirror", "framework": "jax"},
            ],
        },
        {
            "title": "Undated Work",
            "url_abs": "https://paperswithcode.com/paper/undated-work",
            "published": "sometime in spring",
            "authors": 42,
            "abstract": "",
            "tasks": [],
            "repositories": [],
        },
    ],
}


def json_transport(routes: dict) -> httpx.MockTransport:
    """MockTransport answering path -> payload; unknown paths get 404."""

    def handler(request: httpx.Request) -> httpx.Response:
        payload = routes.get(request.url.path)
        if payload is None:
            return httpx.Response(404)
        if isinstance(payload, httpx.Response):
            return payload
        if isinstance(payload, str):
            return httpx.Response(200, text=payload)
        return httpx.Response(200, json=payload)

    return httpx.MockTransport(handler)


class TestFieldHelpers:
    """Tests for shared parsing helpers."""

    def test_normalize_authors_shapes(self):
        assert normalize_authors("Ada Lovelace") == ["Ada Lovelace"]
        assert normalize_authors(["Ada", " Alan "]) == ["Ada", "Alan"]
        assert normalize_authors([{"name": "Ada"}, {"affiliation": "x"}]) == ["Ada"]

    def test_normalize_authors_falls_back_to_sentinel(self):
        assert normalize_authors(None) == [UNKNOWN_AUTHOR]
        assert normalize_authors(42) == [UNKNOWN_AUTHOR]
        assert normalize_authors([]) == [UNKNOWN_AUTHOR]
        assert normalize_authors("   ") == [UNKNOWN_AUTHOR]

    def test_parse_timestamp_layouts(self):
        expected = datetime(2025, 2, 20, tzinfo=timezone.utc)
        assert parse_timestamp("2025-02-20") == (expected, False)
        assert parse_timestamp("2025/02/20") == (expected, False)
        assert parse_timestamp("2025-02-20T00:00:00Z") == (expected, False)
        assert parse_timestamp(expected.timestamp()) == (expected, False)

    def test_parse_timestamp_unparsable_is_flagged(self):
        before = datetime.now(timezone.utc)
        value, estimated = parse_timestamp("sometime in spring")
        assert estimated is True
        assert value >= before

    def test_parse_count(self):
        assert parse_count("1,400 stars today") == 1400
        assert parse_count("") == 0
        assert parse_count("no digits") == 0


class TestGitHubTrending:
    """Tests for the trending page scraper."""

    def test_parse_rows(self):
        repos = parse_trending_page(SAMPLE_TRENDING_HTML, "daily")

        names = [r.name for r in repos]
        assert names == ["bob/vector-store", "someone/dotfiles", "acme/llm-toolkit", "acme/bare-ml"]

        toolkit = repos[2]
        assert toolkit.url == "https://github.com/acme/llm-toolkit"
        assert toolkit.language == "Python"
        assert toolkit.stars == 12345
        assert toolkit.forks == 678
        assert toolkit.gained_stars == 1400
        assert toolkit.trend_metrics.stars_24h == 1400

    def test_missing_subfields_become_zero(self):
        bare = parse_trending_page(SAMPLE_TRENDING_HTML, "daily")[3]
        assert bare.stars == 0
        assert bare.description == ""
        assert bare.language == ""

    def test_weekly_gain_is_per_day(self):
        repos = parse_trending_page(SAMPLE_TRENDING_HTML, "weekly")
        assert repos[2].trend_metrics.stars_24h == 200
        assert repos[2].gained_stars == 1400

    async def test_fetch_filters_and_orders_ai_rows(self):
        fetcher = GitHubTrendingFetcher(
            transport=json_transport({"/trending": SAMPLE_TRENDING_HTML}),
            pages=[("/trending", "daily")],
        )
        result = await fetcher.fetch()

        assert result.success
        # Core vocabulary matches come before broad-keyword matches
        assert [r.name for r in result.items] == [
            "acme/llm-toolkit",
            "acme/bare-ml",
            "bob/vector-store",
        ]

    async def test_one_failed_page_is_skipped(self):
        fetcher = GitHubTrendingFetcher(
            transport=json_transport({"/trending": SAMPLE_TRENDING_HTML}),
            pages=[("/trending", "daily"), ("/trending/go", "daily")],
        )
        result = await fetcher.fetch()

        assert result.success
        assert len(result.items) == 3

    async def test_all_pages_failing_is_an_error(self):
        fetcher = GitHubTrendingFetcher(
            transport=json_transport({}),
            pages=[("/trending", "daily"), ("/trending/go", "daily")],
        )
        result = await fetcher.fetch()

        assert not result.success
        assert result.error.kind == FetchErrorKind.STATUS
        assert result.items == []


class TestGitHubSearch:
    """Tests for the search supplement."""

    async def test_maps_api_items(self):
        fetcher = GitHubSearchFetcher(
            transport=json_transport({"/search/repositories": SAMPLE_SEARCH_RESPONSE}),
            count=5,
            queries=["topic:llm sort:stars"],
        )
        result = await fetcher.fetch()

        assert result.success
        toolkit, old = result.items
        assert toolkit.trend_metrics.stars_24h == 12
        assert toolkit.tech_stack == ["llm", "agents"]
        assert toolkit.last_commit == datetime(2025, 2, 27, 8, tzinfo=timezone.utc)
        assert toolkit.timestamp_estimated is False

        assert old.description == ""
        assert old.timestamp_estimated is True

    async def test_token_sent_when_configured(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json={"items": []})

        fetcher = GitHubSearchFetcher(
            config=create_search_config(token="secret"),
            transport=httpx.MockTransport(handler),
            queries=["topic:llm sort:stars"],
        )
        await fetcher.fetch()

        assert seen["auth"] == "token secret"

    async def test_stops_once_count_reached(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request.url.params["q"])
            return httpx.Response(200, json=SAMPLE_SEARCH_RESPONSE)

        fetcher = GitHubSearchFetcher(
            transport=httpx.MockTransport(handler),
            count=2,
            queries=["q1", "q2", "q3"],
        )
        result = await fetcher.fetch()

        assert len(result.items) == 2
        assert calls == ["q1"]

    async def test_search_once_orders_by_sort_key(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url.params)
            return httpx.Response(200, json=SAMPLE_SEARCH_RESPONSE)

        fetcher = GitHubSearchFetcher(transport=httpx.MockTransport(handler))
        repos = await fetcher.search_once("llama AI language model", sort="stars")

        assert [r.name for r in repos] == ["acme/llm-toolkit", "acme/old-ml"]
        assert seen[0]["q"] == "llama AI language model"
        assert seen[0]["sort"] == "stars"
        assert seen[0]["order"] == "desc"


class TestFetchErrors:
    """Failures become FetchError values, never exceptions."""

    async def test_status_error(self):
        fetcher = DevToFetcher(transport=json_transport({"/api/articles": httpx.Response(500)}))
        result = await fetcher.fetch()
        assert result.error.kind == FetchErrorKind.STATUS

    async def test_transport_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        fetcher = DevToFetcher(transport=httpx.MockTransport(handler))
        result = await fetcher.fetch()
        assert result.error.kind == FetchErrorKind.TRANSPORT

    async def test_decode_error(self):
        fetcher = DevToFetcher(transport=json_transport({"/api/articles": "<html>not json</html>"}))
        result = await fetcher.fetch()
        assert result.error.kind == FetchErrorKind.DECODE
        assert "Dev.to" in str(result)


class TestPapersWithCode:
    """Tests for the Papers with Code paper and repository fetchers."""

    async def test_papers_with_seeded_placeholder_citations(self):
        transport = json_transport({"/api/v1/papers/": SAMPLE_PWC_RESPONSE})

        first = await PapersWithCodePaperFetcher(transport=transport, rng=random.Random(7)).fetch()
        second = await PapersWithCodePaperFetcher(transport=transport, rng=random.Random(7)).fetch()

        assert [p.citation_count for p in first.items] == [p.citation_count for p in second.items]
        for paper in first.items:
            assert paper.citations_estimated is True
            assert 10 <= paper.citation_count <= 59

    async def test_paper_fields(self):
        transport = json_transport({"/api/v1/papers/": SAMPLE_PWC_RESPONSE})
        result = await PapersWithCodePaperFetcher(transport=transport, rng=random.Random(1)).fetch()

        paper, undated = result.items
        assert paper.authors == ["Ada Lovelace", "Alan Turing"]
        assert paper.keywords == ["Language Modelling"]
        assert paper.published_date == datetime(2025, 2, 20, tzinfo=timezone.utc)
        assert paper.arxiv_id == "2401.00001"
        assert paper.date_estimated is False

        assert undated.authors == [UNKNOWN_AUTHOR]
        assert undated.date_estimated is True

    async def test_linked_repositories_skip_forks(self):
        transport = json_transport({"/api/v1/papers/": SAMPLE_PWC_RESPONSE})
        result = await PapersWithCodeRepoFetcher(transport=transport).fetch()

        assert [r.name for r in result.items] == ["ada/novel-lm"]
        repo = result.items[0]
        assert repo.stars == 120
        assert repo.tech_stack == ["pytorch"]
        assert repo.paper_title == "A Novel Approach to Language Modeling"
        assert repo.authors == ["Ada Lovelace", "Alan Turing"]

    async def test_malformed_repository_entries_are_skipped(self):
        payload = {
            "results": [
                dict(
                    SAMPLE_PWC_RESPONSE["results"][0],
                    repositories=[
                        "https://github.com/ada/bare-string",
                        None,
                        {"url": "https://github.com/ada/novel-lm", "framework": "pytorch", "stars": 120},
                    ],
                )
            ]
        }
        transport = json_transport({"/api/v1/papers/": payload})

        result = await PapersWithCodeRepoFetcher(transport=transport).fetch()

        assert result.success
        assert [r.name for r in result.items] == ["ada/novel-lm"]


class TestCuratedRepos:
    async def test_static_list(self):
        result = await CuratedRepoFetcher().fetch()

        assert result.success
        assert len(result.items) == len(CURATED_REPOS)
        names = {r.name for r in result.items}
        assert "facebookresearch/llama" in names
        assert all(r.last_commit is None for r in result.items)


class TestArticleSources:
    """Tests for Hacker News, Dev.to and CSDN."""

    async def test_hackernews_keeps_ai_stories(self):
        routes = {
            "/v0/topstories.json": [1, 2, 3],
            "/v0/item/1.json": {
                "title": "Show HN: A new LLM agent framework",
                "url": "https://example.com/agent",
                "score": 321,
                "time": 1740830400,
                "by": "pg",
            },
            "/v0/item/2.json": {"title": "Gardening tips", "score": 10, "time": 1740830400, "by": "x"},
            "/v0/item/3.json": httpx.Response(500),
        }
        result = await HackerNewsFetcher(transport=json_transport(routes)).fetch()

        assert result.success
        assert len(result.items) == 1
        story = result.items[0]
        assert story.citation_count == 321
        assert story.authors == ["pg"]
        assert "llm" in story.keywords

    async def test_hackernews_caps_results(self):
        routes = {"/v0/topstories.json": list(range(1, 11))}
        for i in range(1, 11):
            routes[f"/v0/item/{i}.json"] = {"title": f"GPT story {i}", "score": i, "time": 1740830400}

        result = await HackerNewsFetcher(transport=json_transport(routes)).fetch()

        assert [p.title for p in result.items] == [f"GPT story {i}" for i in range(1, 6)]

    def test_devto_tags_list_or_string(self):
        assert parse_devto_tags({"tag_list": ["ai", "python"]}) == ["ai", "python"]
        assert parse_devto_tags({"tags": "ai, machinelearning"}) == ["ai", "machinelearning"]
        assert parse_devto_tags({}) == []

    async def test_devto_articles(self):
        articles = [
            {
                "title": "Building RAG pipelines",
                "url": "https://dev.to/x/rag",
                "published_at": "2025-02-28T10:00:00Z",
                "description": "How to build retrieval pipelines.",
                "positive_reactions_count": 42,
                "user": {"name": "Grace"},
                "tags": "ai, rag",
            }
        ]
        result = await DevToFetcher(transport=json_transport({"/api/articles": articles})).fetch()

        article = result.items[0]
        assert article.authors == ["Grace"]
        assert article.citation_count == 42
        assert article.keywords == ["ai", "rag"]

    def test_csdn_parse(self):
        html = """
        <div>
          <a class="title" href="https://blog.csdn.net/u/article/1">大模型 LLM 实战</a>
          <a class="title" href="https://blog.csdn.net/u/article/2">Java 并发编程</a>
          <a class="other" href="https://blog.csdn.net/u/article/3">GPT 入门</a>
        </div>
        """
        papers = CSDNFetcher().parse(html)

        assert [p.title for p in papers] == ["大模型 LLM 实战"]
        assert papers[0].date_estimated is True
        assert papers[0].url == "https://blog.csdn.net/u/article/1"
