"""
Tests for the HTTP surface: JSON endpoints, the rendered page and startup helpers.
"""

import asyncio
import socket
from datetime import timedelta
from urllib.parse import quote_plus

import httpx
import pytest
from fastapi.testclient import TestClient

from conftest import NOW, StaticFetcher, make_paper, make_repo
from llm_news import main
from llm_news.config import Settings
from llm_news.jobs.collection import CollectionPipeline
from llm_news.models.domain import ContentType
from llm_news.services.data_ingestion.aggregator import ItemAggregator
from llm_news.services.model_search import ModelRepoSearch, build_query
from llm_news.services.scoring import PaperScorer, RepositoryScorer


SAMPLE_MODEL_SEARCH_RESPONSE = {
    "items": [
        {
            "full_name": "meta-llama/llama3",
            "html_url": "https://github.com/meta-llama/llama3",
            "description": "The official Meta Llama 3 GitHub site",
            "stargazers_count": 27000,
            "forks_count": 3000,
            "pushed_at": "2025-02-20T00:00:00Z",
            "topics": [],
        },
        {
            "full_name": "random/thing",
            "html_url": "https://github.com/random/thing",
            "description": "Unrelated utilities",
            "stargazers_count": 50000,
            "forks_count": 10,
            "topics": [],
        },
        {
            "full_name": "acme/llama-tools",
            "html_url": "https://github.com/acme/llama-tools",
            "description": "",
            "stargazers_count": 12,
            "forks_count": 0,
            "topics": [],
        },
    ]
}


def build_test_pipelines(repos=(), papers=()) -> dict:
    return {
        ContentType.REPOSITORIES: CollectionPipeline(
            ContentType.REPOSITORIES,
            ItemAggregator([StaticFetcher("GitHub", list(repos))]),
            RepositoryScorer(),
            clock=lambda: NOW,
        ),
        ContentType.PAPERS: CollectionPipeline(
            ContentType.PAPERS,
            ItemAggregator([
                StaticFetcher("HackerNews", list(papers), content_type=ContentType.PAPERS)
            ]),
            PaperScorer(),
            clock=lambda: NOW,
        ),
    }


def model_search_transport(seen: list) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=SAMPLE_MODEL_SEARCH_RESPONSE)

    return httpx.MockTransport(handler)


@pytest.fixture
def pipelines():
    return build_test_pipelines(
        repos=[
            make_repo("zeta/gpt-agent", days_old=1),
            make_repo("alpha/llama-chat", days_old=1),
        ],
        papers=[
            make_paper("A novel agent", url="https://example.com/agent"),
            make_paper("Attention is all you need", url=""),
        ],
    )


@pytest.fixture
def seen_requests():
    return []


@pytest.fixture
def client(pipelines, seen_requests):
    app = main.create_app(
        settings=Settings(),
        pipelines=pipelines,
        model_search=ModelRepoSearch(transport=model_search_transport(seen_requests)),
        collect_on_startup=False,
        start_scheduler=False,
    )
    with TestClient(app) as test_client:
        yield test_client


async def collect(pipelines: dict) -> None:
    for pipeline in pipelines.values():
        await pipeline.run()


class TestColdStart:
    """Before the first run every endpoint serves an empty, valid result."""

    def test_empty_collections(self, client):
        assert client.get("/api/repos").json() == []
        assert client.get("/api/research-articles").json() == []

    def test_stats(self, client):
        assert client.get("/api/stats").json() == {
            "last_updated": None,
            "trending_repos_count": 0,
            "research_papers_count": 0,
        }

    def test_page_renders(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        assert "No repositories collected yet." in response.text


class TestCollectionEndpoints:
    """Endpoints after both pipelines have published."""

    @pytest.fixture
    def collected(self, pipelines):
        asyncio.run(collect(pipelines))
        return pipelines

    def test_repos_sorted_by_name(self, client, collected):
        names = [r["name"] for r in client.get("/api/repos").json()]

        assert names == ["alpha/llama-chat", "zeta/gpt-agent"]

    def test_provenance_flags_not_serialized(self, client, collected):
        repo = client.get("/api/repos").json()[0]

        assert "timestamp_estimated" not in repo
        assert repo["model_categories"] == ["Llama"]

    def test_missing_paper_url_falls_back_to_arxiv_search(self, client, collected):
        articles = {a["title"]: a for a in client.get("/api/research-articles").json()}

        assert articles["A novel agent"]["url"] == "https://example.com/agent"
        assert articles["Attention is all you need"]["url"] == (
            "https://arxiv.org/search/?query=" + quote_plus("Attention is all you need")
        )

        stored = collected[ContentType.PAPERS].store.current().items
        assert all(p.url in ("", "https://example.com/agent") for p in stored)

    def test_stats(self, client, collected):
        stats = client.get("/api/stats").json()

        assert stats["trending_repos_count"] == 2
        assert stats["research_papers_count"] == 2
        assert stats["last_updated"] is not None

    def test_stats_use_latest_snapshot_time(self, client, collected):
        later = NOW + timedelta(hours=2)
        store = collected[ContentType.PAPERS].store
        store.publish(store.current().items, at=later)

        stats = client.get("/api/stats").json()
        assert stats["last_updated"].startswith("2025-03-01T14:00:00")

    def test_page_lists_items(self, client, collected):
        html = client.get("/").text

        assert "alpha/llama-chat" in html
        assert "A novel agent" in html
        assert "Last updated 2025-03-01 12:00:00 UTC" in html


class TestPapersRedirect:
    def test_permanent_redirect(self, client):
        response = client.get("/api/papers", follow_redirects=False)

        assert response.status_code == 301
        assert response.headers["location"] == "/api/research-articles"


class TestModelSearch:
    """Tests for the on-demand model repository search."""

    def test_build_query(self):
        assert build_query(("a", "b")) == "a OR b AI language model"

    def test_filters_irrelevant_results(self, client, seen_requests):
        response = client.get("/api/model-repos/llama")

        assert response.status_code == 200
        body = response.json()
        assert body["model"] == "llama"
        assert [r["name"] for r in body["repos"]] == ["meta-llama/llama3", "acme/llama-tools"]

        params = seen_requests[0].url.params
        assert params["q"].startswith("meta-llama OR llama3")
        assert params["sort"] == "stars"

    def test_unknown_model_searches_itself(self, client, seen_requests):
        client.get("/api/model-repos/thing")

        assert seen_requests[0].url.params["q"] == "thing AI language model"

    def test_blank_model_rejected(self, client):
        assert client.get("/api/model-repos/%20").status_code == 400

    async def test_failed_search_is_empty(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(403, json={"message": "rate limited"})

        search = ModelRepoSearch(transport=httpx.MockTransport(handler))

        assert await search.search("llama") == []


class TestServiceEndpoints:
    def test_health(self, client):
        body = client.get("/health").json()

        assert body["status"] == "healthy"
        assert body["service"] == "llm-news"

    def test_status(self, client):
        body = client.get("/api/status").json()

        assert body["running"] is False
        assert set(body["pipelines"]) == {"repositories", "papers"}
        assert body["pipelines"]["repositories"]["last_run"] is None


class FakeUdpSocket:
    """Stands in for a UDP socket whose local address comes from the route table."""

    def __init__(self, local_address: str = "", error: Exception = None):
        self.local_address = local_address
        self.error = error
        self.connected_to = None

    def __call__(self, *args):
        return self

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def connect(self, address):
        if self.error is not None:
            raise self.error
        self.connected_to = address

    def getsockname(self):
        return (self.local_address, 54321)


class TestDetectHost:
    """Tests for the bind address fallback."""

    @staticmethod
    def addrinfo(*addresses):
        return [
            (socket.AF_INET, socket.SOCK_STREAM, 6, "", (address, 0))
            for address in addresses
        ]

    @pytest.fixture
    def no_route(self, monkeypatch):
        monkeypatch.setattr(main.socket, "socket", FakeUdpSocket(error=OSError("network is unreachable")))

    def test_outbound_interface_wins(self, monkeypatch):
        fake = FakeUdpSocket("192.168.1.20")
        monkeypatch.setattr(main.socket, "socket", fake)
        monkeypatch.setattr(main.socket, "getaddrinfo", lambda *args: self.addrinfo("127.0.1.1"))

        assert main.detect_host() == "192.168.1.20"
        assert fake.connected_to == main.ROUTE_TARGET

    def test_loopback_route_falls_back_to_hostname(self, monkeypatch):
        monkeypatch.setattr(main.socket, "socket", FakeUdpSocket("127.0.0.1"))
        monkeypatch.setattr(main.socket, "getaddrinfo", lambda *args: self.addrinfo("10.0.0.5"))

        assert main.detect_host() == "10.0.0.5"

    def test_first_routable_address(self, monkeypatch, no_route):
        monkeypatch.setattr(
            main.socket,
            "getaddrinfo",
            lambda *args: self.addrinfo("127.0.1.1", "169.254.3.4", "192.168.1.20", "10.0.0.5"),
        )

        assert main.detect_host() == "192.168.1.20"

    def test_only_loopback(self, monkeypatch, no_route):
        monkeypatch.setattr(main.socket, "getaddrinfo", lambda *args: self.addrinfo("127.0.0.1"))

        assert main.detect_host() == "0.0.0.0"

    def test_resolution_failure(self, monkeypatch, no_route):
        def fail(*args):
            raise socket.gaierror("no such host")

        monkeypatch.setattr(main.socket, "getaddrinfo", fail)

        assert main.detect_host() == "0.0.0.0"
