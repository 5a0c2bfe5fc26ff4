#!/usr/bin/env python3
"""
CLI tool for collection runs.

Usage:
    # Run the repository pipeline once and print the published items
    python -m scripts.collect fetch repos

    # Run the paper pipeline and save the result
    python -m scripts.collect fetch papers --output papers.json

    # Check source health
    python -m scripts.collect health

    # List configured sources
    python -m scripts.collect sources

    # Start the web server on the detected address
    python -m scripts.collect serve
"""

import argparse
import asyncio
import json
import logging
import sys

# Add parent directory to path for imports
sys.path.insert(0, str(__file__).rsplit("/", 2)[0])

from llm_news.config import get_settings
from llm_news.jobs.collection import build_pipelines
from llm_news.main import detect_host
from llm_news.models.domain import ContentType

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

CONTENT_TYPES = {
    "repos": ContentType.REPOSITORIES,
    "papers": ContentType.PAPERS,
}


async def cmd_fetch(args):
    """Run one pipeline and print what it published."""
    pipeline = build_pipelines(get_settings())[CONTENT_TYPES[args.content]]

    print(f"Collecting {pipeline.content_type.value}...")
    report = await pipeline.run()

    print("\n" + "=" * 60)
    print("COLLECTION RESULTS")
    print("=" * 60)

    for result in report.sources:
        print(result)

    print("-" * 60)
    print(f"Fetched: {report.items_fetched}  Merged: {report.items_merged}  "
          f"Published: {report.items_published}")

    if report.error:
        print(f"\nRun failed: {report.error}")
        return 1

    items = [item.model_dump(mode="json") for item in pipeline.store.current().items]

    if args.output:
        with open(args.output, "w") as f:
            json.dump(items, f, indent=2, ensure_ascii=False)
        print(f"\nItems saved to: {args.output}")
    else:
        print(json.dumps(items[: args.limit], indent=2, ensure_ascii=False))

    return 0


async def cmd_health(args):
    """Check health of all sources."""
    pipelines = build_pipelines(get_settings())

    print("Checking source health...")
    print("\n" + "=" * 40)
    print("SOURCE HEALTH")
    print("=" * 40)

    all_healthy = True
    for pipeline in pipelines.values():
        health = await pipeline.aggregator.health_check()
        for source, is_healthy in health.items():
            status = "✓ OK" if is_healthy else "✗ FAILED"
            print(f"  [{pipeline.content_type.value}] {source}: {status}")
            if not is_healthy:
                all_healthy = False

    return 0 if all_healthy else 1


async def cmd_sources(args):
    """Show configured sources."""
    pipelines = build_pipelines(get_settings())

    for pipeline in pipelines.values():
        stats = pipeline.aggregator.get_source_stats()

        print("\n" + "=" * 50)
        print(f"{pipeline.content_type.value.upper()} SOURCES")
        print("=" * 50)
        print(f"Total sources: {stats['total_sources']}")
        print()

        for source in stats["sources"]:
            print(f"  {source['name']}")
            print(f"    Type: {source['type']}")
            print(f"    URL: {source['base_url']}")
            print(f"    Priority: {source['priority']}")
            print()

    return 0


def cmd_serve(args):
    """Run the web server with its scheduler."""
    import uvicorn

    settings = get_settings()
    host = args.host or settings.host or detect_host()
    port = args.port or settings.port

    print(f"Starting server on http://{host}:{port}")
    uvicorn.run(
        "llm_news.main:app",
        host=host,
        port=port,
        log_level=settings.log_level.lower(),
    )
    return 0


def main():
    parser = argparse.ArgumentParser(
        description="LLM News - Collection CLI"
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Fetch command
    fetch_parser = subparsers.add_parser("fetch", help="Run one collection pipeline")
    fetch_parser.add_argument(
        "content",
        choices=sorted(CONTENT_TYPES),
        help="Content type to collect"
    )
    fetch_parser.add_argument(
        "--limit", "-l",
        type=int,
        default=10,
        help="Items to print when not saving (default: 10)"
    )
    fetch_parser.add_argument(
        "--output", "-o",
        help="Output file for items (JSON)"
    )

    # Health command
    subparsers.add_parser("health", help="Check source health")

    # Sources command
    subparsers.add_parser("sources", help="List configured sources")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Run the web server")
    serve_parser.add_argument("--host", help="Bind address (default: auto-detect)")
    serve_parser.add_argument("--port", "-p", type=int, help="Port (default: 8081)")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return 1

    # Run command
    if args.command == "fetch":
        return asyncio.run(cmd_fetch(args))
    elif args.command == "health":
        return asyncio.run(cmd_health(args))
    elif args.command == "sources":
        return asyncio.run(cmd_sources(args))
    elif args.command == "serve":
        return cmd_serve(args)

    return 0


if __name__ == "__main__":
    sys.exit(main())
