"""Terminal client that runs searches in-process against a catalog file."""
from __future__ import annotations

import argparse
import asyncio
from pathlib import Path
from typing import Iterable

from product_search.config import settings
from product_search.domain import SearchMode
from product_search.hydrator import DocumentHydrator
from product_search.importer import load_catalog_file
from product_search.models import GlobalSearchRequest, GlobalSearchResponse
from product_search.service import SearchService
from product_search.snapshot import SnapshotHolder

MAX_RESULTS = 100
GREEN = "\033[92m"
RED = "\033[91m"
RESET = "\033[0m"


def build_service(catalog_path: Path | None) -> SearchService:
    catalog = load_catalog_file(catalog_path)
    holder = SnapshotHolder()
    holder.publish(catalog.candidates, catalog.labels, skipped=catalog.skipped)
    return SearchService(holder, DocumentHydrator(catalog.documents))


def perform_query(service: SearchService, query: str, args: argparse.Namespace) -> GlobalSearchResponse:
    payload = GlobalSearchRequest(
        query=query,
        searchMode=SearchMode(args.mode),
        language=args.language,
        size=min(args.size, MAX_RESULTS),
        facetedSearch=args.facets,
    )
    return asyncio.run(service.search(payload))


def pretty_print_response(query: str, response: GlobalSearchResponse) -> None:
    eta = float(response.stats.searchTimeMs)
    color = GREEN if eta < 200 else RED
    eta_label = f"{color}{eta:.1f} ms{RESET}"
    print(f"Query: {query} | results: {response.stats.totalFound} | ETA: {eta_label}")
    if response.metadata.correctedQuery:
        print(f"  corrected to: {response.metadata.correctedQuery}")
    for idx, item in enumerate(response.products, start=1):
        score_repr = f"{item.score:.2f}" if item.score is not None else "-"
        print(
            f"  {idx:02d}. score={score_repr} | {item.manufacturerName} | "
            f"{item.referenceNumber} | {item.name} | {item.finalPrice}"
        )
    if response.suggestions:
        print(f"  did you mean: {', '.join(response.suggestions)}")
    if response.facets:
        for facet in response.facets.categories:
            print(f"  [category] {facet.name}: {facet.count}")
        for facet in response.facets.manufacturers:
            print(f"  [manufacturer] {facet.name}: {facet.count}")
        for bucket in response.facets.priceRanges.ranges:
            print(f"  [price] {bucket.label}: {bucket.count}")


def interactive_shell(service: SearchService, args: argparse.Namespace) -> None:
    print("Interactive product search. Type 'exit' to quit.")
    while True:
        try:
            query = input("> ").strip()
        except (EOFError, KeyboardInterrupt):
            print()
            return
        if not query:
            continue
        if query.lower() in {"exit", "quit"}:
            return
        pretty_print_response(query, perform_query(service, query, args))


def batch_mode(service: SearchService, file_path: Path, args: argparse.Namespace) -> None:
    with file_path.open("r", encoding="utf-8") as fh:
        for line in fh:
            query = line.strip()
            if not query:
                continue
            pretty_print_response(query, perform_query(service, query, args))


def main(argv: Iterable[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="CLI client for the product search engine")
    parser.add_argument("query", nargs="?", help="Query string. If omitted, starts REPL mode.")
    parser.add_argument("--batch", type=Path, help="File with queries to execute line by line")
    parser.add_argument("--catalog", type=Path, default=Path(settings.catalog_path), help="Catalog JSON file")
    parser.add_argument("--mode", choices=[mode.value for mode in SearchMode], default=SearchMode.SMART.value)
    parser.add_argument("--language", default=settings.default_language)
    parser.add_argument("--size", type=int, default=20)
    parser.add_argument("--facets", action="store_true", help="Print facet counts")
    args = parser.parse_args(list(argv) if argv is not None else None)

    service = build_service(args.catalog)
    if args.batch:
        batch_mode(service, args.batch, args)
        return 0
    if args.query:
        pretty_print_response(args.query, perform_query(service, args.query, args))
        return 0
    interactive_shell(service, args)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
