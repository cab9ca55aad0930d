"""``ask`` command: run one query turn and print the reply."""

from __future__ import annotations

import argparse

from machine_rag.config.settings import Settings


def add_parser(subparsers: argparse._SubParsersAction) -> None:
    parser = subparsers.add_parser("ask", help="Ask a question about the machines")
    parser.add_argument("question", help="The question, e.g. 'chart temperature of urn:iff:asset:42 last 24h'")
    parser.add_argument(
        "--asset",
        action="append",
        default=[],
        dest="assets",
        help="Selected asset or product name (repeatable)",
    )
    parser.add_argument(
        "--rules",
        action="store_true",
        help="Classify live-data intents with keyword rules instead of the completion service",
    )


async def run(args: argparse.Namespace, app_settings: Settings) -> int:
    from machine_rag.main import build_query_orchestrator
    from machine_rag.models.chat import ChatTurn

    orchestrator = build_query_orchestrator(app_settings, rule_based=args.rules)
    response = await orchestrator.handle(
        [ChatTurn(role="user", content=args.question)],
        selected_assets=args.assets,
    )

    print(response.reply)
    if response.kind == "chart" and response.series:
        print()
        for reading in response.series:
            print(f"  {reading.timestamp.isoformat()}  {reading.value:g}")
        if response.truncated:
            print("  ...")
            for reading in response.series_tail:
                print(f"  {reading.timestamp.isoformat()}  {reading.value:g}")
    elif response.kind == "answer" and response.sources:
        print("\nSources:")
        for name in dict.fromkeys(response.sources):
            print(f"  - {name}")
    return 0
