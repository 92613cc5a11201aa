"""
run_scan.py: one-off scan against the configured AI providers

Sends a single topic question to every provider that has an API key in
.env, runs the analyzer and prints the per-provider result. Nothing is
written to the database; use it to check API keys and analyzer output.

Usage:
    python run_scan.py "Acme" "best project management tools" --competitors Asana Trello
    python run_scan.py "Acme" "best project management tools" --json
"""

import argparse
import asyncio
import json
import logging
import sys

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(name)s %(levelname)s: %(message)s",
)
logger = logging.getLogger("run_scan")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Scan AI providers for a brand mention")
    parser.add_argument("brand", help="brand name to look for")
    parser.add_argument("topic", help="question sent to the providers")
    parser.add_argument("--competitors", nargs="*", default=[], help="competitor names used for ranking")
    parser.add_argument("--json", action="store_true", help="print raw JSON instead of a summary")
    return parser.parse_args(argv)


async def main(argv: list[str] | None = None) -> int:
    from app.core.exceptions import ConfigurationError
    from app.services.scan_orchestrator import ScanOrchestrator, ScanRequest

    args = parse_args(argv)
    orchestrator = ScanOrchestrator()
    request = ScanRequest(brand_name=args.brand, keyword=args.topic, topic=args.topic, competitors=args.competitors)

    try:
        results = await orchestrator.scan_keyword(request)
    except ConfigurationError as e:
        print(f"\n  ❌ {e}")
        return 1

    if args.json:
        print(json.dumps([r.to_dict() for r in results], ensure_ascii=False, indent=2))
        return 0

    # ── Summary ──────────────────────────────────────────────
    print("\n" + "=" * 60)
    print(f"  {args.brand!r} ← {args.topic!r}")
    print("=" * 60)
    for r in results:
        if r.degraded:
            print(f"  ✗ {r.platform:<11} {r.error}")
            continue
        mark = "✓" if r.brand_mentioned else "·"
        position = f"#{r.position}" if r.position else "-"
        print(
            f"  {mark} {r.platform:<11} mentioned={r.brand_mentioned!s:<5} position={position:<4} "
            f"sentiment={r.sentiment:<8} confidence={r.confidence:.2f} sources={len(r.source_urls)} "
            f"({r.scan_duration} ms)"
        )
        if r.brand_context:
            print(f"      …{r.brand_context[:160]}…")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
