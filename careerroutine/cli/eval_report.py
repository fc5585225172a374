"""Report over the interaction log for offline evaluation."""

from __future__ import annotations

import argparse
import json
import sys

from careerroutine.config import settings
from careerroutine.evals.analysis import (
    detect_regression,
    find_by_trace_id,
    high_risk_entries,
    load_entries,
    slowest_entries,
    summarize,
)

HIGH_RISK_WARN_RATE = 10.0
SLOW_WARN_MS = 5000


def _print_summary(report: dict) -> None:
    summary = report["summary"]
    perf = report["performance"]
    quality = report["quality"]
    content = report["content"]
    fallback = report["fallback"]
    print("EVALUATION REPORT")
    print("=" * 50)
    print(f"Total interactions: {summary['totalInteractions']}")
    print(f"Date range: {summary['dateRange']['earliest'][:10]} -> {summary['dateRange']['latest'][:10]}")
    print()
    print(f"Avg latency: {perf['avgLatencyMs']}ms")
    print(f"Avg tokens: {perf['avgTokens']}")
    print(f"Avg response length: {perf['avgResponseLength']} chars")
    print()
    print(f"Avg risk score: {quality['avgRiskScore']}")
    print(f"Avg confidence: {quality['avgConfidence']}")
    print(f"High risk rate: {quality['highRiskRate']}%")
    print()
    print(f"Responses with URLs: {content['responsesWithURLs']}/{summary['totalInteractions']} ({content['urlRate']}%)")
    print(f"Fallbacks: {fallback['count']} ({fallback['rate']}%) {fallback['byReason']}")

    if quality["highRiskRate"] > HIGH_RISK_WARN_RATE:
        print("\nWARNING: High risk rate > 10%. Prompt may need refinement.")
    if perf["avgLatencyMs"] > SLOW_WARN_MS:
        print("\nWARNING: Average latency > 5s. Performance may need optimization.")


def _print_entries(entries: list[dict]) -> None:
    if not entries:
        print("No matching interactions.")
    for entry in entries:
        print(
            f"{entry.get('timestamp', '')}  {entry.get('traceId')}  op={entry.get('operation')}  "
            f"risk={entry.get('riskLevel')}({entry.get('riskScore')})  latency={entry.get('latencyMs')}ms  "
            f"fallback={entry.get('fallbackReason') if entry.get('usedFallback') else '-'}"
        )


def _print_regressions(latest: dict, baseline: list[dict]) -> None:
    if not baseline:
        print("\nNo earlier interactions to compare against.")
        return
    issues = detect_regression(latest, baseline)
    if not issues:
        print(f"\nNo regressions against {len(baseline)} earlier interactions.")
        return
    print(f"\nREGRESSIONS vs {len(baseline)} earlier interactions:")
    for issue in issues:
        print(f"  [{issue['type']}] {issue['message']}")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Analyze logged LLM interactions")
    parser.add_argument("--log", default=settings.eval_log_path, help="Path to the interaction JSONL log")
    group = parser.add_mutually_exclusive_group()
    group.add_argument("--find", metavar="TRACE_ID", help="Show one interaction by trace id")
    group.add_argument("--risk", action="store_true", help="List high-risk interactions")
    group.add_argument("--slow", type=int, metavar="N", help="List the N slowest interactions")
    group.add_argument("--latest", action="store_true", help="Show the most recent interaction")
    args = parser.parse_args(argv)

    entries = load_entries(args.log)
    if not entries:
        print(f"No eval logs found at {args.log}")
        return 0

    if args.find:
        entry = find_by_trace_id(entries, args.find)
        if entry is None:
            print(f"No log found with traceId: {args.find}")
            return 1
        print(json.dumps(entry, indent=2))
    elif args.risk:
        _print_entries(high_risk_entries(entries))
    elif args.slow is not None:
        _print_entries(slowest_entries(entries, args.slow))
    elif args.latest:
        print(json.dumps(entries[-1], indent=2))
        _print_regressions(entries[-1], entries[:-1])
    else:
        _print_summary(summarize(entries))
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
