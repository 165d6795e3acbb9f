"""
CLI for querying structured commit history.

Usage:
    parse-commits --intent fix-defect --intent resolve-blocker --scope auth
    parse-commits --decided-against redis --format json
"""

import argparse
import json
import sys
from pathlib import Path

from common.constants import DEFAULT_QUERY_LIMIT, INTENT_TYPES
from common.logger import error
from extract.git_utils import GitError
from extract.models import StructuredCommit

from .engine import run_query
from .filters import QueryParams

SEPARATOR = "---"


def format_text(commits: list[StructuredCommit], with_body: bool = False) -> str:
    """Render commits as the human-readable listing."""
    if not commits:
        return "No structured commits found."

    blocks = []
    for c in commits:
        lines = [c.display_subject]

        meta = [c.hash[:8], c.date[:10], c.intent or "unknown"]
        if c.session:
            meta.append(c.session)
        lines.append(f"  {'  '.join(meta)}")

        if c.scope:
            lines.append(f"  scope: {', '.join(c.scope)}")

        if with_body and c.body:
            lines.append("")
            lines.extend(f"  {body_line}" for body_line in c.body.split("\n"))

        if c.decided_against:
            lines.append("")
            lines.extend(f"  [-] {d}" for d in c.decided_against)

        if c.refs:
            lines.append(f"  refs: {', '.join(c.refs)}")

        if c.breaking:
            lines.append(f"  BREAKING: {c.breaking}")

        blocks.append("\n".join(lines))

    return f"\n{SEPARATOR}\n".join(blocks)


def format_json(commits: list[StructuredCommit]) -> str:
    return json.dumps([c.to_dict() for c in commits], indent=2, ensure_ascii=False)


def cmd_query(args) -> int:
    """Run a filtered query and print the results."""
    if args.limit <= 0:
        error(f'Invalid --limit value: "{args.limit}". Must be a positive integer.')
        return 2

    params = QueryParams(
        intents=tuple(args.intent or ()),
        scope=args.scope,
        session=args.session,
        decisions_only=args.decisions_only,
        decided_against=args.decided_against,
        limit=args.limit,
    )

    try:
        result = run_query(
            params,
            args.repo,
            no_index=args.no_index,
            path=args.path,
            since=args.since,
        )
    except GitError as e:
        error(f"git log failed: {e}")
        return 1

    if args.format == "json":
        print(format_json(result.commits))
    else:
        print(format_text(result.commits, args.with_body))
        if result.errors:
            print(
                f"\n{len(result.errors)} commit(s) could not be parsed "
                "(non-structured or malformed)",
                file=sys.stderr,
            )
    return 0


def main():
    """Main entry point for the query CLI."""
    parser = argparse.ArgumentParser(
        description="Query structured commit history by trailers",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--repo",
        type=Path,
        default=Path.cwd(),
        help="Path inside the git repository (default: current directory)",
    )
    parser.add_argument(
        "--limit",
        "-n",
        type=int,
        default=DEFAULT_QUERY_LIMIT,
        help=f"Maximum number of commits (default: {DEFAULT_QUERY_LIMIT})",
    )
    parser.add_argument(
        "--intent",
        action="append",
        choices=INTENT_TYPES,
        help="Filter by intent (repeatable, OR-combined)",
    )
    parser.add_argument("--scope", help="Filter by scope (hierarchical prefix match)")
    parser.add_argument("--session", help="Filter by session identifier")
    parser.add_argument(
        "--decisions-only",
        action="store_true",
        help="Show only commits with Decided-Against trailers",
    )
    parser.add_argument(
        "--decided-against",
        help="Filter by Decided-Against keyword (word boundary match)",
    )
    parser.add_argument("--with-body", action="store_true", help="Include commit bodies")
    parser.add_argument(
        "--format",
        "-f",
        choices=["text", "json"],
        default="text",
        help="Output format (default: text)",
    )
    parser.add_argument("--since", help="Git --since filter (skips the index)")
    parser.add_argument("--path", help="Git path filter (skips the index)")
    parser.add_argument(
        "--no-index",
        action="store_true",
        help="Skip the trailer index even if it is fresh",
    )

    args = parser.parse_args()
    sys.exit(cmd_query(args))


if __name__ == "__main__":
    main()
