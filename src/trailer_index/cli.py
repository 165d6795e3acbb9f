"""
CLI for building and checking the trailer index.

Usage:
    trailer-index build     # full rebuild (default)
    trailer-index check     # exit 0 if fresh, 1 if stale or missing
    trailer-index stats     # summarize the stored index
"""

import argparse
import sys
from pathlib import Path

from common.logger import error, progress, success, warning
from extract.git_utils import GitError

from .store import Freshness, build_index, check_freshness, index_path, read_index_file, write_index


def cmd_build(args) -> int:
    """Rebuild the trailer index from the full git log."""
    progress(f"Building trailer index for [bold]{args.repo}[/bold]...")
    try:
        index = build_index(args.repo)
        path = write_index(index, index_path(args.repo))
    except GitError as e:
        error(f"Failed to read git history: {e}")
        return 1
    except OSError as e:
        error(f"Failed to write index: {e}")
        return 1

    success("Trailer index built successfully")
    print(f"  Commits indexed: {index.commit_count}")
    print(f"  Intents: {len(index.by_intent)} types")
    print(f"  Scopes: {len(index.by_scope)} unique")
    print(f"  Sessions: {len(index.by_session)} unique")
    print(f"  With decided-against: {len(index.with_decided_against)}")
    print(f"  Written to: {path}")
    return 0


def cmd_check(args) -> int:
    """Check index freshness without rebuilding."""
    freshness = check_freshness(args.repo)
    if freshness is Freshness.FRESH:
        success("Trailer index is fresh")
        return 0
    warning(f"Trailer index is {freshness.value}")
    return 1


def cmd_stats(args) -> int:
    """Show statistics about the stored index."""
    try:
        path = index_path(args.repo)
        index = read_index_file(path)
    except GitError as e:
        error(f"Not a git repository: {e}")
        return 1
    except FileNotFoundError:
        error("No trailer index found. Run 'trailer-index build' first.")
        return 1
    except ValueError as e:
        error(f"Unreadable trailer index: {e}")
        return 1

    freshness = check_freshness(args.repo)
    print(f"Trailer index: {path}")
    print(f"  Status: {freshness.value}")
    print(f"  Version: {index.version}")
    print(f"  Generated: {index.generated}")
    print(f"  Head commit: {index.head_commit}")
    print(f"  Commits indexed: {index.commit_count}")
    for intent, hashes in sorted(index.by_intent.items()):
        print(f"    {intent}: {len(hashes)}")
    print(f"  Top scopes: {', '.join(index.scope_keys()[:10]) or '(none)'}")
    print(f"  With decided-against: {len(index.with_decided_against)}")
    return 0


def main():
    """Main entry point for the trailer index CLI."""
    parser = argparse.ArgumentParser(
        description="Build and check the structured commit trailer index",
    )
    parser.add_argument(
        "--repo",
        type=Path,
        default=Path.cwd(),
        help="Path inside the git repository (default: current directory)",
    )

    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser("build", help="Rebuild the index from the full git log").set_defaults(
        func=cmd_build
    )
    subparsers.add_parser(
        "check", help="Exit 0 if the index is fresh, 1 if stale or missing"
    ).set_defaults(func=cmd_check)
    subparsers.add_parser("stats", help="Show index statistics").set_defaults(func=cmd_stats)

    args = parser.parse_args()
    func = getattr(args, "func", cmd_build)
    sys.exit(func(args))


if __name__ == "__main__":
    main()
