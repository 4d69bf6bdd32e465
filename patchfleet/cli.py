"""Command line entry point.

Parses the diff, searches the organization, lets the user pick repositories
in their editor, then patches each selected repository and prints one pull
request URL (or one failure) per repository.
"""
from __future__ import annotations

import argparse
import sys
from typing import Callable, List, Optional, Sequence

from dotenv import load_dotenv
from pydantic import ValidationError

from patchfleet.config import get_config
from patchfleet.diff.parser import load_diff
from patchfleet.errors import InputError, RemoteApiError
from patchfleet.fleet import FleetOrchestrator, summarize
from patchfleet.github.client import GitHubClient
from patchfleet.models import PatchResult, Repository
from patchfleet.pipeline import RepositoryPatchPipeline
from patchfleet.run_config import RunConfig
from patchfleet.selection import prompt_for_selection
from patchfleet.utils.logger import configure_logging, log_error, log_info

EXIT_OK = 0
EXIT_FAILURES = 1
EXIT_INPUT_ERROR = 2
EXIT_INTERRUPTED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="patchfleet",
        description="Apply a unified diff to selected repositories of a GitHub organization, "
                    "opening one pull request per repository.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  patchfleet --token-variable GITHUB_TOKEN -o my-org -q service- -p bump.diff -m "Bump base image"
  patchfleet --token-variable GITHUB_TOKEN -o my-org -p ci.diff -m "Fix CI" --branch fix-ci --workers 4
""",
    )
    token = parser.add_mutually_exclusive_group(required=True)
    token.add_argument("--token", help="GitHub token to use")
    token.add_argument("--token-variable", help="Name of an environment variable to read GitHub token from")
    parser.add_argument("-o", "--org", required=True, help="GitHub organization to patch")
    parser.add_argument("-q", "--query", default="",
                        help="Search query for repositories. For example, prefix of repository name.")
    parser.add_argument("-n", "--limit", type=int,
                        help="Maximum number of repositories to be returned from the query. Defaults to 30.")
    parser.add_argument("-p", "--patch", required=True, help="Path to patch to apply")
    parser.add_argument("-m", "--message", required=True,
                        help="Commit message to create a commit based on the patch")
    parser.add_argument("--branch",
                        help="Branch name to create for the change. Defaults to the message with spaces replaced by '-'.")
    parser.add_argument("--debug", action="store_true", help="Enables additional output")
    parser.add_argument("--workers", type=int, help="Number of repositories to patch in parallel (default: 1).")
    parser.add_argument("--timeout", type=float, help="Timeout in seconds for each GitHub API call (default: 5).")
    parser.add_argument("--draft", action="store_true", help="Open pull requests as drafts.")
    parser.add_argument("--api-url", help="GitHub API base URL (for GitHub Enterprise).")
    return parser


def report_result(result: PatchResult) -> None:
    """Print one repository outcome as soon as it is known."""
    name = result.repository.name
    if result.ok:
        print(f"PR for patching {name}: {result.pull_request_url}", flush=True)
    else:
        print(f"Failed to patch {name} [{result.error_kind}]: {result.error}", flush=True)


def run(
    run_config: RunConfig,
    *,
    client_factory: Callable[..., GitHubClient] = GitHubClient,
    select: Callable[[Sequence[Repository]], List[Repository]] = prompt_for_selection,
) -> int:
    """Execute one patch run; returns the process exit code.

    The diff is parsed before any remote call so a malformed diff aborts
    without side effects. The client's connection pool is released whatever
    happens inside the ``with`` block.
    """
    file_diffs = load_diff(run_config.patch_path)
    log_info("Diff loaded", files=len(file_diffs), branch=run_config.branch_name)

    with client_factory(
        run_config.token,
        api_url=run_config.api_url,
        timeout=run_config.request_timeout,
        pool_size=max(10, run_config.max_workers),
    ) as client:
        candidates = client.search_repositories(run_config.repository_query, run_config.search_limit)
        log_info("Repositories found", query=run_config.repository_query, count=len(candidates))
        if not candidates:
            print("No repositories matched the query.")
            return EXIT_OK

        selected = select(candidates)
        if not selected:
            print("No repositories selected.")
            return EXIT_OK

        pipeline = RepositoryPatchPipeline(client, pr_body=run_config.pr_body, draft=run_config.draft)
        fleet = FleetOrchestrator(
            pipeline,
            max_workers=run_config.max_workers,
            audit_path=run_config.audit_path,
            on_result=report_result,
        )
        results = fleet.run(selected, file_diffs, run_config.commit_message, run_config.branch_name)

    summary = summarize(results)
    log_info("Fleet run finished", **summary)
    return EXIT_OK if summary["failed"] == 0 else EXIT_FAILURES


def main(argv: Optional[Sequence[str]] = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)

    try:
        config = get_config()
        run_config = RunConfig.from_args(args, config)
    except ValidationError as e:
        print(f"❌ Invalid configuration:\n{e}", file=sys.stderr)
        return EXIT_INPUT_ERROR
    except InputError as e:
        print(f"❌ {e}", file=sys.stderr)
        return EXIT_INPUT_ERROR

    configure_logging("DEBUG" if run_config.debug else config.log_level, config.log_format)
    config.log_configuration()
    for issue in config.validate_configuration():
        print(f"⚠️  {issue}", file=sys.stderr)

    try:
        return run(run_config)
    except InputError as e:
        log_error("Input error, nothing was changed", error=str(e))
        print(f"❌ {e}", file=sys.stderr)
        return EXIT_INPUT_ERROR
    except RemoteApiError as e:
        log_error("GitHub request failed before patching", error=str(e), status_code=e.status_code)
        print(f"❌ {e}", file=sys.stderr)
        return EXIT_FAILURES
    except KeyboardInterrupt:
        print("\n⏹️  Interrupted", file=sys.stderr)
        return EXIT_INTERRUPTED


if __name__ == "__main__":
    sys.exit(main())
