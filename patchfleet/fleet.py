"""Fan-out of the repository pipeline over the selected repositories.

Each repository is patched independently and produces one ``PatchResult``;
a failure in one repository never blocks or rolls back another. Results are
handed to ``on_result`` as soon as they exist. With one worker repositories
are processed strictly in order. With more workers an ``asyncio.Semaphore``
bounds how many pipelines run at once, each in its own thread.

Ctrl-C is deferred while a fleet runs: a started repository finishes, no
further repository starts, and ``KeyboardInterrupt`` is raised afterwards.
A second Ctrl-C interrupts immediately.
"""

import asyncio
import signal
import threading
import time
from contextlib import contextmanager
from typing import Callable, Iterator, List, Optional, Sequence

from patchfleet.errors import ConflictError, error_kind
from patchfleet.models import FileChange, FileDiff, PatchResult, Repository
from patchfleet.pipeline import RepositoryPatchPipeline
from patchfleet.utils.audit import append_audit
from patchfleet.utils.logger import log_error, log_info, log_warning


@contextmanager
def deferred_interrupt() -> Iterator[threading.Event]:
    """Turn the first SIGINT into a flag checked between repositories.

    Signal handlers can only be installed from the main thread; elsewhere
    the returned event is never set and SIGINT keeps its default behaviour.
    """
    interrupted = threading.Event()
    if threading.current_thread() is not threading.main_thread():
        yield interrupted
        return

    def _handler(signum, frame):
        if interrupted.is_set():
            raise KeyboardInterrupt
        interrupted.set()

    previous = signal.signal(signal.SIGINT, _handler)
    try:
        yield interrupted
    finally:
        signal.signal(signal.SIGINT, previous)


class FleetOrchestrator:
    """Runs the patch pipeline once per repository and collects the results."""

    def __init__(
        self,
        pipeline: RepositoryPatchPipeline,
        max_workers: int = 1,
        audit_path: Optional[str] = None,
        on_result: Optional[Callable[[PatchResult], None]] = None,
    ):
        """Initialize the orchestrator.

        Args:
            pipeline: Pipeline executed for every repository
            max_workers: Maximum number of repositories patched concurrently
            audit_path: JSONL file receiving one event per repository (None disables)
            on_result: Called with each repository's result as soon as it is known
        """
        self.pipeline = pipeline
        self.max_workers = max(1, max_workers)
        self.audit_path = audit_path
        self.on_result = on_result

    def run(
        self,
        repositories: Sequence[Repository],
        file_diffs: Sequence[FileDiff],
        commit_message: str,
        branch_name: str,
    ) -> List[PatchResult]:
        """Patch every repository; results are returned in input order.

        Raises:
            KeyboardInterrupt: Ctrl-C was pressed and repositories were skipped.
                Results of finished repositories have already gone to ``on_result``.
        """
        log_info(
            "Starting fleet run",
            repositories=len(repositories),
            files=len(file_diffs),
            branch=branch_name,
            workers=self.max_workers,
        )
        with deferred_interrupt() as interrupted:
            if self.max_workers == 1 or len(repositories) <= 1:
                results = []
                for repository in repositories:
                    if interrupted.is_set():
                        break
                    result = self.patch_repository(repository, file_diffs, commit_message, branch_name)
                    self._record(result, branch_name)
                    results.append(result)
            else:
                results = asyncio.run(
                    self.run_async(repositories, file_diffs, commit_message, branch_name, interrupted)
                )

        if len(results) < len(repositories):
            log_warning(
                "Run interrupted, remaining repositories skipped",
                finished=len(results),
                skipped=len(repositories) - len(results),
            )
            raise KeyboardInterrupt
        return results

    async def run_async(
        self,
        repositories: Sequence[Repository],
        file_diffs: Sequence[FileDiff],
        commit_message: str,
        branch_name: str,
        interrupted: Optional[threading.Event] = None,
    ) -> List[PatchResult]:
        """Patch repositories concurrently, at most ``max_workers`` at a time.

        Repositories still waiting for a worker when ``interrupted`` is set
        are skipped and left out of the returned list.
        """
        semaphore = asyncio.Semaphore(self.max_workers)

        async def _patch(repository: Repository) -> Optional[PatchResult]:
            async with semaphore:
                if interrupted is not None and interrupted.is_set():
                    return None
                result = await asyncio.to_thread(
                    self.patch_repository, repository, file_diffs, commit_message, branch_name
                )
            self._record(result, branch_name)
            return result

        results = await asyncio.gather(*(_patch(r) for r in repositories))
        return [r for r in results if r is not None]

    def patch_repository(
        self,
        repository: Repository,
        file_diffs: Sequence[FileDiff],
        commit_message: str,
        branch_name: str,
    ) -> PatchResult:
        """Run the pipeline for one repository, converting any error into a failed result."""
        changes: List[FileChange] = []
        start_time = time.time()
        try:
            pr = self.pipeline.run(repository, file_diffs, branch_name, commit_message, changes=changes)
        except Exception as e:
            kind = error_kind(e)
            log_error(
                "Repository patch failed",
                repository=repository.full_name,
                kind=kind,
                error=str(e),
                path=getattr(e, "path", None) if isinstance(e, ConflictError) else None,
                committed_files=[c.path for c in changes],
                duration_seconds=round(time.time() - start_time, 2),
            )
            return PatchResult(repository=repository, files=tuple(changes), error=str(e), error_kind=kind)

        log_info(
            "Repository patched",
            repository=repository.full_name,
            pull_request=pr.url,
            reused_pull_request=pr.reused,
            duration_seconds=round(time.time() - start_time, 2),
        )
        return PatchResult(repository=repository, pull_request_url=pr.url, files=tuple(changes))

    def _record(self, result: PatchResult, branch_name: str) -> None:
        try:
            append_audit(
                {"status": "patched" if result.ok else "failed", "branch": branch_name, **result.to_dict()},
                self.audit_path,
            )
        except OSError as e:
            log_warning("Could not write audit event", path=self.audit_path, error=str(e))
        if self.on_result is not None:
            self.on_result(result)


def summarize(results: Sequence[PatchResult]) -> dict:
    """Count successes and failures for the final report."""
    succeeded = sum(1 for r in results if r.ok)
    return {"total": len(results), "succeeded": succeeded, "failed": len(results) - succeeded}
