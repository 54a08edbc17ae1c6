"""
Concurrent orchestration of repository mirroring.

Pulls repository descriptors from explicit targets and paginated listings,
fans the mirror work out over a bounded thread pool and folds every
per-repository outcome into one run summary.
"""

from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Set, Tuple

from ..clients.github_client import GitHubClient, RepoKind
from ..config.config import SyncConfig, TargetsConfig
from ..logger.logger import get_logger
from ..models import Repository, RunSummary, SyncOutcome
from .mirror import MirrorSynchronizer


class SyncOrchestrator:
    """Drives the mirror synchronizer across a pool of worker threads."""

    def __init__(
        self,
        synchronizer: MirrorSynchronizer,
        sync_config: SyncConfig,
        ignore: Optional[Iterable[str]] = None,
        log_config=None,
    ):
        """Initialize the orchestrator.

        Args:
            synchronizer: Mirror synchronizer invoked once per repository
            sync_config: Base directory and worker count
            ignore: Full names (``owner/name``) never to sync
            log_config: Optional logging configuration
        """
        self.synchronizer = synchronizer
        self.sync_config = sync_config
        self.base_dir = Path(sync_config.base_dir)
        self.threads = sync_config.threads
        self.ignore: Set[str] = set(ignore or ())
        self.logger = get_logger("orchestrator", log_config)

    def sync_repositories(self, repos: Iterable[Repository], label: str = "repositories") -> RunSummary:
        """Mirror every repository of ``repos``.

        Args:
            repos: Descriptors, either a list or a lazy pager
            label: Name recorded as the failure if ``repos`` raises

        Returns:
            Summary of the run
        """
        return self._run([(label, iter(repos))])

    def sync_targets(self, client: GitHubClient, targets: TargetsConfig) -> RunSummary:
        """Mirror explicit targets, organizations and users in one run.

        Explicit ``owner/name`` targets are looked up first; a failed lookup
        is recorded for that target only. Organization and user listings are
        consumed lazily; a listing error ends that listing only.

        Args:
            client: GitHub API client
            targets: What to mirror

        Returns:
            Summary of the run
        """
        summary = RunSummary()
        explicit: List[Repository] = []

        for owner in sorted(targets.owners):
            for name in sorted(targets.owners[owner].repos):
                full_name = f"{owner}/{name}"
                if full_name in self.ignore:
                    summary.record(self._ignored(full_name))
                    continue
                try:
                    explicit.append(client.get_repository(owner, name))
                except Exception as e:
                    self.logger.error(f"Failed to look up {full_name}: {e}")
                    summary.record(SyncOutcome.failed(full_name, f"lookup failed: {e}"))

        sources: List[Tuple[str, Iterator[Repository]]] = [("explicit targets", iter(explicit))]
        for org in sorted(targets.organizations):
            sources.append((f"{RepoKind.ORG.value}/{org}", client.list_org_repositories(org)))
        for user in sorted(targets.users):
            sources.append((f"{RepoKind.USER.value}/{user}", client.list_user_repositories(user)))

        return self._run(sources, summary)

    def _run(self, sources: List[Tuple[str, Iterator[Repository]]], summary: Optional[RunSummary] = None) -> RunSummary:
        """Pull from each source on this thread and dispatch to the pool.

        This thread is the only one touching the sources and the summary;
        workers hand their outcome back through a future.
        """
        summary = summary or RunSummary()
        scheduled: Set[str] = set()
        max_in_flight = self.threads * 2
        pending: Set[Future] = set()

        def drain(limit: int) -> None:
            nonlocal pending
            while len(pending) > limit:
                done, pending = wait(pending, return_when=FIRST_COMPLETED)
                for future in done:
                    summary.record(future.result())

        with ThreadPoolExecutor(max_workers=self.threads, thread_name_prefix="ghsync") as executor:
            for label, source in sources:
                self.logger.info(f"Processing {label}")
                while True:
                    try:
                        repo = next(source)
                    except StopIteration:
                        break
                    except Exception as e:
                        self.logger.error(f"Failed to list {label}: {e}")
                        summary.record_listing_failure(label, f"listing failed: {e}")
                        break

                    if repo.full_name in self.ignore:
                        summary.record(self._ignored(repo.full_name))
                        continue
                    if repo.full_name in scheduled:
                        self.logger.debug(f"{repo.full_name} already scheduled in this run")
                        summary.record(SyncOutcome.skipped(repo.full_name, "already scheduled"))
                        continue
                    scheduled.add(repo.full_name)

                    drain(max_in_flight - 1)
                    pending.add(executor.submit(self.sync_one, repo))

            drain(0)

        self.logger.info(
            f"Sync complete: {summary.processed} processed, {summary.synced} synced, "
            f"{summary.skipped} skipped, {summary.failed} failed"
        )
        return summary

    def sync_one(self, repo: Repository) -> SyncOutcome:
        """Mirror one repository, capturing any error as a failed outcome."""
        path = self.base_dir / repo.full_name
        self.logger.info(f"Processing {repo.full_name} into {path}")

        try:
            action = self.synchronizer.sync(repo, path)
        except Exception as e:
            self.logger.error(f"Failed to synchronize {repo.full_name}: {e}")
            return SyncOutcome.failed(repo.full_name, str(e))

        return SyncOutcome.synced(repo.full_name, action)

    def _ignored(self, full_name: str) -> SyncOutcome:
        self.logger.debug(f"Ignoring {full_name}")
        return SyncOutcome.skipped(full_name, "ignored")
