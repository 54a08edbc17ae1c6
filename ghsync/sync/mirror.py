"""
Mirror synchronizer for keeping a local working copy identical to GitHub.

Clones repositories that are not present yet and force-updates the ones
that are, discarding any local divergence.
"""

import shutil
import tempfile
import time
from pathlib import Path
from typing import Dict, Optional

from git import GitCommandError, GitError, InvalidGitRepositoryError, NoSuchPathError, Repo

from ..config.config import SyncConfig
from ..logger.logger import get_logger
from ..models import MirrorAction, Repository

# git stderr fragments that mean the requested branch does not exist (yet)
MISSING_BRANCH_MARKERS = (
    "not found in upstream",
    "Could not find remote branch",
    "couldn't find remote ref",
)

TRANSIENT_MARKERS = (
    "HTTP2 framing layer",
    "Connection timed out",
    "Connection reset by peer",
    "Temporary failure",
    "Network is unreachable",
    "timeout",
    "RPC failed",
    "curl 18",
    "early EOF",
    "unexpected disconnect",
)


class MirrorError(Exception):
    """A clone or update that failed for a reason other than a missing branch."""

    def __init__(self, full_name: str, operation: str, cause: Exception):
        self.full_name = full_name
        self.operation = operation
        self.cause = cause
        super().__init__(f"{full_name}: {operation} failed: {_describe(cause)}")


def _stderr(error: GitCommandError) -> str:
    # GitPython stores stderr as "\n  stderr: '<text>'"
    stderr = (error.stderr or "").strip()
    if stderr.startswith("stderr:"):
        stderr = stderr[len("stderr:"):].strip().strip("'").strip()
    return stderr


def _describe(error: Exception) -> str:
    if isinstance(error, GitCommandError):
        return _stderr(error) or str(error)
    return str(error)


def _is_missing_branch(error: GitCommandError) -> bool:
    text = _stderr(error)
    return any(marker in text for marker in MISSING_BRANCH_MARKERS)


def _is_transient(error: GitCommandError) -> bool:
    text = _stderr(error)
    return any(marker in text for marker in TRANSIENT_MARKERS)


class MirrorSynchronizer:
    """Brings a local path into an exact mirror of a repository's default branch."""

    def __init__(self, sync_config: Optional[SyncConfig] = None, log_config=None):
        """Initialize the synchronizer.

        Args:
            sync_config: Synchronization configuration (retries, transfer limits)
            log_config: Optional logging configuration
        """
        self.sync_config = sync_config or SyncConfig()
        self.logger = get_logger("mirror", log_config)

    def _get_git_env(self) -> Dict[str, str]:
        """Build Git environment variables.

        Returns:
            Dictionary of environment variables for Git operations
        """
        return {
            'GIT_TERMINAL_PROMPT': '0',
            'GIT_HTTP_LOW_SPEED_LIMIT': '1000',  # 1KB/s minimum
            'GIT_HTTP_LOW_SPEED_TIME': str(self.sync_config.low_speed_time),
        }

    def sync(self, repo: Repository, path: Path) -> MirrorAction:
        """Clone or update ``repo`` at ``path``.

        Args:
            repo: Repository descriptor
            path: Local directory of the mirror

        Returns:
            The action taken

        Raises:
            MirrorError: If the clone or update fails
        """
        path = Path(path)
        try:
            local = self._open(path)
        except (OSError, GitError) as e:
            raise MirrorError(repo.full_name, "clone", e) from e

        if local is None:
            return self._with_retries(repo, "clone", lambda: self._clone(repo, path))

        try:
            return self._with_retries(repo, "update", lambda: self._update(repo, local))
        finally:
            local.close()

    def _open(self, path: Path) -> Optional[Repo]:
        """Open the mirror at ``path``, clearing the path if it is not a repository."""
        if not path.exists() and not path.is_symlink():
            return None

        if path.is_dir():
            try:
                return Repo(path)
            except (InvalidGitRepositoryError, NoSuchPathError):
                pass

        self.logger.warning(f"{path} exists but is not a git repository, replacing it")
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        else:
            path.unlink()
        return None

    def _with_retries(self, repo: Repository, operation: str, action) -> MirrorAction:
        attempts = self.sync_config.retry_count + 1

        for attempt in range(1, attempts + 1):
            try:
                return action()
            except GitCommandError as e:
                if _is_transient(e) and attempt < attempts:
                    wait_time = self.sync_config.retry_delay * attempt
                    self.logger.warning(
                        f"Transient error during {operation} of {repo.full_name}, "
                        f"retrying in {wait_time}s (attempt {attempt}/{attempts}): {_describe(e)}"
                    )
                    time.sleep(wait_time)
                    continue
                raise MirrorError(repo.full_name, operation, e) from e
            except OSError as e:
                raise MirrorError(repo.full_name, operation, e) from e

        raise AssertionError("unreachable")

    def _clone(self, repo: Repository, path: Path) -> MirrorAction:
        """Clone into a temporary sibling directory and move it into place."""
        path.parent.mkdir(parents=True, exist_ok=True)
        staging = Path(tempfile.mkdtemp(prefix=f".{path.name}.", suffix=".partial", dir=path.parent))

        try:
            self.logger.debug(f"Cloning {repo.clone_url} ({repo.default_branch}) to {path}")
            try:
                cloned = Repo.clone_from(
                    repo.clone_url,
                    staging,
                    branch=repo.default_branch,
                    env=self._get_git_env(),
                )
            except GitCommandError as e:
                if _is_missing_branch(e):
                    self.logger.info(
                        f"{repo.full_name} has no branch {repo.default_branch} yet, skipping clone"
                    )
                    return MirrorAction.EMPTY
                raise
            cloned.close()
            staging.rename(path)
        finally:
            if staging.exists():
                shutil.rmtree(staging, ignore_errors=True)

        self.logger.info(f"Cloned {repo.full_name} into {path}")
        return MirrorAction.CLONED

    def _update(self, repo: Repository, local: Repo) -> MirrorAction:
        """Fetch the default branch and hard-reset the working copy onto it."""
        branch = repo.default_branch

        if "origin" in local.remotes:
            origin = local.remotes.origin
            origin.set_url(repo.clone_url)
        else:
            origin = local.create_remote("origin", repo.clone_url)

        refspec = f"+refs/heads/{branch}:refs/remotes/origin/{branch}"
        with local.git.custom_environment(**self._get_git_env()):
            try:
                origin.fetch(refspec, prune=True, prune_tags=True, tags=True)
            except GitCommandError as e:
                if not _is_missing_branch(e):
                    raise
                self.logger.info(f"{repo.full_name} has no branch {branch} on the remote, nothing to reset")
                return MirrorAction.FETCHED

        commit = self._resolve(local, f"refs/remotes/origin/{branch}")
        if commit is None:
            self.logger.info(f"Fetched {repo.full_name}, no reference for {branch} to reset to")
            return MirrorAction.FETCHED

        local.git.checkout("--force", "-B", branch, commit)
        local.head.reset(commit, index=True, working_tree=True)
        self.logger.info(f"Updated {repo.full_name} to {commit[:10]}")
        return MirrorAction.UPDATED

    @staticmethod
    def _resolve(local: Repo, ref: str) -> Optional[str]:
        """Return the commit sha ``ref`` points at, or None if it does not resolve."""
        try:
            return local.git.rev_parse("--verify", "--quiet", f"{ref}^{{commit}}")
        except GitCommandError:
            return None
