"""GitSnapshotService — workspace snapshots in a shadow git repository.

The shadow repository keeps its own git directory, separate from any
repository the workspace may already be, and uses the workspace root as its
work tree. Snapshots never touch the user's own history, index or branches.
"""

import asyncio
from pathlib import Path

from turnwise.checkpoint.domain.errors import SnapshotError, WorkspaceRestoreError

_IDENTITY = (
    "-c",
    "user.name=turnwise",
    "-c",
    "user.email=turnwise@localhost",
    "-c",
    "commit.gpgsign=false",
)


class _GitCommandError(Exception):
    def __init__(self, args: tuple[str, ...], reason: str) -> None:
        super().__init__(f"git {' '.join(args)}: {reason}")


class GitSnapshotService:
    """Satisfies the VersionControl protocol structurally."""

    def __init__(self, workspace_root: Path, git_dir: Path) -> None:
        self._work_tree = workspace_root.resolve()
        self._git_dir = git_dir.resolve()
        self._init_lock = asyncio.Lock()
        self._initialized = False

    async def snapshot(self, message: str) -> str:
        try:
            await self._ensure_initialized()
            await self._git("add", "-A")
            await self._git(
                "commit", "--allow-empty", "--no-verify", "--quiet", "-m", message
            )
            return (await self._git("rev-parse", "HEAD")).strip()
        except _GitCommandError as exc:
            raise SnapshotError(reason=str(exc)) from exc

    async def restore(self, snapshot_id: str) -> None:
        # Resetting the index to the snapshot tree leaves files created after
        # the snapshot untracked, which is what lets clean remove them.
        try:
            await self._ensure_initialized()
            await self._git("read-tree", snapshot_id)
            await self._git("checkout-index", "--all", "--force")
            await self._git("clean", "--force", "-d")
        except _GitCommandError as exc:
            raise WorkspaceRestoreError(
                snapshot_id=snapshot_id, reason=str(exc)
            ) from exc

    async def _ensure_initialized(self) -> None:
        async with self._init_lock:
            if self._initialized:
                return
            if not (self._git_dir / "HEAD").exists():
                self._git_dir.mkdir(parents=True, exist_ok=True)
                await self._git("init", "--quiet")
            self._exclude_git_dir()
            self._initialized = True

    def _exclude_git_dir(self) -> None:
        try:
            relative = self._git_dir.relative_to(self._work_tree)
        except ValueError:
            return
        exclude = self._git_dir / "info" / "exclude"
        pattern = f"/{relative.parts[0]}/"
        existing = exclude.read_text() if exclude.exists() else ""
        if pattern in existing.splitlines():
            return
        exclude.parent.mkdir(parents=True, exist_ok=True)
        exclude.write_text(existing + f"{pattern}\n")

    async def _git(self, *args: str) -> str:
        try:
            process = await asyncio.create_subprocess_exec(
                "git",
                *_IDENTITY,
                f"--git-dir={self._git_dir}",
                f"--work-tree={self._work_tree}",
                *args,
                cwd=self._work_tree,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise _GitCommandError(args, str(exc)) from exc
        stdout, stderr = await process.communicate()
        if process.returncode != 0:
            reason = stderr.decode("utf-8", errors="replace").strip()
            raise _GitCommandError(args, reason or f"exit code {process.returncode}")
        return stdout.decode("utf-8", errors="replace")
