"""Formatting and mounting of block devices on the local node."""

from __future__ import annotations

import asyncio
import shlex
from dataclasses import dataclass
from pathlib import Path

from structlog.stdlib import BoundLogger

from ..exceptions import FilesystemError

__all__ = [
    "CommandResult",
    "CommandRunner",
    "FilesystemHelper",
]

DEFAULT_FS_TYPE = "ext4"
"""Filesystem created when none is requested."""

_BLKID_NO_FILESYSTEM = 2
"""Exit status of :command:`blkid -p` when no filesystem signature exists."""


@dataclass
class CommandResult:
    """Outcome of running a command."""

    returncode: int
    """Exit status."""

    stdout: str
    """Standard output."""

    stderr: str
    """Standard error."""


class CommandRunner:
    """Run external commands and collect their output."""

    async def run(self, command: list[str]) -> CommandResult:
        """Run a command to completion.

        Parameters
        ----------
        command
            Command and arguments. No shell is involved.

        Returns
        -------
        CommandResult
            Exit status and output of the command.

        Raises
        ------
        FilesystemError
            Raised if the command could not be started.
        """
        try:
            proc = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            msg = f"Cannot run {command[0]}: {e!s}"
            raise FilesystemError(msg, command=command) from e
        stdout, stderr = await proc.communicate()
        return CommandResult(
            returncode=proc.returncode or 0,
            stdout=stdout.decode(errors="replace"),
            stderr=stderr.decode(errors="replace"),
        )


class FilesystemHelper:
    """Create filesystems on devices and mount them.

    Parameters
    ----------
    runner
        Runner for the underlying system commands.
    logger
        Logger for log messages.
    """

    def __init__(self, runner: CommandRunner, logger: BoundLogger) -> None:
        self._runner = runner
        self._logger = logger

    async def safe_format(
        self, device: str, fs_type: str, fs_opts: str = ""
    ) -> None:
        """Create a filesystem on a device unless it already has one.

        Parameters
        ----------
        device
            Path to the block device.
        fs_type
            Filesystem type, such as ``ext4`` or ``xfs``. An empty string
            selects ``ext4``.
        fs_opts
            Additional options for :command:`mkfs`, split like a shell
            would.

        Raises
        ------
        FilesystemError
            Raised if the device holds a different filesystem or if probing
            or formatting fails.
        """
        fs_type = fs_type or DEFAULT_FS_TYPE
        probe = ["blkid", "-p", "-s", "TYPE", "-o", "value", device]
        result = await self._runner.run(probe)
        if result.returncode == 0:
            existing = result.stdout.strip()
            if existing != fs_type:
                msg = f"Device {device} already has a {existing} filesystem"
                raise FilesystemError(msg, command=probe, returncode=0)
            self._logger.debug(
                "Device already formatted", device=device, fs_type=fs_type
            )
            return
        if result.returncode != _BLKID_NO_FILESYSTEM:
            msg = f"Cannot probe {device} for a filesystem"
            raise FilesystemError(
                msg,
                command=probe,
                returncode=result.returncode,
                stderr=result.stderr,
            )

        mkfs = [f"mkfs.{fs_type}", *shlex.split(fs_opts), device]
        self._logger.info("Formatting device", device=device, fs_type=fs_type)
        await self._check_run(mkfs, f"Cannot format {device}")

    async def mount(
        self, source: str, target: str, fs_type: str, mount_opts: str = ""
    ) -> None:
        """Mount a device, creating the mount point if needed.

        Mounting onto a target that is already a mount point does nothing.

        Parameters
        ----------
        source
            Path to the block device.
        target
            Directory on which to mount it.
        fs_type
            Filesystem type. An empty string selects ``ext4``.
        mount_opts
            Comma-separated mount options, possibly empty.

        Raises
        ------
        FilesystemError
            Raised if the mount fails.
        """
        if await self._is_mounted(target):
            self._logger.debug("Target already mounted", target=target)
            return
        Path(target).mkdir(parents=True, exist_ok=True)
        command = ["mount", "-t", fs_type or DEFAULT_FS_TYPE]
        if mount_opts:
            command.extend(["-o", mount_opts])
        command.extend([source, target])
        await self._check_run(command, f"Cannot mount {source} on {target}")

    async def unmount(self, target: str) -> None:
        """Unmount a mount point if anything is mounted there.

        Parameters
        ----------
        target
            Mount point.

        Raises
        ------
        FilesystemError
            Raised if the unmount fails.
        """
        if not await self._is_mounted(target):
            self._logger.debug("Target not mounted", target=target)
            return
        await self._check_run(["umount", target], f"Cannot unmount {target}")

    async def _check_run(self, command: list[str], message: str) -> None:
        result = await self._runner.run(command)
        if result.returncode != 0:
            raise FilesystemError(
                message,
                command=command,
                returncode=result.returncode,
                stderr=result.stderr.strip(),
            )

    async def _is_mounted(self, target: str) -> bool:
        result = await self._runner.run(["mountpoint", "-q", target])
        return result.returncode == 0
