"""Mock command runner for filesystem tests."""

from __future__ import annotations

from linstorcsi.storage.filesystem import CommandResult, CommandRunner

__all__ = ["MockCommandRunner"]


class MockCommandRunner(CommandRunner):
    """Record commands instead of running them.

    Results are looked up by the command name (the first argument). Any
    command without a programmed result succeeds with no output, except
    :command:`blkid`, which by default reports that no filesystem exists,
    and :command:`mountpoint`, which by default reports that nothing is
    mounted.

    Attributes
    ----------
    commands
        Every command run, in order.
    results
        Map of command names to the result to return.
    """

    def __init__(self) -> None:
        self.commands: list[list[str]] = []
        self.results: dict[str, CommandResult] = {}

    def set_result(
        self,
        command: str,
        returncode: int,
        stdout: str = "",
        stderr: str = "",
    ) -> None:
        """Program the result of a command."""
        self.results[command] = CommandResult(
            returncode=returncode, stdout=stdout, stderr=stderr
        )

    def commands_named(self, command: str) -> list[list[str]]:
        """Return all recorded invocations of a command."""
        return [c for c in self.commands if c[0] == command]

    async def run(self, command: list[str]) -> CommandResult:
        self.commands.append(command)
        if command[0] in self.results:
            return self.results[command[0]]
        match command[0]:
            case "blkid":
                return CommandResult(returncode=2, stdout="", stderr="")
            case "mountpoint":
                return CommandResult(returncode=1, stdout="", stderr="")
            case _:
                return CommandResult(returncode=0, stdout="", stderr="")
