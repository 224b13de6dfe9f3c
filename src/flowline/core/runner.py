"""Command execution using the invoke library."""

import shlex
from pathlib import Path

from invoke import Context, Result
from invoke.exceptions import CommandTimedOut

from flowline.core.log import logger


class Runner(Context):
    """Wrapper around invoke.Context with command execution helpers.

    Commands never raise on a non-zero exit unless check=True; callers
    inspect Result.exited and Result.stdout/stderr themselves, which
    is how conflict output is told apart from hard failures.
    """

    def execute(
        self,
        command: str,
        cwd: Path | None = None,
        timeout: int | None = None,
        check: bool = True,
        env: dict[str, str] | None = None,
    ) -> Result:
        """Execute a command.

        Args:
            command: Command string to execute
            cwd: Working directory for command execution
            timeout: Maximum execution time in seconds
            check: If True, raise exception on non-zero exit code
            env: Environment variables to set (updates os.environ,
                does not replace it)

        Returns:
            invoke.Result with stdout, stderr, exited (return code)

        Raises:
            invoke.UnexpectedExit: If check=True and command
                returns non-zero
        """
        kwargs = {
            "hide": True,
            "warn": not check,
            "in_stream": False,
        }
        if timeout:
            kwargs["timeout"] = timeout
        if env:
            kwargs["env"] = env

        logger.spew("Running command", command=command, cwd=str(cwd or "."))

        try:
            if cwd:
                with self.cd(str(cwd)):
                    result = self.run(command, **kwargs)
            else:
                result = self.run(command, **kwargs)
        except CommandTimedOut as e:
            # Report timeouts as a failed result with returncode -1
            result = e.result
            result.exited = -1

        for line in result.stdout.splitlines():
            logger.spew(line.rstrip(), stream="stdout")
        for line in result.stderr.splitlines():
            logger.spew(line.rstrip(), stream="stderr")

        return result

    def git(
        self,
        *args: str,
        cwd: Path | None = None,
        check: bool = False,
        env: dict[str, str] | None = None,
    ) -> Result:
        """Run a git subcommand with shell-quoted arguments.

        Args:
            *args: Arguments after `git`
            cwd: Repository working directory
            check: If True, raise on non-zero exit code
            env: Extra environment variables

        Returns:
            invoke.Result of the git invocation
        """
        command = shlex.join(["git", *args])
        return self.execute(command, cwd=cwd, check=check, env=env)
