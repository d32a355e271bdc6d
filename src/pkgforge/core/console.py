#!/usr/bin/env python3
"""Module to run console commands.

This module provides the shell runner every engine uses to execute local
commands (bash, ssh, rsync, docker, aws). Every command is recorded in the
log stream before it runs.
"""
# built-in modules
import logging
import subprocess
import typing


logger = logging.getLogger(__name__)


class ShellCommandError(RuntimeError):
    """Raised when a shell command exits non-zero or times out.

    Attributes:
        command (str): The command, or its redacted label.
        returncode (int): The exit code, None on timeout.
        output (str): The combined stdout/stderr captured so far.
    """

    def __init__(
        self,
        command: str,
        returncode: typing.Optional[int],
        output: str = "",
        timed_out: bool = False,
    ) -> None:
        self.command = command
        self.returncode = returncode
        self.output = output
        self.timed_out = timed_out
        if timed_out:
            message = f"Subprocess '{command}' timed out"
        else:
            message = f"Subprocess '{command}' failed with exit code {returncode}"
        super().__init__(message)


class Console:
    """Class to run console commands.

    Attributes:
        shellVerbose (bool): Log the commands at INFO instead of DEBUG.
        live_output (bool): Stream output while the command runs.
    """
    def __init__(
            self,
            shellVerbose: bool=True,
            live_output: bool=False
        ) -> None:
        """Constructor of the Console class.

        Args:
            shellVerbose (bool): The shell verbose flag.
            live_output (bool): The live output flag.
        """
        self.shellVerbose = shellVerbose
        self.live_output = live_output

    def sh(
            self,
            command: str,
            canFail: bool=False,
            timeout: typing.Optional[int]=None,
            secret: typing.Union[bool, str]=False,
            prefix: str="",
            env: typing.Optional[typing.Dict[str, str]]=None
        ) -> str:
        """Run shell command.

        Args:
            command (str): The shell command.
            canFail (bool): The flag to allow failure.
            timeout (int): The timeout in seconds, None waits forever.
            secret (bool|str): Hide the command; a string is logged instead.
            prefix (str): The prefix of the live output lines.
            env (dict): The environment variables.

        Returns:
            str: The output of the shell command.

        Raises:
            ShellCommandError: If the shell command fails or times out.
        """
        label = command
        if secret:
            label = secret if isinstance(secret, str) else "<redacted>"

        logger.log(logging.INFO if self.shellVerbose else logging.DEBUG, "> %s", label)

        # binary mode so undecodable output never breaks a build
        proc = subprocess.Popen(
            command,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            shell=True,
            universal_newlines=False,
            bufsize=0,
            env=env,
        )

        try:
            if not self.live_output:
                raw_outs, _ = proc.communicate(timeout=timeout)
                outs = raw_outs.decode("utf-8", errors="replace")
            else:
                lines = []
                for raw_line in iter(proc.stdout.readline, b""):
                    line = raw_line.decode("utf-8", errors="replace")
                    print(prefix + line, end="", flush=True)
                    lines.append(line)
                outs = "".join(lines)
                proc.stdout.close()
                proc.wait(timeout=timeout)
        except subprocess.TimeoutExpired as exc:
            proc.kill()
            proc.communicate()
            raise ShellCommandError(label, None, timed_out=True) from exc

        if proc.returncode != 0 and not canFail:
            logger.debug("%s", outs)
            raise ShellCommandError(label, proc.returncode, outs.strip())

        return outs.strip()
