"""Thin wrapper around the Perforce `p4` command line.

Only the handful of commands the review pipeline needs are exposed. Every
method returns the command's raw stdout; interpretation lives in
p4lens_core.describe so it can be tested without a Perforce server.
"""

from __future__ import annotations

import logging
import subprocess

logger = logging.getLogger(__name__)

_P4_BANNER = "Perforce - The Fast Software Configuration Management System"


class P4Error(Exception):
    """Base class for failures talking to Perforce."""


class P4UnavailableError(P4Error):
    """The p4 executable is missing, timed out, or is not a Perforce client."""


class P4CommandError(P4Error):
    def __init__(self, args: list[str], returncode: int, stderr: str):
        self.args_list = args
        self.returncode = returncode
        self.stderr = stderr.strip()
        super().__init__(f"`p4 {' '.join(args)}` exited with {returncode}: {self.stderr or 'no error output'}")


def _setting_is_valid(value: str | None) -> bool:
    """True for a non-empty connection value other than the placeholder "none"."""
    if not isinstance(value, str):
        return False
    trimmed = value.strip()
    return bool(trimmed) and trimmed.lower() != "none"


class P4Client:
    """Runs p4 commands with optional client/user/port connection overrides.

    Unset values are simply omitted, so p4 falls back to its own
    P4CLIENT / P4USER / P4PORT environment and P4CONFIG resolution.
    """

    def __init__(
        self,
        client: str | None = None,
        user: str | None = None,
        port: str | None = None,
        executable: str = "p4",
        timeout: float = 120,
    ):
        self.client = client.strip() if _setting_is_valid(client) else None
        self.user = user.strip() if _setting_is_valid(user) else None
        self.port = port.strip() if _setting_is_valid(port) else None
        self.executable = executable
        self.timeout = timeout

    def _build_args(self, base_args: list[str]) -> list[str]:
        args = list(base_args)
        if self.client:
            args = ["-c", self.client, *args]
        if self.user:
            args = ["-u", self.user, *args]
        if self.port:
            args = ["-p", self.port, *args]
        return args

    def run(self, args: list[str], connect: bool = True) -> str:
        """Run `p4 <args>` and return stdout; raise a P4Error subclass on failure."""
        full_args = self._build_args(args) if connect else list(args)
        logger.debug("Running: %s %s", self.executable, " ".join(full_args))
        try:
            result = subprocess.run(
                [self.executable, *full_args],
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError:
            raise P4UnavailableError(f"'{self.executable}' was not found. Is the Perforce CLI installed and on PATH?")
        except subprocess.TimeoutExpired:
            raise P4UnavailableError(f"`{self.executable} {' '.join(full_args)}` timed out after {self.timeout}s.")

        if result.returncode != 0:
            raise P4CommandError(full_args, result.returncode, result.stderr or "")
        return result.stdout

    def ensure_available(self) -> None:
        out = self.run(["-V"], connect=False)
        if _P4_BANNER not in out:
            raise P4UnavailableError(f"'{self.executable} -V' did not identify itself as the Perforce CLI.")

    def describe(self, changelist: int, shelved: bool = False) -> str:
        """Full `p4 describe -du [-S]` output, including per-file unified diffs."""
        args = ["describe", "-du"]
        if shelved:
            args.append("-S")
        args.append(str(changelist))
        return self.run(args)

    def describe_summary(self, changelist: int, shelved: bool = False) -> str:
        """`p4 describe -s [-S]` output: file list with revisions and actions, no diffs."""
        args = ["describe", "-s"]
        if shelved:
            args.append("-S")
        args.append(str(changelist))
        return self.run(args)

    def diff2(self, depot_path: str, from_rev: int, to_rev: int) -> str:
        return self.run(["diff2", "-du", f"{depot_path}#{from_rev}", f"{depot_path}#{to_rev}"])

    def changes(self, user: str, max_results: int | None = None, status: str | None = None) -> str:
        args = ["changes", "-l"]
        if max_results:
            args += ["-m", str(max_results)]
        if status:
            args += ["-s", status]
        args += ["-u", str(user)]
        return self.run(args)
