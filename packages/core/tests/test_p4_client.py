"""Tests for the p4 command wrapper and changelist listing."""

import subprocess
from unittest.mock import MagicMock

import pytest

from p4lens_core.p4.changes import get_changelists
from p4lens_core.p4.client import P4Client, P4CommandError, P4UnavailableError


def _completed(stdout="", returncode=0, stderr=""):
    return MagicMock(stdout=stdout, returncode=returncode, stderr=stderr)


class TestBuildArgs:
    def test_no_connection_values(self):
        assert P4Client()._build_args(["describe", "-s", "1"]) == ["describe", "-s", "1"]

    def test_all_connection_values(self):
        p4 = P4Client(client="ws", user="alice", port="ssl:p4:1666")
        assert p4._build_args(["changes"]) == ["-p", "ssl:p4:1666", "-u", "alice", "-c", "ws", "changes"]

    def test_none_and_blank_values_ignored(self):
        p4 = P4Client(client="none", user="  ", port="NONE")
        assert p4._build_args(["info"]) == ["info"]

    def test_values_trimmed(self):
        assert P4Client(client=" ws ").client == "ws"


class TestRun:
    def test_returns_stdout(self, mocker):
        run = mocker.patch("p4lens_core.p4.client.subprocess.run", return_value=_completed("out"))
        assert P4Client(user="bob").run(["info"]) == "out"
        assert run.call_args.args[0] == ["p4", "-u", "bob", "info"]

    def test_nonzero_exit_raises_command_error(self, mocker):
        mocker.patch(
            "p4lens_core.p4.client.subprocess.run",
            return_value=_completed(returncode=1, stderr="Change 99 unknown.\n"),
        )
        with pytest.raises(P4CommandError, match="Change 99 unknown.") as exc_info:
            P4Client().describe(99)
        assert exc_info.value.returncode == 1

    def test_missing_executable(self, mocker):
        mocker.patch("p4lens_core.p4.client.subprocess.run", side_effect=FileNotFoundError)
        with pytest.raises(P4UnavailableError, match="not found"):
            P4Client().run(["info"])

    def test_timeout(self, mocker):
        mocker.patch(
            "p4lens_core.p4.client.subprocess.run",
            side_effect=subprocess.TimeoutExpired(cmd="p4", timeout=1),
        )
        with pytest.raises(P4UnavailableError, match="timed out"):
            P4Client(timeout=1).run(["info"])


class TestCommands:
    @pytest.fixture
    def p4(self, mocker):
        client = P4Client()
        mocker.patch.object(client, "run", return_value="")
        return client

    def test_describe(self, p4):
        p4.describe(12)
        p4.run.assert_called_once_with(["describe", "-du", "12"])

    def test_describe_shelved(self, p4):
        p4.describe(12, shelved=True)
        p4.run.assert_called_once_with(["describe", "-du", "-S", "12"])

    def test_describe_summary_shelved(self, p4):
        p4.describe_summary(12, shelved=True)
        p4.run.assert_called_once_with(["describe", "-s", "-S", "12"])

    def test_diff2(self, p4):
        p4.diff2("//depot/a.c", 3, 4)
        p4.run.assert_called_once_with(["diff2", "-du", "//depot/a.c#3", "//depot/a.c#4"])

    def test_changes_with_filters(self, p4):
        p4.changes("alice", max_results=5, status="pending")
        p4.run.assert_called_once_with(["changes", "-l", "-m", "5", "-s", "pending", "-u", "alice"])


class TestEnsureAvailable:
    def test_banner_present(self, mocker):
        run = mocker.patch(
            "p4lens_core.p4.client.subprocess.run",
            return_value=_completed("Perforce - The Fast Software Configuration Management System.\nRev. P4/..."),
        )
        P4Client(port="p4:1666").ensure_available()
        # -V is a local query; connection flags are not added
        assert run.call_args.args[0] == ["p4", "-V"]

    def test_wrong_binary(self, mocker):
        mocker.patch("p4lens_core.p4.client.subprocess.run", return_value=_completed("some other tool 1.0"))
        with pytest.raises(P4UnavailableError):
            P4Client().ensure_available()


class TestGetChangelists:
    def test_parses_changes_output(self):
        p4 = MagicMock()
        p4.changes.return_value = "Change 7 on 2025/05/01 by carol@ws *pending*\n\n\tWIP\n"
        records = get_changelists(p4, "carol", max_results=10)
        p4.changes.assert_called_once_with("carol", max_results=10, status=None)
        assert len(records) == 1
        assert records[0].number == 7
        assert records[0].status == "pending"
        assert records[0].description == "WIP"
