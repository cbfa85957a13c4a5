"""Tests for SubprocessSystemAdapter."""

from __future__ import annotations

from imsync.platform.subprocess_impl import SubprocessSystemAdapter
from imsync.platform.system_adapter import CommandResult


class TestSubprocessSystemAdapter:
    def test_run_command_success(self):
        result = SubprocessSystemAdapter().run_command(["echo", "hello"])
        assert isinstance(result, CommandResult)
        assert result.ok
        assert result.stdout.strip() == "hello"

    def test_run_command_failure(self):
        assert not SubprocessSystemAdapter().run_command(["false"]).ok

    def test_run_command_timeout(self):
        result = SubprocessSystemAdapter().run_command(["sleep", "10"], timeout=0.01)
        assert result.returncode == -1
        assert "timeout" in result.stderr.lower()

    def test_run_command_invalid_binary(self):
        result = SubprocessSystemAdapter().run_command(["__nonexistent_binary_12345__"])
        assert result.returncode == -1

    def test_spawn_returns_immediately(self):
        assert SubprocessSystemAdapter().spawn(["sleep", "0.1"]) is True

    def test_spawn_invalid_binary(self):
        assert SubprocessSystemAdapter(debug=True).spawn(["__nonexistent_binary_12345__"]) is False

    def test_gdbus_call_never_raises(self):
        result = SubprocessSystemAdapter().gdbus_call(
            "org.example.Nope", "/org/example/Nope", "org.example.Nope.Ping", timeout=0.5,
        )
        assert isinstance(result, CommandResult)
