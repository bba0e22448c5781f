""" Tests for run_command exit code handling, using real sh processes """

import io
import logging

import pytest

from flexvolume.cifs.commands import ExternalCommand, run_command
from flexvolume.cifs.exceptions import (CommandDFSError, CommandError, CommandParameterError,
                                        CommandPermissionDeniedError, CommandStartError)


def sh(script, *extra):
    # extra args land in $0.. and stand in for mount's option arguments
    return ExternalCommand("sh", ["-c", script] + list(extra))


def test_success_returns_result():
    result = run_command(sh("echo mounted"))

    assert result.returncode == 0
    assert result.stdout == b"mounted\n"


def test_output_is_combined():
    with pytest.raises(CommandError) as excinfo:
        run_command(sh("echo out; echo err >&2; exit 1"))

    assert excinfo.value.output == "out\nerr"
    assert excinfo.value.returncode == 1


def test_exit_13_is_permission_denied():
    with pytest.raises(CommandPermissionDeniedError) as excinfo:
        run_command(sh("echo denied; exit 13"))

    assert excinfo.value.message.startswith("Permission denied for cmd [cmd=sh -c ")
    assert excinfo.value.message.endswith("[response=denied]: exit status 13")


def test_exit_5_with_nodfs_is_dfs_error():
    with pytest.raises(CommandDFSError) as excinfo:
        run_command(sh("exit 5", "-o", "rw,nodfs"))

    assert "Cannot mount a DFS-Share with option nodfs" in excinfo.value.message


def test_exit_5_without_nodfs_is_generic():
    with pytest.raises(CommandError) as excinfo:
        run_command(sh("exit 5", "-o", "rw,nodfsx"))

    assert type(excinfo.value) is CommandError
    assert excinfo.value.message.startswith("Error running cmd [cmd=")
    assert excinfo.value.message.endswith(": exit status 5")


def test_exit_32_is_parameter_error():
    with pytest.raises(CommandParameterError) as excinfo:
        run_command(sh("echo bad option >&2; exit 32"))

    assert excinfo.value.message.startswith("Could not mount volume. Check parameters [cmd=")
    assert "[response=bad option]" in excinfo.value.message


def test_start_failure():
    cmd = ExternalCommand("/nonexistent/bin/mount", ["-t", "cifs"])

    with pytest.raises(CommandStartError) as excinfo:
        run_command(cmd)

    assert excinfo.value.message.startswith("Error start cmd [cmd=/nonexistent/bin/mount -t cifs]: ")
    assert excinfo.value.cmd is cmd


def test_environment_overlay_reaches_child_and_not_log():
    stream = io.StringIO()
    log = logging.getLogger("test-commands")
    log.setLevel(logging.DEBUG)
    log.addHandler(logging.StreamHandler(stream))

    # the secret itself must stay out of argv, argv is logged
    cmd = sh('test "$PASSWD" = "$EXPECTED"')
    cmd.set_env("PASSWD", "hunter2")
    cmd.set_env("EXPECTED", "hunter2")

    try:
        run_command(cmd, log=log)
    finally:
        log.handlers = []

    assert "hunter2" not in stream.getvalue()
    assert "return: 0" in stream.getvalue()


def test_has_option_only_looks_at_o_lists():
    cmd = ExternalCommand("mount", ["-t", "cifs", "-o", "uid=1,gid=1,nodfs", "//h/s", "/mnt"])

    assert cmd.has_option("nodfs")
    assert not cmd.has_option("cifs")
    assert not cmd.has_option("dfs")


def test_mount_dir_is_not_an_option():
    cmd = ExternalCommand("mount", ["-t", "cifs", "-o", "rw", "//h/s", "/mnt/a,nodfs"])

    assert not cmd.has_option("nodfs")

    with pytest.raises(CommandError) as excinfo:
        run_command(ExternalCommand("sh", ["-c", "exit 5", "/mnt/a,nodfs"]))

    assert type(excinfo.value) is CommandError
