# Copyright (c) 2017 Karl Bunch <karlbunch@karlbunch.com>

""" External mount(8)/umount(8) commands and the runner that executes them """

import logging
import os
import subprocess

from .exceptions import (CommandDFSError, CommandError, CommandParameterError,
                         CommandPermissionDeniedError, CommandStartError)

EXIT_PERMISSION_DENIED = 13
EXIT_IO_ERROR = 5
EXIT_MOUNT_FAILURE = 32

class ExternalCommand(object):
    """ A program, its arguments and extra environment for the child process

        The environment overlay is how secrets reach the child, so it is never
        part of str() or the logged argument vector.
    """
    def __init__(self, program, args=None, env=None):
        self.program = program
        self.args = list(args or [])
        self.env = dict(env or {})

    @property
    def argv(self):
        """ Full argument vector, program first """
        return [self.program] + self.args

    def set_env(self, name, value):
        """ Add a variable to the child's environment """
        self.env[name] = value

    def environ(self):
        """ Environment for subprocess, None means inherit ours unchanged """
        if not self.env:
            return None

        environ = dict(os.environ)
        environ.update(self.env)

        return environ

    def has_option(self, option):
        """ True if option is in one of the comma separated -o lists """
        for flag, value in zip(self.args, self.args[1:]):
            if flag == "-o" and option in value.split(","):
                return True

        return False

    def __str__(self):
        return " ".join(self.argv)

    def __repr__(self):
        return "%s(%r)" % (self.__class__.__name__, self.argv)

def _exit_status(returncode):
    if returncode < 0:
        return "signal {}".format(-returncode)

    return "exit status {}".format(returncode)

def run_command(cmd, log=None):
    """ Run cmd capturing combined stdout/stderr, raise CommandError if returncode != 0

        subprocess.run starts and waits in one call, so failing to start or to
        wait both raise CommandStartError.
    """
    log = log or logging.getLogger(__name__)

    log.debug("run: %s", cmd.argv)

    try:
        result = subprocess.run(cmd.argv, check=False, stdout=subprocess.PIPE, stderr=subprocess.STDOUT, env=cmd.environ())
    except (OSError, ValueError, subprocess.SubprocessError) as err:
        raise CommandStartError("Error start cmd [cmd={}]: {}".format(cmd, err), cmd=cmd)

    output = result.stdout.rstrip().decode('utf-8', errors='replace')

    for line in output.split("\n"):
        if line:
            log.info("stdout: %s", line)

    log.info("return: %d", result.returncode)

    if result.returncode == 0:
        return result

    if result.returncode == EXIT_PERMISSION_DENIED:
        # Failed to authenticate against the CIFS server
        error_class, reason = CommandPermissionDeniedError, "Permission denied for cmd"
    elif result.returncode == EXIT_IO_ERROR and cmd.has_option("nodfs"):
        # I/O error plus nodfs is almost certainly a DFS share
        error_class, reason = CommandDFSError, "Cannot mount a DFS-Share with option nodfs"
    elif result.returncode == EXIT_MOUNT_FAILURE:
        error_class, reason = CommandParameterError, "Could not mount volume. Check parameters"
    else:
        error_class, reason = CommandError, "Error running cmd"

    raise error_class(
        "{} [cmd={}] [response={}]: {}".format(reason, cmd, output, _exit_status(result.returncode)),
        cmd=cmd, output=output, returncode=result.returncode
    )
