# Copyright (c) 2017 Karl Bunch <karlbunch@karlbunch.com>

""" Exceptions used by package """

class ConfigError(Exception):
    """ Driver config file could not be used """
    def __init__(self, message):
        self.message = message
        super(ConfigError, self).__init__(message)

class OperationAbortedError(Exception):
    """ Raised when an operation can not even be attempted """
    def __init__(self, message):
        self.message = message
        super(OperationAbortedError, self).__init__(message)

class OperationInsufficientArgumentsError(OperationAbortedError):
    """ Too few command line arguments for the operation """

class OperationInvalidOptionsError(OperationAbortedError):
    """ json options decoded but can't be turned into a mount """

class OptionsDecodeError(OperationAbortedError):
    """ Bad json options or bad base64 credentials """

class CommandError(Exception):
    """ Raised by run_command when mount/umount fails """
    def __init__(self, message, cmd=None, output="", returncode=None):
        self.message = message
        self.cmd = cmd
        self.output = output
        self.returncode = returncode
        super(CommandError, self).__init__(message)

class CommandStartError(CommandError):
    """ Command could not be started or waited on """

class CommandPermissionDeniedError(CommandError):
    """ Server refused our credentials (exit code 13) """

class CommandDFSError(CommandError):
    """ DFS share mounted with nodfs (exit code 5) """

class CommandParameterError(CommandError):
    """ mount rejected the parameters (exit code 32) """
