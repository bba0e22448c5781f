# Copyright (c) 2017 Karl Bunch <karlbunch@karlbunch.com>

""" Implements a kubernetes flexvolume that mounts cifs/smb shares with mount(8)

    See https://github.com/kubernetes/community/blob/master/contributors/devel/flexvolume.md

    Supported operations:
        init                                - Reports no attach, fsGroup or metrics support
        mount <mount dir> <json options>    - mount -t cifs, see flexvolume.cifs.mounter for options
        unmount <mount dir>                 - umount

    Driver config (/etc/kubernetes/flexvolume-cifs.conf, optional yaml):
        logFile                             - Log file, default /var/log/kubernetes-cifs-volumedriver.log
        logLevel                            - Log level name, default DEBUG
        syslog                              - true to log to syslog instead of logFile
        mountCommand                        - mount(8) program, default "mount"
        umountCommand                       - umount(8) program, default "umount"

"""

import enum
import json
import logging
import logging.handlers
import time
import traceback
import yaml

from . import mounter
from .commands import run_command
from .exceptions import CommandError, ConfigError, OperationAbortedError, OperationInsufficientArgumentsError

CONFIG_FILE = "/etc/kubernetes/flexvolume-cifs.conf"
LOG_FILE = "/var/log/kubernetes-cifs-volumedriver.log"

MSG_INSUFFICIENT_ARGS = "Insufficient arguments"
MSG_UNSUPPORTED_OPERATION = "Unsupported operation"
MSG_UNEXPECTED = "Unexpected executing volume driver"

DEFAULT_CONFIG = {
    "logFile": LOG_FILE,
    "logLevel": "DEBUG",
    "syslog": False,
    "mountCommand": mounter.MOUNT_PROGRAM,
    "umountCommand": mounter.UMOUNT_PROGRAM,
}

# Nothing to attach, kubelet must not chown/chmod the share, no metrics
CAPABILITIES = {
    "Attach": False,
    "FSGroup": False,
    "SupportsMetrics": False,
}

class Status(str, enum.Enum):
    """ DriverStatus.Status values understood by the kubelet """
    SUCCESS = "Success"
    FAILURE = "Failure"
    NOT_SUPPORTED = "Not supported"

def Run(args):
    """ Run an operation output status json to stdout """
    return Plugin().run(args)

def load_config(path=CONFIG_FILE):
    """ Load the driver config, a missing file just means defaults """
    try:
        with open(path) as fobj:
            cfg = yaml.safe_load(fobj)
    except FileNotFoundError:
        return {}
    except (OSError, yaml.YAMLError) as err:
        raise ConfigError("Unable to load {}: {}".format(path, err))

    if cfg is None:
        return {}

    if not isinstance(cfg, dict):
        raise ConfigError("{} must contain a mapping, got {}".format(path, type(cfg).__name__))

    unknown = sorted(set(cfg) - set(DEFAULT_CONFIG))
    if unknown:
        raise ConfigError("{} has unknown keys: {}".format(path, ", ".join(str(i) for i in unknown)))

    if "logLevel" in cfg:
        level = cfg["logLevel"]
        if not isinstance(level, str) or not isinstance(logging.getLevelName(level.upper()), int):
            raise ConfigError("{} logLevel '{}' is not a logging level".format(path, level))
        cfg["logLevel"] = level.upper()

    for key in ("logFile", "mountCommand", "umountCommand"):
        if key in cfg and (not isinstance(cfg[key], str) or not cfg[key]):
            raise ConfigError("{} {} must be a non-empty string".format(path, key))

    if "syslog" in cfg and not isinstance(cfg["syslog"], bool):
        raise ConfigError("{} syslog must be true or false".format(path))

    return cfg

class Plugin(object):
    """ Implements the flexvolume plugin operations """

    def __init__(self, logger=None, log_stream=None, config=None, config_file=CONFIG_FILE):
        self.config = dict(DEFAULT_CONFIG)
        config_error = None

        if config is None:
            try:
                config = load_config(config_file)
            except ConfigError as err:
                config_error = err
                config = {}

        self.config.update(config)

        if logger:
            self.log = logger
        else:
            self.log = logging.getLogger("cifs-volume")
            self.log.setLevel(self.config["logLevel"])
            self.log.propagate = False

            for old_handler in list(self.log.handlers):
                self.log.removeHandler(old_handler)
                old_handler.close()

            self.log.addHandler(self.log_handler(log_stream))

        if config_error:
            self.log.warning("Ignoring driver config: %s", config_error.message)

        self.log.debug("Starting cifs-volume class")

    def log_handler(self, log_stream=None):
        """ File (or syslog) handler for the driver log, never stdout/stderr """
        try:
            if log_stream is not None:
                handler = logging.StreamHandler(stream=log_stream)
            elif self.config["syslog"]:
                handler = logging.handlers.SysLogHandler(address='/dev/log', facility=logging.handlers.SysLogHandler.LOG_DAEMON)
                handler.ident = 'cifs-volume: '
            else:
                handler = logging.FileHandler(self.config["logFile"])
        except OSError:
            # kubelet parses our combined output, stderr is not an option
            handler = logging.NullHandler()

        handler.setFormatter(logging.Formatter('%(asctime)s [%(process)d] %(levelname)s %(message)s'))

        return handler

    def response(self, status=Status.NOT_SUPPORTED, message=None, capabilities=None):
        """
        See kubernetes/pkg/volume/flexvolume/driver-call.go

        type DriverStatus struct {
                // Status of the callout. One of "Success", "Failure" or "Not supported".
                Status string `json:"status"`
                // Reason for success/failure.
                Message string `json:"message,omitempty"`
                // Returns capabilities of the driver.
                Capabilities *DriverCapabilities `json:",omitempty"`
        }

        kubelet decodes keys case-insensitively, we emit the exported Go names.
        """
        resp = {}

        resp['Status'] = Status(status).value
        resp['Message'] = message or ""

        if capabilities is not None:
            resp['Capabilities'] = capabilities

        resp_json = json.dumps(resp, separators=(",", ":"))

        self.log.info("Response: %s", resp_json)

        print(resp_json)

        return resp['Status'] == Status.SUCCESS.value

    def run(self, argv):
        """ Run the operation named by argv[1], argv[0] is the driver path """
        if len(argv) < 2:
            return self.response(status=Status.FAILURE, message=MSG_INSUFFICIENT_ARGS)

        return self.run_operation(argv[1], argv[2:])

    def run_operation(self, operation, args):
        """ Run a single plugin operation """
        handler = getattr(self, 'op_' + operation, None)

        if handler is None or not callable(handler):
            return self.response(status=Status.NOT_SUPPORTED, message="{}: {}".format(MSG_UNSUPPORTED_OPERATION, operation))

        start_time = time.time()

        try:
            result = handler(*args)
        except CommandError as cmd_err:
            result = self.response(status=Status.FAILURE, message="Error: {}".format(cmd_err.message))
        except OperationAbortedError as op_err:
            result = self.response(status=Status.FAILURE, message="{}: {}".format(MSG_UNEXPECTED, op_err.message))
        except Exception as err: # pylint: disable=broad-except
            # args may carry base64 credentials, only the operation is logged
            self.log.error("Exception Calling op_%s\n%s", operation, traceback.format_exc())
            result = self.response(status=Status.FAILURE, message="{}: {}".format(MSG_UNEXPECTED, err))

        delta_time = int(time.time() - start_time)

        if result:
            self.log.info("%s SUCCESS after %d second(s)", operation, delta_time)
        else:
            self.log.error("%s FAILED after %d second(s)", operation, delta_time)

        return result

    def op_init(self, *_args):
        """ Handle operation 'init' """
        self.log.info("Driver init")

        return self.response(status=Status.SUCCESS, capabilities=dict(CAPABILITIES))

    def op_mount(self, *args):
        """
        Mount the share at the mount dir. Called only from Kubelet.

        <driver executable> mount <mount dir> <json options>
        """
        if len(args) < 2:
            raise OperationInsufficientArgumentsError(MSG_INSUFFICIENT_ARGS)

        mount_dir, json_options = args[0], args[1]

        options = mounter.parse_options(json_options)

        self.log.info("op_mount: mount_dir: %s pv: %s pod: %s/%s fsType: %s",
                      mount_dir, options.pvName, options.podNamespace, options.podName, options.fsType)

        cmd = mounter.mount_command(mount_dir, options, program=self.config["mountCommand"])

        self.log.info("%s", cmd.argv)

        run_command(cmd, log=self.log)

        return self.response(status=Status.SUCCESS)

    def op_unmount(self, *args):
        """
        Unmount the share. Called only from Kubelet.

        <driver executable> unmount <mount dir>
        """
        if not args:
            raise OperationInsufficientArgumentsError(MSG_INSUFFICIENT_ARGS)

        mount_dir = args[0]

        self.log.info("op_unmount: mount_dir: %s", mount_dir)

        cmd = mounter.unmount_command(mount_dir, program=self.config["umountCommand"])

        self.log.info("%s", cmd.argv)

        run_command(cmd, log=self.log)

        return self.response(status=Status.SUCCESS)
