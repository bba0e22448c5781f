# Copyright (c) 2017 Karl Bunch <karlbunch@karlbunch.com>

""" Turn kubelet mount options into mount(8)/umount(8) commands for cifs shares

    json_options from kubernetes/pkg/volume/flexvolume/driver-call.go:
        "kubernetes.io/mounterArgs.FsGroup" - uid=/gid= mount option (k8s >= 1.15)
        "kubernetes.io/fsGroup"             - Same, from older kubelets
        "kubernetes.io/fsType"              - Logged only
        "kubernetes.io/readwrite"           - ro/rw - Mount option
        "kubernetes.io/pvOrVolumeName"      - Logged only
        "kubernetes.io/pod.name"            - Logged only
        "kubernetes.io/pod.namespace"       - Logged only
        "kubernetes.io/pod.uid"             - Not Used
        "kubernetes.io/serviceAccount.name" - Not Used
        "kubernetes.io/secret/domain"       - base64, domain= mount option
        "kubernetes.io/secret/username"     - base64, username= mount option
        "kubernetes.io/secret/password"     - base64, PASSWD in the environment of mount

    flexVolume.options:
        "server" + "share"                  - Source becomes //{server}{share}
        "source"                            - Source used verbatim when server/share are not both set
        "opts"                              - Comma separated mount options, wins over mountOptions
        "mountOptions"                      - Comma separated mount options
        "passwdMethod"                      - Not Used, the password always goes through the environment

"""

import base64
import binascii
import json
import types

from .commands import ExternalCommand
from .exceptions import OperationInvalidOptionsError, OptionsDecodeError

MOUNT_PROGRAM = "mount"
UMOUNT_PROGRAM = "umount"

MSG_INVALID_MOUNTER_ARGS = "Invalid mounter arguments"

OPTION_KEYS = {
    "fsGroup": "kubernetes.io/mounterArgs.FsGroup",
    "fsGroupLegacy": "kubernetes.io/fsGroup",
    "fsType": "kubernetes.io/fsType",
    "podName": "kubernetes.io/pod.name",
    "podNamespace": "kubernetes.io/pod.namespace",
    "podUID": "kubernetes.io/pod.uid",
    "pvName": "kubernetes.io/pvOrVolumeName",
    "readwrite": "kubernetes.io/readwrite",
    "serviceAccount": "kubernetes.io/serviceAccount.name",
    "mountOptions": "mountOptions",
    "opts": "opts",
    "server": "server",
    "share": "share",
    "source": "source",
    "passwdMethod": "passwdMethod",
    "credentialDomain": "kubernetes.io/secret/domain",
    "credentialUser": "kubernetes.io/secret/username",
    "credentialPass": "kubernetes.io/secret/password",
}

CREDENTIAL_FIELDS = (
    ("credentialDomain", "credential domain"),
    ("credentialUser", "credential user"),
    ("credentialPass", "credential password"),
)

def _decode_credential(value, label):
    # Any bytes are accepted, surrogateescape hands them to mount unchanged
    try:
        return base64.b64decode(value, validate=True).decode('utf-8', 'surrogateescape')
    except binascii.Error as err:
        raise OptionsDecodeError("Error decoding {}: {}".format(label, err))

def parse_options(json_options):
    """ Parse json options passed in from the mount call """
    try:
        opts = json.loads(json_options)
    except ValueError as err:
        raise OptionsDecodeError("Error interpreting mounter args: {}".format(err))

    if opts is None:
        opts = {}

    if not isinstance(opts, dict):
        raise OptionsDecodeError("Error interpreting mounter args: expected a json object, got {}".format(type(opts).__name__))

    # Keys match case-insensitively, an exact match wins
    folded = {}
    for key, value in opts.items():
        folded[key.lower()] = value

    values = {}

    for attr, key in OPTION_KEYS.items():
        value = opts[key] if key in opts else folded.get(key.lower())

        if value is None:
            value = ""

        if not isinstance(value, str):
            raise OptionsDecodeError("Error interpreting mounter args: {} must be a string, got {}".format(key, type(value).__name__))

        values[attr] = value

    for attr, label in CREDENTIAL_FIELDS:
        if values[attr]:
            values[attr] = _decode_credential(values[attr], label)

    # Kubelets before 1.15 only send the legacy key
    if not values["fsGroup"]:
        values["fsGroup"] = values["fsGroupLegacy"]

    return types.SimpleNamespace(**values)

def mount_command(mount_dir, options, program=MOUNT_PROGRAM):
    """ Build "mount -t cifs [-o opts] source mount_dir" from parsed options """
    cmd = ExternalCommand(program, ["-t", "cifs"])
    mount_opts = []

    if options.fsGroup:
        mount_opts.append("uid={0},gid={0}".format(options.fsGroup))

    if options.readwrite:
        mount_opts.append(options.readwrite)

    if options.credentialDomain:
        mount_opts.append("domain={}".format(options.credentialDomain.strip("\r\n")))

    if options.credentialUser:
        mount_opts.append("username={}".format(options.credentialUser.strip("\r\n")))

    # mount.cifs picks the password up from PASSWD, keeps it out of ps output
    if options.credentialPass:
        cmd.set_env("PASSWD", options.credentialPass.strip("\r\n"))

    if options.opts:
        mount_opts.extend(options.opts.split(","))
    elif options.mountOptions:
        mount_opts.extend(options.mountOptions.split(","))

    if mount_opts:
        cmd.args.extend(["-o", ",".join(mount_opts)])

    if options.server and options.share:
        source = "//{}{}".format(options.server, options.share)
    elif options.source:
        source = options.source
    else:
        raise OperationInvalidOptionsError(MSG_INVALID_MOUNTER_ARGS)

    cmd.args.extend([source, mount_dir])

    return cmd

def unmount_command(mount_dir, program=UMOUNT_PROGRAM):
    """ Build "umount mount_dir" """
    return ExternalCommand(program, [mount_dir])
