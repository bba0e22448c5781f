# Copyright (c) 2017 Karl Bunch <karlbunch@karlbunch.com>

""" Simple defs for command line entry points

    Kubernetes expects the command line script to be in:

    /usr/libexec/kubernetes/kubelet-plugins/volume/exec/{vendor}~cifs/cifs
"""

import sys

def run_plugin():
    """ Run flexvolume plugin, returns the process exit code """
    from flexvolume.cifs.plugin import Run

    if Run(sys.argv):
        return 0

    return 1
