"""
Uninstall an operator by deleting its Subscription and ClusterServiceVersion
"""

# Standard
import argparse

# First Party
import alog

# Local
from ..installer import OperatorInstaller
from .base import CmdBase
from .common import (
    add_cluster_args,
    add_request_args,
    gateway_from_args,
    request_from_args,
)

log = alog.use_channel("MAIN")


class UninstallCmd(CmdBase):
    __doc__ = __doc__

    ## Interface ##

    def add_subparser(
        self,
        subparsers: argparse._SubParsersAction,
    ) -> argparse.ArgumentParser:
        parser = subparsers.add_parser("uninstall", help=__doc__)
        add_request_args(parser, channel_required=False)
        add_cluster_args(parser)
        return parser

    def cmd(self, args: argparse.Namespace):
        request = request_from_args(args)
        OperatorInstaller(gateway_from_args(args)).uninstall(request)
        log.info("Uninstalled [%s] from [%s]", request.name, request.namespace)
        return 0
