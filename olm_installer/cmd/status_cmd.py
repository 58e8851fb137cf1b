"""
Report whether an operator is installed
"""

# Standard
import argparse

# First Party
import alog

# Local
from ..exceptions import NotInstalledError
from ..installer import OperatorInstaller
from .base import CmdBase
from .common import (
    add_cluster_args,
    add_request_args,
    gateway_from_args,
    print_output,
    request_from_args,
)

log = alog.use_channel("MAIN")


class StatusCmd(CmdBase):
    __doc__ = __doc__

    ## Interface ##

    def add_subparser(
        self,
        subparsers: argparse._SubParsersAction,
    ) -> argparse.ArgumentParser:
        parser = subparsers.add_parser("status", help=__doc__)
        add_request_args(parser, channel_required=False)
        add_cluster_args(parser)
        return parser

    def cmd(self, args: argparse.Namespace):
        request = request_from_args(args)
        installer = OperatorInstaller(gateway_from_args(args))
        try:
            status = installer.read_status(request)
        except NotInstalledError as err:
            log.debug("Not installed: %s", err)
            print_output(
                {
                    "name": request.name,
                    "namespace": request.namespace,
                    "installed": False,
                },
                args.output,
            )
            return 1
        print_output(status.to_dict(), args.output)
        return 0
