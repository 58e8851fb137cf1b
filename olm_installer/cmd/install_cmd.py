"""
Install an operator by creating its Subscription and waiting for the
ClusterServiceVersion it resolves to
"""

# Standard
import argparse

# Local
from ..cluster_gateway import DryRunClusterGateway
from ..installer import OperatorInstaller
from .base import CmdBase
from .common import (
    add_cluster_args,
    add_request_args,
    gateway_from_args,
    print_output,
    request_from_args,
)


class InstallCmd(CmdBase):
    __doc__ = __doc__

    ## Interface ##

    def add_subparser(
        self,
        subparsers: argparse._SubParsersAction,
    ) -> argparse.ArgumentParser:
        parser = subparsers.add_parser("install", help=__doc__)
        add_request_args(parser, channel_required=True)
        add_cluster_args(parser)
        return parser

    def cmd(self, args: argparse.Namespace):
        request = request_from_args(args)
        gateway = gateway_from_args(args)
        installer = OperatorInstaller(gateway)

        # Nothing drives OLM in a dry run, so only the objects that would be
        # created are reported
        if isinstance(gateway, DryRunClusterGateway):
            manifest = installer.build_manifest(request)
            gateway.create(manifest)
            print_output(manifest, args.output)
            return 0

        status = installer.install(request)
        print_output(status.to_dict(), args.output)
        return 0
