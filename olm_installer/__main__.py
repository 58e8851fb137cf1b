#!/usr/bin/env python
"""
The main module provides the executable entrypoint for olm_installer
"""

# Standard
from typing import Dict, List, Optional, Tuple
import argparse
import sys

# First Party
import aconfig
import alog

# Local
from . import config
from .cmd import CmdBase, InstallCmd, ListCmd, StatusCmd, UninstallCmd
from .config import library_config
from .exceptions import OlmInstallerError
from .log_format import InstallerJsonFormatter

## Constants ###################################################################

log = alog.use_channel("MAIN")

## Helpers #####################################################################


def add_library_config_args(parser, config_obj=None, path=None):
    """Automatically add args for all elements of the library config"""
    path = path or []
    setters = {}
    config_obj = config_obj or library_config
    for key, val in config_obj.items():
        sub_path = path + [key]

        # If this is a nested arg, recurse
        if isinstance(val, aconfig.AttributeAccessDict):
            sub_setters = add_library_config_args(parser, config_obj=val, path=sub_path)
            for dest_name, nested_path in sub_setters.items():
                setters[dest_name] = nested_path

        # Otherwise, add an argument explicitly
        else:
            arg_name = ".".join(sub_path)
            dest_name = "_".join(sub_path)
            kwargs = {
                "default": val,
                "dest": dest_name,
                "help": f"Library config override for {arg_name} (see olm_installer.config)",
            }
            if isinstance(val, list):
                kwargs["nargs"] = "*"
            elif isinstance(val, bool):
                kwargs["action"] = "store_true"
            elif val is not None:
                kwargs["type"] = type(val)

            if (
                f"--{arg_name}"
                not in parser._option_string_actions  # pylint: disable=protected-access
            ):
                parser.add_argument(f"--{arg_name}", **kwargs)
                setters[dest_name] = sub_path
    return setters


def update_library_config(args, setters):
    """Update the library config values based on the parsed arguments"""
    for dest_name, config_path in setters.items():
        config_obj = library_config
        while len(config_path) > 1:
            config_obj = config_obj[config_path[0]]
            config_path = config_path[1:]
        config_obj[config_path[0]] = getattr(args, dest_name)


def add_command(
    subparsers: argparse._SubParsersAction,
    cmd: CmdBase,
) -> Tuple[argparse.ArgumentParser, Dict[str, List[str]]]:
    """Add the subparser and set up the default fun call"""
    parser = cmd.add_subparser(subparsers)
    parser.set_defaults(func=cmd.cmd)
    library_args = parser.add_argument_group("Library Configuration")
    library_config_setters = add_library_config_args(library_args)
    return parser, library_config_setters


## Main ########################################################################


def main(argv: Optional[List[str]] = None) -> int:
    """The main module provides the executable entrypoint for olm_installer"""
    parser = argparse.ArgumentParser(description=__doc__)

    # Add the subcommands
    subparsers = parser.add_subparsers(help="Available commands", dest="command")
    subparsers.required = True
    library_config_setters = {}
    for cmd in [InstallCmd(), StatusCmd(), UninstallCmd(), ListCmd()]:
        _, setters = add_command(subparsers, cmd)
        library_config_setters.update(setters)

    args = parser.parse_args(argv)

    # Provide overrides to the library configs
    update_library_config(args, library_config_setters)

    # Reconfigure logging
    alog.configure(
        default_level=config.log_level,
        filters=config.log_filters,
        formatter=InstallerJsonFormatter(operation=args.command)
        if config.log_json
        else "pretty",
        thread_id=config.log_thread_id,
    )

    # Run the command's function
    try:
        return args.func(args) or 0
    except OlmInstallerError as err:
        log.error("Failed to %s: %s", args.command, err)
        return 1


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
