"""The ``kratix`` command line."""

from __future__ import annotations

import argparse
import subprocess
import sys
from functools import partial
from typing import Sequence

from kratixcli.container import BuildContainerOptions, add_container, build_container
from kratixcli.promise import PromiseError, build_promise


def _print_help(parser: argparse.ArgumentParser, args: argparse.Namespace) -> int:
    parser.print_help()
    return 0


def _add_container(args: argparse.Namespace) -> int:
    add_container(args.pipeline, args.image, args.name, args.dir)
    return 0


def _build_container(args: argparse.Namespace) -> int:
    opts = BuildContainerOptions(
        name=args.name,
        directory=args.dir,
        build_all_containers=args.all,
        engine=args.engine,
        buildx=args.buildx,
        push=args.push,
        build_args=args.build_args,
    )
    build_container(opts, [args.pipeline] if args.pipeline else [])
    return 0


def _build_promise(args: argparse.Namespace) -> int:
    build_promise(args.promise_name, args.dir, args.output or None)
    return 0


def _group(subparsers, name: str, text: str) -> tuple[argparse.ArgumentParser, argparse._SubParsersAction]:
    parser = subparsers.add_parser(name, help=text, description=text)
    parser.set_defaults(handler=partial(_print_help, parser))
    return parser, parser.add_subparsers(metavar="[command]")


def build_parser() -> argparse.ArgumentParser:
    """The argument parser of the whole command line."""
    root = argparse.ArgumentParser(prog="kratix", description="A CLI tool for Kratix")
    root.set_defaults(handler=partial(_print_help, root))
    commands = root.add_subparsers(metavar="[command]")

    _, add_commands = _group(commands, "add", "Command to add to Kratix resources")
    add_cont = add_commands.add_parser(
        "container",
        help="Adds a container to the named workflow",
        description="Adds a container to the named workflow",
    )
    add_cont.add_argument("pipeline", metavar="LIFECYCLE/ACTION/PIPELINE-NAME")
    add_cont.add_argument("-i", "--image", required=True, help="The image used by this container.")
    add_cont.add_argument("-n", "--name", default="", help="The container name used for this container.")
    add_cont.add_argument("-d", "--dir", default=".", help="Directory to read promise.yaml from.")
    add_cont.set_defaults(handler=_add_container)

    _, build_commands = _group(commands, "build", "Command to build kratix resources")
    build_cont = build_commands.add_parser(
        "container",
        help="Command to build a container image generated with 'add container'",
        description="Command to build a container image generated with 'add container'",
    )
    build_cont.add_argument("pipeline", nargs="?", default="", metavar="LIFECYCLE/ACTION/PIPELINE-NAME")
    build_cont.add_argument("-n", "--name", default="", help="Name of the container to build")
    build_cont.add_argument("-d", "--dir", default=".", help="Directory to read the Promise from")
    build_cont.add_argument(
        "-a", "--all", action="store_true",
        help="Build all of the containers for the Promise across all Workflows",
    )
    build_cont.add_argument("-e", "--engine", default="docker", help="Container engine: docker or podman")
    build_cont.add_argument("--buildx", action="store_true", help="Build the container using Buildx")
    build_cont.add_argument(
        "--build-args", default="", help="Extra build arguments to pass to the container build command"
    )
    build_cont.add_argument("--push", action="store_true", help="Build and push the container")
    build_cont.set_defaults(handler=_build_container)

    build_prom = build_commands.add_parser(
        "promise",
        help="Command to build a Kratix Promise",
        description=(
            "Command to build a Kratix Promise from given api, dependencies and workflow files "
            "in a directory. Use this command if you initialized your Promise with `--split`."
        ),
    )
    build_prom.add_argument("promise_name", metavar="PROMISE-NAME")
    build_prom.add_argument("-d", "--dir", default=".", help="Directory to build promise from")
    build_prom.add_argument("-o", "--output", default="", help="File path to write promise to")
    build_prom.set_defaults(handler=_build_promise)

    init_parser, _ = _group(commands, "init", "Command used to initialize Kratix resources")
    init_parser.add_argument("-g", "--group", default="", help="The API group for the Promise")
    init_parser.add_argument("-k", "--kind", default="", help="The kind to be provided by the Promise")
    init_parser.add_argument(
        "-v", "--version", default="", help="The group version for the Promise. Defaults to v1alpha1"
    )
    init_parser.add_argument("--plural", default="", help="The plural form of the kind")
    init_parser.add_argument("-d", "--dir", default=".", help="The output directory to write the Promise to")
    init_parser.add_argument("--split", action="store_true", help="Split promise.yaml into multiple files.")

    return root


def main(argv: Sequence[str] | None = None) -> int:
    """Run the command line; returns the exit status."""
    args = build_parser().parse_args(argv)
    try:
        return args.handler(args)
    except (PromiseError, OSError, ValueError, subprocess.CalledProcessError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1