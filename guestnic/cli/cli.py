###############################################################################
#
# MIT License
#
# Copyright (c) 2025 Advanced Micro Devices, Inc.
#
# Permission is hereby granted, free of charge, to any person obtaining a copy
# of this software and associated documentation files (the "Software"), to deal
# in the Software without restriction, including without limitation the rights
# to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
# copies of the Software, and to permit persons to whom the Software is
# furnished to do so, subject to the following conditions:
#
# The above copyright notice and this permission notice shall be included in all
# copies or substantial portions of the Software.
#
# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
# IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
# FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
# AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
# LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
# OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE
# SOFTWARE.
#
###############################################################################
import argparse
import datetime
import logging
import os
import sys
import uuid
from typing import Optional, TextIO

from guestnic.connection.inband import LocalShell
from guestnic.constants import DEFAULT_LOGGER
from guestnic.enums import SystemInteractionLevel
from guestnic.exceptions import GuestNicError
from guestnic.models import GuestNicConfig, TriggerEnv
from guestnic.orchestrator import run_affinity, run_naming
from guestnic.pci.ratio import snapshot_bus
from guestnic.taskresulthooks import FileSystemLogHook

from .inputargtypes import ModelArgHandler, log_path_arg


def build_parser() -> argparse.ArgumentParser:
    """Build an argument parser

    Returns:
        argparse.ArgumentParser: parser with name, set-affinity and show-topology subcommands
    """
    parser = argparse.ArgumentParser(
        description="GCE guest NIC naming and IRQ/XPS affinity",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument(
        "--config",
        type=ModelArgHandler(GuestNicConfig).process_file_arg,
        required=False,
        help="Path to guest NIC config json",
        metavar="STRING",
    )

    parser.add_argument(
        "--sys-interaction-level",
        type=str.upper,
        choices=[e.name for e in SystemInteractionLevel],
        default="DISRUPTIVE",
        help="Specify system interaction level, used to determine what changes may be made to the system",
    )

    parser.add_argument(
        "--sysfs-root",
        required=False,
        help="Override sysfs mount point",
        metavar="STRING",
    )

    parser.add_argument(
        "--procfs-root",
        required=False,
        help="Override procfs mount point",
        metavar="STRING",
    )

    parser.add_argument(
        "--run-tag",
        required=False,
        help="Tag used to correlate log lines of one run, defaults to the udev SEQNUM",
        metavar="STRING",
    )

    parser.add_argument(
        "--log-path",
        default=None,
        type=log_path_arg,
        help="Specifies local path for result logs, use 'None' to disable logging",
        metavar="STRING",
    )

    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=logging._nameToLevel,
        help="Change python log level",
    )

    subparsers = parser.add_subparsers(dest="subcmd", help="Subcommands", required=True)

    name_parser = subparsers.add_parser(
        "name",
        help="Print the name for the device of a udev event, udev environment is used by default",
    )
    name_parser.add_argument("--devpath", help="Override DEVPATH", metavar="STRING")
    name_parser.add_argument("--subsystem", help="Override SUBSYSTEM", metavar="STRING")
    name_parser.add_argument("--driver", help="Override ID_NET_DRIVER", metavar="STRING")
    name_parser.add_argument("--interface", help="Override INTERFACE", metavar="STRING")
    name_parser.add_argument(
        "--id-net-name-path", help="Override ID_NET_NAME_PATH", metavar="STRING"
    )

    subparsers.add_parser(
        "set-affinity",
        help="Configure multiqueue, IRQ affinity and XPS for all NICs",
    )

    subparsers.add_parser(
        "show-topology",
        help="Print classified PCI devices and device ratios as json",
    )

    return parser


def setup_logger(
    log_level: str = "INFO",
    log_path: str | None = None,
    run_tag: str | None = None,
    stream: TextIO = sys.stdout,
) -> logging.Logger:
    """set up root logger when using the CLI

    Args:
        log_level (str): log level to use
        log_path (str | None): optional path to filesystem log location
        run_tag (str | None): optional tag added to every log line
        stream (TextIO): console stream, stdout unless stdout carries command output

    Returns:
        logging.Logger: logger instance
    """
    log_level = getattr(logging, log_level, logging.INFO)

    handlers: list[logging.Handler] = [logging.StreamHandler(stream=stream)]

    if log_path:
        log_file_name = os.path.join(log_path, "guestnic.log")
        handlers.append(
            logging.FileHandler(filename=log_file_name, mode="wt", encoding="utf-8"),
        )

    tag = f"[{run_tag}] " if run_tag else ""
    logging.basicConfig(
        force=True,
        level=log_level,
        format=f"%(asctime)25s %(levelname)10s %(name)25s | {tag}%(message)s",
        datefmt="%Y-%m-%d %H:%M:%S %Z",
        handlers=handlers,
        encoding="utf-8",
    )
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    logger = logging.getLogger(DEFAULT_LOGGER)

    return logger


def get_trigger(args: argparse.Namespace) -> TriggerEnv:
    """build trigger from the udev environment, overridden by args

    Args:
        args (argparse.Namespace): parsed args

    Returns:
        TriggerEnv: trigger inputs
    """
    trigger = TriggerEnv.from_environ()
    overrides = {
        field: getattr(args, field)
        for field in ("devpath", "subsystem", "driver", "interface", "id_net_name_path")
        if getattr(args, field, None) is not None
    }
    if args.run_tag:
        overrides["run_tag"] = args.run_tag
    if overrides:
        trigger = trigger.model_copy(update=overrides)
    return trigger


def get_config(args: argparse.Namespace) -> GuestNicConfig:
    config = args.config if args.config else GuestNicConfig()
    if args.sysfs_root:
        config.sysfs_root = args.sysfs_root
    if args.procfs_root:
        config.procfs_root = args.procfs_root
    return config


def main(arg_input: Optional[list[str]] = None):
    if arg_input is None:
        arg_input = sys.argv[1:]

    parser = build_parser()
    parsed_args = parser.parse_args(arg_input)

    config = get_config(parsed_args)
    trigger = get_trigger(parsed_args) if parsed_args.subcmd == "name" else None
    run_tag = trigger.run_tag if trigger else (parsed_args.run_tag or uuid.uuid4().hex[:8])

    if parsed_args.log_path and parsed_args.subcmd != "show-topology":
        log_path = os.path.join(
            parsed_args.log_path,
            f"guestnic_logs_{datetime.datetime.now().strftime('%Y_%m_%d-%I_%M_%S_%p')}_{run_tag}",
        )
        os.makedirs(log_path, exist_ok=True)
    else:
        log_path = None

    # stdout carries command output for udev and json consumers
    stream = sys.stderr if parsed_args.subcmd in ("name", "show-topology") else sys.stdout
    logger = setup_logger(parsed_args.log_level, log_path, run_tag, stream)
    if log_path:
        logger.info("Log path: %s", log_path)

    hooks = [FileSystemLogHook(log_base_path=log_path)] if log_path else []
    connection = LocalShell()

    if parsed_args.subcmd == "name":
        try:
            name_result = run_naming(
                trigger,
                connection=connection,
                config=config,
                system_interaction_level=parsed_args.sys_interaction_level,
                logger=logger,
                hooks=hooks,
            )
        except GuestNicError as e:
            logger.error("Unable to name %s: %s", trigger.devpath, e)
            sys.exit(1)
        print(name_result.name)  # noqa: T201
        sys.exit(0)

    if parsed_args.subcmd == "set-affinity":
        try:
            result = run_affinity(
                connection=connection,
                config=config,
                system_interaction_level=parsed_args.sys_interaction_level,
                logger=logger,
                hooks=hooks,
                run_tag=run_tag,
            )
        except KeyboardInterrupt:
            logger.info("Received Ctrl+C. Shutting down...")
            sys.exit(130)
        sys.exit(1 if result.status.failed else 0)

    if parsed_args.subcmd == "show-topology":
        snapshot = snapshot_bus(connection, config, logger)
        print(snapshot.model_dump_json(indent=2))  # noqa: T201
        sys.exit(0)


if __name__ == "__main__":
    main()
