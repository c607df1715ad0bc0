"""
Entry point for running corral via `python -m corral`.

Runs COMMAND in a pool of supervised workers until interrupted:

    python -m corral --count 4 --restart -- python -m http.server
"""

import argparse
import logging
import sys

from .api import create_app, serve_in_background
from .best import best_container_class
from .config import config
from .controller import Controller
from .forked import Forked
from .hybrid import Hybrid
from .log import setup_logging
from .threaded import Threaded

logger = logging.getLogger(__name__)

CONTAINERS = {
    "forked": Forked,
    "threaded": Threaded,
    "hybrid": Hybrid,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="corral",
        description="Run a command in a pool of supervised workers.",
    )

    model = parser.add_mutually_exclusive_group()
    for name in CONTAINERS:
        model.add_argument(
            f"--{name}",
            dest="container",
            action="store_const",
            const=name,
            help=f"Use the {name} container.",
        )

    parser.add_argument("-n", "--count", type=int, help="Number of workers (default: one per processor).")
    parser.add_argument("--forks", type=int, help="Number of processes (hybrid only).")
    parser.add_argument("--threads", type=int, help="Number of threads per process (hybrid only).")
    parser.add_argument("--restart", action="store_true", help="Restart workers when they exit.")
    parser.add_argument("--health-check-timeout", type=float, help="Kill ready workers silent for this long.")
    parser.add_argument("--startup-timeout", type=float, help="Kill workers not ready within this long.")
    parser.add_argument(
        "--graceful-timeout",
        type=float,
        default=config.graceful_timeout,
        help="Seconds to wait after interrupting workers before killing them.",
    )
    parser.add_argument(
        "--no-ready",
        dest="ready",
        action="store_false",
        help="Wait for the command to report readiness over NOTIFY_PIPE.",
    )
    parser.add_argument("--status-port", type=int, default=config.status_port, help="Serve the status API on this port.")

    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", dest="log_level", action="store_const", const="DEBUG")
    verbosity.add_argument("-q", "--quiet", dest="log_level", action="store_const", const="WARNING")

    parser.add_argument("command", nargs=argparse.REMAINDER, help="Command to run, after --.")

    return parser


def main(argv=None) -> int:
    """Run the command line interface."""
    parser = build_parser()
    args = parser.parse_args(argv)

    command = args.command
    if command and command[0] == "--":
        command = command[1:]
    if not command:
        parser.error("a command is required")

    setup_logging(args.log_level)

    container_class = CONTAINERS[args.container] if args.container else best_container_class()

    options = {
        "name": command[0],
        "restart": args.restart,
        "health_check_timeout": args.health_check_timeout,
        "startup_timeout": args.startup_timeout,
    }

    def worker(instance):
        instance.exec(*command, ready=args.ready)

    def setup(container):
        if isinstance(container, Hybrid):
            container.run(worker, count=args.count, forks=args.forks, threads=args.threads, **options)
        else:
            container.run(worker, count=args.count, **options)

    controller = Controller(
        setup=setup,
        container_class=container_class,
        graceful_stop=args.graceful_timeout,
    )

    if args.status_port:
        serve_in_background(create_app(controller), port=args.status_port)

    logger.info(f"Starting {container_class.__name__} container for {' '.join(command)}")
    controller.run()

    return 0


if __name__ == "__main__":
    sys.exit(main())
