"""Entry point: ``python -m colony``.

Supports two modes:
  - ``python -m colony``            → Launch the FastAPI server
  - ``python -m colony cli``        → Headless colony run against the sandbox world
"""

from __future__ import annotations

import argparse
import logging

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Colony task lifecycle and logistics engine")
    sub = parser.add_subparsers(dest="command")

    # --- Server mode (default) ---
    srv = sub.add_parser("serve", help="Start the FastAPI server (default)")
    srv.add_argument("--host", type=str, default="127.0.0.1")
    srv.add_argument("--port", type=int, default=8000)
    srv.add_argument("--seed", type=int, default=42)
    srv.add_argument("--load", type=str, default=None, help="Resume from a saved state file")
    srv.add_argument("--paused", action="store_true", help="Do not start ticking on launch")
    srv.add_argument("--log-level", type=str, default="INFO", choices=["DEBUG", "INFO", "WARNING"])

    # --- Headless CLI mode ---
    cli = sub.add_parser("cli", help="Run the colony headless for a number of ticks")
    cli.add_argument("--seed", type=int, default=42)
    cli.add_argument("--ticks", type=int, default=500)
    cli.add_argument("--load", type=str, default=None, help="Resume from a saved state file")
    cli.add_argument("--save", type=str, default=None, help="Write the final state to this file")
    cli.add_argument("--log-level", type=str, default="INFO", choices=["DEBUG", "INFO", "WARNING"])

    return parser


def _run_server(args: argparse.Namespace) -> None:
    import uvicorn

    from colony.api.app import create_app
    from colony.config import ColonyConfig
    from colony.utils.persistence import load_state

    config = ColonyConfig(world_seed=args.seed, log_level=args.log_level)
    state = load_state(args.load) if args.load else None
    app = create_app(config, state=state, autostart=not args.paused)
    uvicorn.run(app, host=args.host, port=args.port, log_level=args.log_level.lower())


def _run_cli(args: argparse.Namespace) -> None:
    from colony.config import ColonyConfig
    from colony.core.colony_state import ColonyState
    from colony.engine.colony_loop import ColonyLoop
    from colony.utils.logging import setup_logging
    from colony.utils.persistence import load_state, save_state
    from colony.world.executor import SandboxWorkers
    from colony.world.sandbox import SandboxWorld

    setup_logging(args.log_level)
    state = load_state(args.load) if args.load else ColonyState()

    # max_ticks is absolute; a loaded state keeps counting from its own tick
    config = ColonyConfig(world_seed=args.seed, max_ticks=state.tick + args.ticks, log_level=args.log_level)
    world = SandboxWorld.generate(config)
    workers = SandboxWorkers(world)
    loop = ColonyLoop(config, state, world, executor=workers)
    if args.load is None:
        workers.bootstrap(loop)

    loop.run()

    stats = loop.state.registry.stats()
    logger.info(
        "Done at tick %d: %d created, %d completed, %d failed, %d live.",
        loop.state.tick,
        stats["tasks_created"],
        stats["tasks_completed"],
        stats["tasks_failed"],
        stats["total"],
    )
    if args.save:
        path = save_state(loop.state, args.save)
        logger.info("State written to %s", path)


def main() -> None:
    parser = _build_parser()
    args = parser.parse_args()

    # Default to serve mode if no subcommand given
    if args.command is None:
        args = parser.parse_args(["serve"])

    match args.command:
        case "serve":
            _run_server(args)
        case "cli":
            _run_cli(args)


if __name__ == "__main__":
    main()
