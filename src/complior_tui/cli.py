"""CLI entry point for complior-tui."""

import argparse
import logging
import sys
from pathlib import Path
from urllib.parse import urlparse

from complior_tui.app.controller import Controller
from complior_tui.app.event_loop import EventChannel, EventLoop
from complior_tui.app.executor import CommandExecutor
from complior_tui.app.state import ApplicationState
from complior_tui.io import logging_setup
from complior_tui.io.credentials import load_provider_config
from complior_tui.io.file_tree import build_file_tree
from complior_tui.io.settings import TuiConfig, load_config
from complior_tui.pipeline.engine_client import EngineClient
from complior_tui.pipeline.engine_process import EngineProcessError, EngineSupervisor
from complior_tui.tui.app import CompliorApp

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Terminal UI for the Complior compliance engine")
    parser.add_argument(
        "--engine-url",
        type=str,
        default=None,
        help="Attach to an engine that is already running (e.g. http://127.0.0.1:3099)",
    )
    parser.add_argument(
        "--engine-dir",
        type=str,
        default=None,
        help="Engine checkout to launch with `npx tsx src/server.ts`",
    )
    parser.add_argument(
        "--project",
        type=str,
        default=None,
        help="Project directory to scan (default: settings project_path, then cwd)",
    )
    parser.add_argument(
        "--resume",
        action="store_true",
        default=False,
        help="Restore the autosaved session from the last run",
    )
    return parser


def _port_of(url: str) -> int:
    parsed = urlparse(url)
    if parsed.port is not None:
        return parsed.port
    return 443 if parsed.scheme == "https" else 80


def resolve_engine(args: argparse.Namespace, config: TuiConfig) -> tuple[str, EngineSupervisor | None]:
    """Engine URL plus the supervisor that owns it, if any.

    --engine-url attaches to an external engine. Otherwise an engine dir (flag or
    settings) is launched. Without either, the configured host and port are used.
    """
    if args.engine_url:
        return args.engine_url, EngineSupervisor.external(_port_of(args.engine_url))

    engine_dir = args.engine_dir or config.engine_dir
    if not engine_dir:
        return config.engine_url(), None

    supervisor = EngineSupervisor(engine_dir)
    try:
        supervisor.start()
    except EngineProcessError as exc:
        logger.warning("could not launch engine: %s", exc)
        return config.engine_url(), None
    return supervisor.engine_url(), supervisor


def build_state(config: TuiConfig, project: Path) -> ApplicationState:
    return ApplicationState(
        project_path=project,
        theme=config.theme,
        sidebar_visible=config.sidebar_visible,
        animations_enabled=config.animations_enabled,
        scroll_acceleration=config.scroll_acceleration,
        provider_config=load_provider_config(),
        file_tree=build_file_tree(project),
    )


def run_app(
    args: argparse.Namespace,
    config: TuiConfig,
    project: Path,
    engine_url: str,
    supervisor: EngineSupervisor | None,
) -> None:
    """Build the controller, executor and loop, then run the Textual app."""
    client = EngineClient(engine_url)
    try:
        controller = Controller(build_state(config, project))
        channel = EventChannel()
        executor = CommandExecutor(lambda: controller.state, client, channel)
        loop = EventLoop(
            controller,
            executor,
            channel,
            config=config,
            supervisor=supervisor,
            resume=args.resume,
        )
        CompliorApp(loop).run()
    finally:
        client.close()


def main() -> int:
    args = build_parser().parse_args()
    # stderr belongs to the TUI; logs go to the session file only
    logging_setup.configure(session_name="complior", stderr=False)
    config = load_config()

    project = Path(args.project or config.project_path or Path.cwd()).resolve()
    engine_url, supervisor = resolve_engine(args, config)
    logger.info("project %s, engine %s", project, engine_url)

    try:
        run_app(args, config, project, engine_url, supervisor)
    finally:
        # the child dies on every exit path, including a failed startup
        if supervisor is not None:
            supervisor.shutdown()
    return 0


if __name__ == "__main__":
    sys.exit(main())
