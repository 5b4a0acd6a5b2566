import argparse
import asyncio
import json
import logging
import os
import signal
import sys
from pathlib import Path

from config import LiveTranslatorConfig
from domain.errors import UnsupportedLanguageError
from domain.languages import validate_language
from log_format import ColoredFormatter

ENV_FILE_PATH = Path.home() / ".config" / "live-translator" / "env"

CLIENT_COMMANDS = ("start", "stop", "status", "languages")


def _load_env_file() -> None:
    if not ENV_FILE_PATH.exists():
        return
    with open(ENV_FILE_PATH) as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            if "=" not in line:
                continue
            key, _, value = line.partition("=")
            value = value.strip("'\"")
            if key not in os.environ:
                os.environ[key] = value


def _configure_logging(verbose: bool, log_file: str) -> None:
    root = logging.getLogger()
    root.setLevel(logging.DEBUG if verbose else logging.INFO)

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(ColoredFormatter(datefmt="%H:%M:%S"))
    root.addHandler(console)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(name)s %(levelname)s %(message)s")
        )
        root.addHandler(file_handler)

    logging.getLogger("websockets").setLevel(logging.INFO)
    logging.getLogger("httpcore").setLevel(logging.INFO)
    logging.getLogger("httpx").setLevel(logging.WARNING if not verbose else logging.INFO)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Live speech transcription and translation")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")
    parser.add_argument("--source", help="Source language code")
    parser.add_argument("--target", help="Target language code")
    parser.add_argument("--autostart", action="store_true", help="Start listening immediately")
    parser.add_argument("--skip-health-check", action="store_true", help="Skip startup checks")

    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("start", help="Start listening")
    subparsers.add_parser("stop", help="Stop listening")
    subparsers.add_parser("status", help="Query status and transcript")

    languages_parser = subparsers.add_parser("languages", help="Change languages (only while idle)")
    languages_parser.add_argument("new_source", metavar="source", help="Source language code")
    languages_parser.add_argument("new_target", metavar="target", help="Target language code")

    return parser


def main() -> None:
    _load_env_file()
    args = build_parser().parse_args()

    config = LiveTranslatorConfig()
    _configure_logging(args.verbose, config.log_file)

    try:
        if args.source:
            config.source_language = validate_language(args.source)
        if args.target:
            config.target_language = validate_language(args.target)
    except UnsupportedLanguageError as exc:
        print(exc, file=sys.stderr)
        sys.exit(2)

    if args.command in CLIENT_COMMANDS:
        asyncio.run(_run_client_command(args, config))
    else:
        asyncio.run(_run_daemon(config, args))


async def _run_client_command(args: argparse.Namespace, config: LiveTranslatorConfig) -> None:
    from adapters.unix_control import UnixSocketControlClient

    client = UnixSocketControlClient(socket_path=config.socket_path)

    try:
        if args.command == "languages":
            result = await client.send_command(
                "languages", {"source": args.new_source, "target": args.new_target}
            )
        else:
            result = await client.send_command(args.command)
    except (ConnectionRefusedError, FileNotFoundError):
        print("Live translator is not running", file=sys.stderr)
        sys.exit(1)

    print(json.dumps(result, indent=2, ensure_ascii=False))
    if result.get("status") == "error":
        sys.exit(1)


async def _run_daemon(config: LiveTranslatorConfig, args: argparse.Namespace) -> None:
    from adapters.console_presenter import ConsolePresenter
    from commands import handle_command
    from factory import create_daemon
    from health import has_critical_failures, run_startup_checks

    if not args.skip_health_check:
        results = run_startup_checks(config)
        if has_critical_failures(results):
            logging.error("Critical health check failures, aborting startup")
            sys.exit(1)

    controller, control = create_daemon(config)
    controller.add_observer(ConsolePresenter(color=sys.stdout.isatty()))

    shutdown_event = asyncio.Event()
    shutdown_triggered = False

    def handle_signal() -> None:
        nonlocal shutdown_triggered
        if shutdown_triggered:
            logging.warning("Forced exit")
            sys.exit(1)
        shutdown_triggered = True
        logging.info("Shutting down...")
        shutdown_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, handle_signal)

    await control.start()

    command_tasks: set[asyncio.Task] = set()

    async def control_loop() -> None:
        async for cmd in control.commands():
            task = asyncio.create_task(handle_command(controller, cmd))
            command_tasks.add(task)
            task.add_done_callback(command_tasks.discard)

    control_task = asyncio.create_task(control_loop())
    if args.autostart:
        start_task = asyncio.create_task(controller.start())
        command_tasks.add(start_task)
        start_task.add_done_callback(command_tasks.discard)

    try:
        await shutdown_event.wait()
    finally:
        control_task.cancel()
        try:
            await asyncio.wait_for(control_task, timeout=1.0)
        except (asyncio.CancelledError, asyncio.TimeoutError):
            pass
        await controller.shutdown()
        for task in list(command_tasks):
            task.cancel()
        await asyncio.gather(*command_tasks, return_exceptions=True)
        await control.stop()


if __name__ == "__main__":
    main()
