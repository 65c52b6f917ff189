"""CLI entry point: a small echo REPL built on :class:`Readline`.

Each submitted line is echoed back. ``/prompt <text>`` changes the prompt.
Ctrl+C or end of input exits.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from pi.readline.errors import CancellationError, InputClosedError, TerminalControlError
from pi.readline.readline import Readline
from pi.readline.settings import load_settings
from pi.readline.terminal import raw_mode

_PROMPT_COMMAND = "/prompt "


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="pi-readline",
        description="Interactive line editor demo with persistent history",
    )
    parser.add_argument("-p", "--prompt", help="Prompt text (default from settings)")
    parser.add_argument("--history-file", help="Persist history to this file")
    parser.add_argument("--settings", help="Settings JSON file (default ~/.pi/readline.json)")
    parser.add_argument("--log-file", help="Write debug logs to this file")
    return parser.parse_args(argv)


async def repl(rl: Readline) -> None:
    """Echo lines until the user cancels or input ends."""
    while True:
        try:
            line = await rl.run()
        except (CancellationError, InputClosedError):
            return

        if line.startswith(_PROMPT_COMMAND):
            await rl.set_prompt(line[len(_PROMPT_COMMAND) :])
            continue

        # Raw mode disables output post-processing, so end lines with \r\n
        sys.stdout.write(line + "\r\n")
        sys.stdout.flush()


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    if args.log_file:
        logging.basicConfig(
            filename=args.log_file,
            level=logging.DEBUG,
            format="%(asctime)s %(name)s %(levelname)s %(message)s",
        )

    settings = load_settings(
        args.settings,
        overrides={"prompt": args.prompt, "historyFile": args.history_file},
    )
    rl = Readline.from_settings(settings)

    try:
        with raw_mode():
            asyncio.run(repl(rl))
    except TerminalControlError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        rl.close()

    return 0


if __name__ == "__main__":
    sys.exit(main())
