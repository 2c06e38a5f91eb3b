"""
Terminal client: mirrors the shared state and sends commands

Usage: workshop-client <URL> <username>
"""
import argparse
import asyncio
import json
import logging
import sys
import threading
from dataclasses import asdict
from typing import Optional, Tuple

import aiohttp

from .realtime import RealtimeClient
from .reducer import CONNECTION_CHANGED, SNAPSHOT_RECEIVED, ClientState, Store

logger = logging.getLogger("workshop_sync.cli")

HELP_TEXT = """
  Available Commands:
  ─────────────────────
  a               Select option A
  b               Select option B
  done            Mark yourself done
  lock            Lock selection (host only)
  reset           Reset state to initial (host only)
  state           Print the local state
  help            Show this menu
"""


class CommandError(Exception):
    pass


def parse_command(line: str, locked: bool) -> Tuple[str, Optional[str]]:
    """
    Turn one input line into (command, argument)

    Commands are select/done/lock/reset/help/state/render. Raises
    CommandError for unknown commands and bad options. While locked the
    a/b shortcuts are refused; an explicit "select <a|b>" is still sent.
    """
    parts = line.strip().split()
    if not parts:
        return "render", None

    command = parts[0].lower()

    if command in ("a", "b"):
        if locked:
            raise CommandError("Cannot select: experiment is locked (host only)")
        return "select", command.upper()

    if command == "select":
        option = parts[1].upper() if len(parts) > 1 else ""
        if option not in ("A", "B"):
            raise CommandError("Invalid selection. Use: a or b")
        return "select", option

    if command in ("done", "lock", "reset", "help", "state"):
        return command, None

    raise CommandError(f"Unknown command: {command}")


def render(state: ClientState) -> str:
    connection = "[Connected]" if state.connected else "[Disconnected]"
    if state.last_action:
        last = state.last_action + (f" ({state.last_by})" if state.last_by else "")
    else:
        last = "(none)"

    lines = [
        "",
        "  +==========================================+",
        "  |         Workshop Voting Session          |",
        "  +==========================================+",
        "",
        f"  Connection: {connection}",
        f"  Locked:     {'YES' if state.locked else 'NO'}",
        f"  Selected:   {state.selected_option or '(none)'}",
        f"  Done:       {', '.join(state.done_by) if state.done_by else '(none)'}",
        f"  Last:       {last}",
        "",
        "  Commands: a | b | done | lock | reset | help",
        "",
    ]
    return "\n".join(lines)


def _redraw(store: Store) -> None:
    sys.stdout.write("\033[2J\033[H" + render(store.get_state()) + "\n  > ")
    sys.stdout.flush()


def _read_stdin(loop: asyncio.AbstractEventLoop, lines: "asyncio.Queue[str]") -> None:
    # Daemon thread: a pending readline must not hold up interpreter exit
    while True:
        line = sys.stdin.readline()
        try:
            loop.call_soon_threadsafe(lines.put_nowait, line)
        except RuntimeError:
            return
        if not line:
            return


async def _input_loop(client: RealtimeClient, store: Store) -> None:
    loop = asyncio.get_running_loop()
    lines: "asyncio.Queue[str]" = asyncio.Queue()
    threading.Thread(target=_read_stdin, args=(loop, lines), daemon=True).start()
    while True:
        line = await lines.get()
        if not line:
            return

        try:
            command, arg = parse_command(line, store.get_state().locked)
        except CommandError as e:
            sys.stdout.write(f"\n✗ {e}\n")
            _redraw(store)
            continue

        if command == "select":
            await client.select(arg)
        elif command == "done":
            await client.done()
        elif command == "lock":
            await client.lock()
        elif command == "reset":
            await client.reset()
        elif command == "help":
            sys.stdout.write(HELP_TEXT + "\n  > ")
        elif command == "state":
            sys.stdout.write("\n  Current State:\n" + json.dumps(asdict(store.get_state()), indent=2) + "\n  > ")
        else:
            _redraw(store)
        sys.stdout.flush()


async def run(url: str, username: str) -> None:
    store = Store()
    store.subscribe(lambda: _redraw(store))

    client = RealtimeClient(url, username)
    client.on_connection(lambda connected: store.dispatch(
        {"type": CONNECTION_CHANGED, "payload": {"connected": connected}}))
    client.on_state(lambda snapshot: store.dispatch(
        {"type": SNAPSHOT_RECEIVED, "payload": snapshot}))

    _redraw(store)
    listener = None
    try:
        await client.connect()
        listener = asyncio.create_task(client.listen())
        await _input_loop(client, store)
    except aiohttp.ClientError as e:
        store.dispatch({"type": CONNECTION_CHANGED, "payload": {"connected": False}})
        sys.stdout.write(f"\n✗ Cannot reach {client.url}: {e}\n")
        sys.stdout.flush()
    finally:
        await client.close()
        if listener is not None:
            await listener


def main(argv=None):
    parser = argparse.ArgumentParser(description="Workshop voting client")
    parser.add_argument("url", help="server URL, e.g. wss://abc123.ngrok.io")
    parser.add_argument("username")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.WARNING, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    try:
        asyncio.run(run(args.url, args.username))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
