"""
Chopsticks CLI - Command-line interface for the engine.

Usage:
    chopsticks serve [--host H] [--port P]     Run the HTTP/WebSocket API
    chopsticks play [--computer] [--seed N]    Play in the terminal
"""

import argparse
import asyncio
import logging
import sys

from .engine_core.state import Hand, Seat
from .session import MatchLoop, MatchView, LoopState


HANDS = {"l": Hand.LEFT, "left": Hand.LEFT, "r": Hand.RIGHT, "right": Hand.RIGHT}

HELP = """Commands:
  a <own hand> <seat> <hand>   attack, e.g. "a l 2 r"
  t <from hand> <to hand>      move one finger, e.g. "t r l"
  reset                        start over
  q                            quit"""


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Chopsticks - two-player finger game",
        prog="chopsticks",
    )
    parser.add_argument("--log-level", default="WARNING", help="Logging level")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Run the API server")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)

    # Play command
    play_parser = subparsers.add_parser("play", help="Play a local match in the terminal")
    play_parser.add_argument("--computer", action="store_true", help="Play against the computer")
    play_parser.add_argument("--seed", type=int, default=None, help="Seed for the computer")

    args = parser.parse_args()

    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    if args.command == "serve":
        cmd_serve(args)
    elif args.command == "play":
        asyncio.run(cmd_play(args))
    else:
        parser.print_help()
        sys.exit(1)


def cmd_serve(args):
    """Run the API with uvicorn."""
    import uvicorn

    uvicorn.run("chopsticks.api.app:app", host=args.host, port=args.port)


def render(view: MatchView) -> str:
    """One-line text rendering of a match view."""
    seats = []
    for seat in (Seat.ONE, Seat.TWO):
        hands = view.hands[seat]
        marker = "*" if seat == view.current_player else " "
        selected = ""
        if view.selected_hand is not None and view.selected_hand.seat == seat:
            selected = f" ({view.selected_hand.hand.value} selected)"
        seats.append(f"{marker}Seat {seat.value} [L:{hands.left} R:{hands.right}]{selected}")

    line = "  ".join(seats)
    if view.loop_state is LoopState.GAME_OVER:
        return f"{line}  -> Seat {view.winner.value} wins!"
    return f"{line}  {view.seconds_left}s"


async def cmd_play(args):
    """Play a hot-seat or vs-computer match in the terminal."""
    from .bots import RandomPolicy

    policy = RandomPolicy(args.seed) if args.computer else None
    loop = MatchLoop.local(computer_opponent=args.computer, policy=policy)

    last_revision = None

    def on_change(view: MatchView):
        nonlocal last_revision
        if view.revision != last_revision:
            last_revision = view.revision
            print(render(view))

    loop.add_listener(on_change)
    await loop.start()
    print(HELP)
    print(render(loop.view()))

    try:
        while True:
            line = (await asyncio.to_thread(input, "> ")).strip().lower()
            if not line:
                continue
            if line in ("q", "quit", "exit"):
                break
            message = await run_command(loop, line.split())
            if message:
                print(message)
    except (EOFError, KeyboardInterrupt):
        pass
    finally:
        await loop.stop()


async def run_command(loop: MatchLoop, words: list[str]) -> str | None:
    """Execute one terminal command. Returns a message for the player, if any."""
    command, rest = words[0], words[1:]
    try:
        if command == "a" and len(rest) == 3:
            own, seat, target = HANDS[rest[0]], Seat(int(rest[1])), HANDS[rest[2]]
            selection = loop.state.selected_hand
            if selection is None or selection.hand is not own:
                result = await loop.select(own)
                if not result.success:
                    return result.error
            result = await loop.attack(seat, target)
        elif command == "t" and len(rest) == 2:
            result = await loop.transfer(HANDS[rest[0]], HANDS[rest[1]])
        elif command == "reset":
            result = await loop.reset()
        else:
            return HELP
    except (KeyError, ValueError):
        return HELP

    return None if result.success else result.error


if __name__ == "__main__":
    main()
