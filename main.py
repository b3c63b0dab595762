#!/usr/bin/env python3
"""
Bug Tracker Assistant - Main Entry Point

Chat with the command interpreter over an in-memory demo workspace.

Usage:
    python main.py                 # Start as the demo manager
    python main.py --verbose       # Show intents, confidence and entities
    python main.py --user u2       # Start as another demo user

Author: AI System
Version: 2.0
"""

import argparse
import asyncio
import sys
import traceback
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from config import Config
from connectors.memory_backend import InMemoryBackend
from logger import Logger
from orchestration.interpreter import Interpreter
from ui.terminal_ui import TerminalUI

EXIT_COMMANDS = ('exit', 'quit', 'q')


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Natural-language bug tracker assistant")
    parser.add_argument('-v', '--verbose', action='store_true', help="show pipeline details")
    parser.add_argument('--user', help="demo user id to sign in as (default: the demo manager)")
    return parser.parse_args(argv)


async def main(argv=None):
    """Main entry point"""
    args = parse_args(argv)
    if args.verbose:
        Config.VERBOSE = True
        Logger.set_level('DEBUG')

    backend = InMemoryBackend()
    manager = backend.seed_demo()
    user = backend.users.get(args.user, manager) if args.user else manager

    collaborators = backend.collaborators()
    await collaborators.initialize()

    interpreter = Interpreter(collaborators, verbose=False)
    ui = TerminalUI(verbose=args.verbose)
    ui.print_header(user)

    try:
        await run_interactive_session(interpreter, ui, user)
    except (KeyboardInterrupt, EOFError):
        ui.print_goodbye()
    finally:
        await collaborators.cleanup()


async def run_interactive_session(interpreter: Interpreter, ui: TerminalUI, user):
    """Read, interpret, render until the user leaves"""
    profile = {'name': user['name'].split()[0]}

    while True:
        user_input = ui.get_input().strip()

        if user_input.lower() in EXIT_COMMANDS:
            ui.print_goodbye()
            break

        if not user_input:
            continue

        try:
            envelope = await interpreter.interpret(user['id'], user_input, user_profile=profile)
        except Exception as e:
            ui.print_error(str(e), traceback.format_exc())
            continue

        ui.print_response(envelope.to_dict())
        if envelope.intent == 'goodbye':
            ui.print_goodbye()
            break


def run():
    """Console script entry point"""
    asyncio.run(main())


if __name__ == "__main__":
    run()
