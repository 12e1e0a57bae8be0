#!/usr/bin/env python3
"""Simple CLI for trying ledgerchat locally"""

import argparse
import asyncio
from typing import Any, Dict, Optional
from uuid import uuid4

import httpx

from .api.dependencies import get_gateway, get_orchestrator
from .core.ledger import initialize_from_settings
from .logging_config import setup_logging


def print_turn(response: Dict[str, Any]) -> None:
    """Pretty print one turn response"""
    kind = response.get("type")
    print(response.get("message", ""))

    if kind == "argumentRequest":
        interactive = response.get("interactive", {})
        for component in interactive.get("components", []):
            line = f"   • {component['label']} ({component['argName']})"
            if component.get("error"):
                line += f" ⚠️  {component['error']}"
            print(line)
            options = component.get("options") or []
            if options:
                print(f"     options: {', '.join(o['value'] for o in options)}")

    elif kind in ("actionComplete", "actionError"):
        result = response.get("actionResult") or {}
        if result:
            print(f"   [{result.get('status')}] {result.get('receiptStatus') or ''}".rstrip())

    elif kind == "cancelled":
        print(f"   reason: {response.get('reason')}")


def _collect_fields(response: Dict[str, Any]) -> Optional[Dict[str, str]]:
    """Prompt for each requested field; None when the user cancels"""
    values = {}
    for name in response.get("interactive", {}).get("missingArgs", []):
        value = input(f"   {name}: ").strip()
        if value.lower() in ("cancel", "stop", "abort"):
            return None
        values[name] = value
    return values


async def cli_chat(user_id: str = "cli"):
    """Interactive chat mode against an in-process orchestrator"""
    setup_logging("WARNING")
    initialize_from_settings(get_gateway())
    orchestrator = get_orchestrator()
    session_id = str(uuid4())

    print("🤖 Ledgerchat")
    print("Type 'exit' to quit, 'help' for commands")
    print("-" * 40)

    while True:
        try:
            user_input = input("\n💬 You: ").strip()

            if user_input.lower() in ['exit', 'quit', 'q']:
                print("Goodbye! 👋")
                break

            elif user_input.lower() in ['help', 'h']:
                print("\nCommands:")
                print("  help - Show this help")
                print("  exit - Quit the chat")
                print("  send 5 HBAR to Alex - Transfer")
                print("  swap 10 HBAR for USDC - Swap")
                print("  cancel - Drop the pending request")
                continue

            elif not user_input:
                continue

            print("🤖 Assistant: ", end="")
            response = await orchestrator.handle_message(user_input, session_id, user_id)
            data = response.model_dump(by_alias=True, mode="json")
            print_turn(data)

            # Multi-field requests are answered as a form
            while data.get("type") == "argumentRequest" and len(data["interactive"]["missingArgs"]) > 1:
                values = _collect_fields(data)
                if values is None:
                    response = await orchestrator.cancel(session_id)
                else:
                    response = await orchestrator.handle_interactive_response(session_id, values, user_id)
                data = response.model_dump(by_alias=True, mode="json")
                print("🤖 Assistant: ", end="")
                print_turn(data)

        except KeyboardInterrupt:
            print("\nGoodbye! 👋")
            break
        except EOFError:
            break
        except Exception as e:
            print(f"❌ Error: {e}")


async def cli_balance(base_url: str, account_id: Optional[str] = None):
    """Call the balance API and print it."""
    params = {"accountId": account_id} if account_id else {}
    async with httpx.AsyncClient() as client:
        response = await client.get(f"{base_url}/ledger/balance", params=params, timeout=30)
        response.raise_for_status()
        data = response.json()

    print(f"Account: {data.get('accountId')}")
    print(f"Balance: {data.get('balanceFormatted')}")
    for token_id, amount in (data.get("tokenBalances") or {}).items():
        print(f"   {token_id}: {amount}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Ledgerchat CLI")
    subparsers = parser.add_subparsers(dest="command")

    chat_parser = subparsers.add_parser("chat", help="Interactive chat mode")
    chat_parser.add_argument("--user", default="cli", help="User id for the session")

    balance_parser = subparsers.add_parser("balance", help="Query an account balance through a running server")
    balance_parser.add_argument("account_id", nargs="?", help="Account id (default: operator)")
    balance_parser.add_argument("--url", default="http://localhost:8000", help="Server base URL")

    return parser


async def main():
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return

    command = args.command.lower()

    if command == "chat":
        await cli_chat(args.user)

    elif command == "balance":
        await cli_balance(args.url, args.account_id)

    else:
        print(f"❌ Unknown command: {command}")
        parser.print_help()


def run():
    asyncio.run(main())


if __name__ == "__main__":
    run()
