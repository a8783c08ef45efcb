#!/usr/bin/env python3
"""Ad hoc query runner for the Recipe Conversation Assistant.

Run a single message through the pipeline from the command line.

Usage:
    python query.py "What can I make with chicken and rice?"
    python query.py --debug "Your query"  # Show full JSON payload
    python query.py --stateless "Your query"  # In-memory store, nothing persisted
    python query.py --user alice --session s1 "Give me 3 quick pasta ideas"

Features:
- Direct pipeline execution via RecipeAssistant.process_message()
- Formatted markdown message, recipe table and follow-up questions
- Debug mode to display the full JSON payload
- Stateless mode to run without the SQLite profile store
"""

import asyncio
import sys

from rich.console import Console
from rich.markdown import Markdown
from rich.table import Table

from src.pipeline.pipeline import RecipeAssistant
from src.store.profile_store import create_profile_store
from src.utils.logger import logger

console = Console()

USAGE = 'Usage: python query.py [--debug] [--stateless] [--user ID] [--session ID] "<your query>"'


def render_recipes(recipes: list[dict]) -> Table:
    """Build a rich table of ranked recipes."""
    table = Table(title="Recipes", show_lines=False)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Title", style="bold")
    table.add_column("Time")
    table.add_column("Difficulty")
    table.add_column("Calories", justify="right")
    table.add_column("Score", justify="right", style="cyan")

    for position, recipe in enumerate(recipes, start=1):
        nutrition = recipe.get("nutrition") or {}
        calories = recipe.get("calories") or nutrition.get("calories")
        score = recipe.get("compositeScore")
        table.add_row(
            str(position),
            recipe.get("title", ""),
            recipe.get("cookingTime", ""),
            recipe.get("difficulty") or "-",
            str(calories) if calories is not None else "-",
            f"{score:.2f}" if score is not None else "-",
        )
    return table


def run_query(
    query: str,
    debug: bool = False,
    stateless: bool = False,
    user_id: str = "cli-user",
    session_id: str = "cli-session",
) -> None:
    """Execute a single ad hoc query and print the response.

    Args:
        query: The user message.
        debug: If True, display the full JSON payload.
        stateless: If True, use the in-memory profile store.
        user_id: User identifier for profile and long-term memory.
        session_id: Session identifier for short-term memory.
    """
    try:
        logger.info(f"Initializing assistant (stateless={stateless})...")
        assistant = RecipeAssistant(store=create_profile_store(persistent=not stateless))

        logger.info(f"Running query: {query}")
        logger.info("---")
        payload = asyncio.run(assistant.process_message(query, user_id, session_id))
        logger.info("---")
        console.print()

        if debug:
            console.print("[bold cyan]Debug Mode: Full Response[/bold cyan]")
            console.print("[dim]" + "=" * 60 + "[/dim]")
            console.print_json(data=payload)
            console.print("[dim]" + "=" * 60 + "[/dim]")
            console.print()

        console.print(Markdown(payload["message"]))
        if payload["recipes"]:
            console.print()
            console.print(render_recipes(payload["recipes"]))
        if payload["followUpQuestions"]:
            console.print()
            for question in payload["followUpQuestions"]:
                console.print(f"[green]•[/green] {question}")
        console.print(f"\n[dim]confidence: {payload['confidence']:.2f}[/dim]")

    except KeyboardInterrupt:
        logger.info("\nQuery interrupted by user.")
        sys.exit(0)
    except Exception as e:
        logger.error(f"Query execution failed: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print(USAGE)
        print("")
        print("Examples:")
        print('  python query.py "What can I make with chicken and rice?"')
        print('  python query.py --debug "Give me 3 quick pasta ideas"')
        print('  python query.py --stateless --user alice "I\'m vegan, any dinner ideas?"')
        sys.exit(1)

    debug_mode = False
    stateless_mode = False
    user_id = "cli-user"
    session_id = "cli-session"
    argv_start = 1

    while argv_start < len(sys.argv) and sys.argv[argv_start].startswith("--"):
        flag = sys.argv[argv_start]
        if flag == "--debug":
            debug_mode = True
            argv_start += 1
        elif flag == "--stateless":
            stateless_mode = True
            argv_start += 1
        elif flag in ("--user", "--session"):
            argv_start += 1
            if argv_start >= len(sys.argv):
                print(f"Error: {flag} flag requires a value")
                sys.exit(1)
            if flag == "--user":
                user_id = sys.argv[argv_start]
            else:
                session_id = sys.argv[argv_start]
            argv_start += 1
        else:
            print(f"Unknown flag: {flag}")
            sys.exit(1)

    if argv_start >= len(sys.argv):
        print("Error: No query provided")
        print(USAGE)
        sys.exit(1)

    # Join all arguments after flags as the query (handles queries with spaces)
    query = " ".join(sys.argv[argv_start:])

    run_query(query, debug=debug_mode, stateless=stateless_mode, user_id=user_id, session_id=session_id)
