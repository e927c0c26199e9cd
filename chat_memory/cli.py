"""
Command-line interface for the chat memory package.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from .chat.hooks import ChatHooks
from .chat.messages import ChatMessage, MessageRole
from .config import STORAGE_BACKENDS, create_default_config_file, load_config
from .errors import ChatMemoryError
from .factory import build_memory_store
from .memory.integration import MemoryIntegration, format_memories_as_context
from .observability.logging import LogLevel, configure_logging


def setup_logging(verbose: bool = False, json_output: bool = False):
    """Configure logging."""
    if json_output:
        configure_logging(
            level=LogLevel.DEBUG if verbose else LogLevel.INFO,
            json_output=True,
        )
        return

    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="chat-memory",
        description="Chat Memory - semantic recall for conversations",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Enable memory with the offline embedding provider
  chat-memory config set --enable --embed-provider local --embed-model hash-256

  # Remember something said by the user
  chat-memory store "I am allergic to peanuts" --role user --session s1

  # Recall related memories and print them as prompt context
  chat-memory search "what food should I avoid?" --threshold 0.3 --context

  # Export everything to JSON
  chat-memory export memories.json
        """
    )

    parser.add_argument(
        "--config",
        help="Path to a YAML configuration file"
    )
    parser.add_argument(
        "--storage",
        choices=STORAGE_BACKENDS,
        help="Storage backend (overrides configuration)"
    )
    parser.add_argument(
        "--path",
        help="Storage file path (overrides configuration)"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging"
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Emit logs as JSON lines"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Config command
    config_parser = subparsers.add_parser(
        "config",
        help="Show or change memory settings"
    )
    config_subparsers = config_parser.add_subparsers(dest="config_command")
    config_subparsers.add_parser("show", help="Show current settings")
    config_set_parser = config_subparsers.add_parser("set", help="Change settings")
    toggle = config_set_parser.add_mutually_exclusive_group()
    toggle.add_argument("--enable", dest="enabled", action="store_const", const=True)
    toggle.add_argument("--disable", dest="enabled", action="store_const", const=False)
    config_set_parser.add_argument("--embed-provider", help="Embedding provider id")
    config_set_parser.add_argument("--embed-model", help="Embedding model id")
    config_init_parser = config_subparsers.add_parser(
        "init",
        help="Write a default configuration file"
    )
    config_init_parser.add_argument(
        "file",
        nargs="?",
        help="Where to write the file (default: ./.chat-memory.yml)"
    )

    # Store command
    store_parser = subparsers.add_parser(
        "store",
        help="Store a chat message as memory"
    )
    store_parser.add_argument("text", help="Message text")
    store_parser.add_argument(
        "--role",
        choices=[MessageRole.USER.value, MessageRole.ASSISTANT.value],
        default=MessageRole.USER.value,
        help="Sender role (default: user)"
    )
    store_parser.add_argument("--session", help="Session id")
    store_parser.add_argument("--source", default="chat", help="Origin tag (default: chat)")

    # Search command
    search_parser = subparsers.add_parser(
        "search",
        help="Search memories by meaning"
    )
    search_parser.add_argument("query", help="Search query")
    search_parser.add_argument("--limit", type=int, help="Maximum results")
    search_parser.add_argument("--threshold", type=float, help="Minimum similarity")
    search_parser.add_argument("--session", help="Restrict to one session")
    search_parser.add_argument(
        "--context",
        action="store_true",
        help="Print results as a prompt context block"
    )

    # Recent command
    recent_parser = subparsers.add_parser(
        "recent",
        help="List the most recent memories"
    )
    recent_parser.add_argument("--limit", type=int, default=10, help="Maximum entries")
    recent_parser.add_argument("--session", help="Restrict to one session")

    # Show / delete commands
    show_parser = subparsers.add_parser("show", help="Show one memory")
    show_parser.add_argument("memory_id", help="Memory id")
    delete_parser = subparsers.add_parser("delete", help="Delete one memory")
    delete_parser.add_argument("memory_id", help="Memory id")

    # Clear command
    clear_parser = subparsers.add_parser(
        "clear",
        help="Clear memories (use with caution!)"
    )
    clear_parser.add_argument("--session", help="Only clear this session")
    clear_parser.add_argument(
        "--yes", "-y",
        action="store_true",
        help="Skip confirmation"
    )

    # Stats, export, import, providers
    subparsers.add_parser("stats", help="Show memory statistics")
    export_parser = subparsers.add_parser("export", help="Export memories to JSON")
    export_parser.add_argument("output", help="Output file")
    import_parser = subparsers.add_parser("import", help="Import memories from JSON")
    import_parser.add_argument("input", help="Input file")
    subparsers.add_parser("providers", help="List embedding providers")

    return parser


def main():
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    setup_logging(args.verbose, args.json_logs)

    if args.command == "config" and getattr(args, "config_command", None) == "init":
        path = create_default_config_file(args.file)
        print(f"Created {path}")
        return

    try:
        config = load_config(
            config_path=args.config,
            backend=args.storage,
            path=args.path,
        )
        store = build_memory_store(config)
    except ChatMemoryError as e:
        print(f"Error: {e}")
        sys.exit(1)

    try:
        run_command(store, args, config)
    finally:
        store.close()


def run_command(store, args, config=None):
    """Dispatch a parsed command against a memory store."""
    handlers = {
        "config": handle_config,
        "store": handle_store,
        "search": handle_search,
        "recent": handle_recent,
        "show": handle_show,
        "delete": handle_delete,
        "clear": handle_clear,
        "stats": handle_stats,
        "export": handle_export,
        "import": handle_import,
        "providers": handle_providers,
    }
    handler = handlers[args.command]
    if args.command == "search":
        handler(store, args, config)
    else:
        handler(store, args)


def handle_config(store, args):
    """Show or change memory settings."""
    if args.config_command == "set":
        store.configure(
            enabled=args.enabled,
            embed_provider_id=args.embed_provider,
            embed_model_id=args.embed_model,
        )
    elif args.config_command != "show":
        print("Error: Please specify a config command (show, set, init)")
        sys.exit(1)

    print(f"Enabled:            {'yes' if store.memory_enabled else 'no'}")
    print(f"Embedding provider: {store.embed_provider_id or '-'}")
    print(f"Embedding model:    {store.embed_model_id or '-'}")
    print(f"Configured:         {'yes' if store.is_configured else 'no'}")


def handle_store(store, args):
    """Store a message through the chat integration."""
    if not store.is_configured:
        print("Error: Memory system not configured. Run 'chat-memory config set' first.")
        sys.exit(1)

    integration = MemoryIntegration(store, ChatHooks())
    message = ChatMessage(role=MessageRole(args.role), content=args.text)
    result = asyncio.run(integration.store_message_as_memory(message, args.session, args.source))

    if result is None:
        print("Message skipped (too short or empty).")
        return

    entry = result.entry
    print(f"Stored {entry.id} ({result.status.value}, importance {entry.metadata.importance:.1f})")


def handle_search(store, args, config=None):
    """Search memories."""
    limit = args.limit if args.limit is not None else (config.search.limit if config else 5)
    threshold = (
        args.threshold if args.threshold is not None
        else (config.search.threshold if config else 0.7)
    )

    results = asyncio.run(store.search_memories(
        args.query,
        limit=limit,
        threshold=threshold,
        session_id=args.session,
    ))

    if args.context:
        print(format_memories_as_context(results), end="")
        return

    if not results:
        print("No memories found matching your query.")
        return

    print(f"Found {len(results)} matching memories:\n")
    for i, result in enumerate(results, 1):
        print(f"{i}. Similarity: {result.similarity:.3f}")
        _print_entry(result.entry)


def handle_recent(store, args):
    """List recent memories."""
    entries = store.get_recent_memories(args.limit, args.session)
    if not entries:
        print("No memories stored.")
        return

    for entry in entries:
        _print_entry(entry)


def handle_show(store, args):
    """Show one memory."""
    entry = store.get_memory_by_id(args.memory_id)
    if entry is None:
        print(f"Error: Memory not found: {args.memory_id}")
        sys.exit(1)
    _print_entry(entry, full=True)


def handle_delete(store, args):
    """Delete one memory."""
    if store.delete_memory(args.memory_id):
        print(f"Deleted {args.memory_id}")
    else:
        print(f"No memory with id {args.memory_id}")


def handle_clear(store, args):
    """Clear memories."""
    scope = f"session '{args.session}'" if args.session else "ALL sessions"
    if not args.yes:
        confirm = input(f"Clear memories of {scope}? This cannot be undone. [y/N]: ")
        if confirm.lower() != 'y':
            print("Aborted.")
            return

    removed = store.clear_memories(args.session)
    print(f"Cleared {removed} memories from {scope}.")


def handle_stats(store, args):
    """Show memory statistics."""
    print(store.get_stats_summary())


def handle_export(store, args):
    """Export memories to file."""
    count = store.export_memories(args.output)
    print(f"Exported {count} memories to {args.output}")


def handle_import(store, args):
    """Import memories from file."""
    if not Path(args.input).exists():
        print(f"Error: File not found: {args.input}")
        sys.exit(1)

    try:
        count = store.import_memories(args.input)
    except (OSError, ValueError) as e:
        print(f"Error: Could not import {args.input}: {e}")
        sys.exit(1)
    print(f"Imported {count} memories from {args.input}")


def handle_providers(store, args):
    """List available embedding providers."""
    print("Available embedding providers:")
    for provider_id in store.gateway.registry.list_providers():
        marker = " (active)" if provider_id == store.embed_provider_id else ""
        print(f"  - {provider_id}{marker}")


def _print_entry(entry, full: bool = False):
    print(f"   ID: {entry.id}")
    print(f"   Time: {entry.metadata.timestamp.astimezone().strftime('%Y-%m-%d %H:%M:%S')}")
    if entry.session_id:
        print(f"   Session: {entry.session_id}")
    content = entry.content
    if not full:
        content = content[:100].replace('\n', ' ')
        if len(entry.content) > 100:
            content += "..."
    print(f"   Content: {content}")
    if entry.metadata.tags:
        print(f"   Tags: {', '.join(entry.metadata.tags)}")
    if full:
        importance = entry.metadata.importance
        print(f"   Source: {entry.metadata.source}")
        print(f"   Importance: {importance if importance is not None else '-'}")
        print(f"   Embedding: {len(entry.embedding) if entry.embedding else 'none'}")
    print()


if __name__ == "__main__":
    main()
