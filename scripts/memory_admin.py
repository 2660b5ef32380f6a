"""
CLI utility for persona memory maintenance.

Usage:
    python scripts/memory_admin.py stats --user u1 --persona tutor
    python scripts/memory_admin.py consolidate --user u1 --persona tutor --threshold 0.8
    python scripts/memory_admin.py decay --user u1 --persona tutor
    python scripts/memory_admin.py cleanup --user u1 --persona tutor --days 90
    python scripts/memory_admin.py export --user u1 --persona tutor --out backup.json
    python scripts/memory_admin.py import --user u2 --persona tutor --file backup.json
    python scripts/memory_admin.py wipe --user u1 --persona tutor --yes
"""

import argparse
import json
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from persona_memory.config.settings import load_settings
from persona_memory.errors import StoreUnavailableError
from persona_memory.memory import MemoryEngine, create_memory_engine
from persona_memory.telemetry import configure_logging


def format_time(ts: Optional[float]) -> str:
    """Format unix timestamp as human-readable string."""
    if ts is None:
        return "never"
    return datetime.fromtimestamp(ts).strftime("%Y-%m-%d %H:%M:%S")


def show_stats(engine: MemoryEngine, args) -> int:
    """Display memory statistics for one persona."""
    stats = engine.get_memory_stats(args.user, args.persona)
    status = engine.get_memory_status(args.user, args.persona)

    print(f"📊 Memory Statistics: user={args.user} persona={args.persona}\n")
    print(f"   Status:             {status.status}")
    print(f"   Memories:           {stats.total_count:,} ({stats.embedded_count:,} embedded)")
    print(f"   Approx. size:       {status.size_mb:.2f} MB")
    print(f"   Average importance: {stats.average_importance:.3f}")
    print(f"   Total accesses:     {stats.total_access_count:,}")
    print(f"   Oldest:             {format_time(stats.oldest_timestamp)}")
    print(f"   Newest:             {format_time(stats.newest_timestamp)}")

    if stats.count_by_type:
        print(f"\n{'Type':<15} {'Count':>10}")
        print("=" * 26)
        for memory_type, count in sorted(stats.count_by_type.items(), key=lambda kv: -kv[1]):
            print(f"{memory_type:<15} {count:>10,}")
    print()
    return 0


def run_consolidate(engine: MemoryEngine, args) -> int:
    print(f"🔗 Consolidating memories (threshold={args.threshold or 'default'})...")
    result = engine.consolidate_memories(
        args.user,
        args.persona,
        model=args.model,
        similarity_threshold=args.threshold,
    )
    print(f"   Groups merged:    {result.consolidated_groups}")
    print(f"   Memories removed: {result.deleted_count}")
    print("\n✅ Consolidation complete")
    return 0


def run_decay(engine: MemoryEngine, args) -> int:
    print("⏳ Applying importance decay...")
    updated = engine.apply_global_decay(args.user, args.persona)
    print(f"   {updated:,} memories updated")
    print("\n✅ Decay complete")
    return 0


def run_cleanup(engine: MemoryEngine, args) -> int:
    print(f"🗑️  Deleting unimportant memories older than {args.days} days...")
    deleted = engine.cleanup_old_memories(args.user, args.persona, args.days)
    print(f"   {deleted:,} memories deleted")
    print("\n✅ Cleanup complete")
    return 0


def run_export(engine: MemoryEngine, args) -> int:
    records = engine.export_memories(args.user, args.persona)
    payload = [record.model_dump() for record in records]

    if args.out:
        args.out.parent.mkdir(parents=True, exist_ok=True)
        args.out.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        print(f"💾 Exported {len(payload):,} memories to {args.out}")
    else:
        print(json.dumps(payload, indent=2))
    return 0


def run_import(engine: MemoryEngine, args) -> int:
    if not args.file.exists():
        print(f"❌ Import file not found: {args.file}")
        return 1

    try:
        payload = json.loads(args.file.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        print(f"❌ Invalid JSON in {args.file}: {e}")
        return 1

    if not isinstance(payload, list):
        print("❌ Import file must contain a JSON list of memories")
        return 1

    memories = [{**item, "persona_id": args.persona} for item in payload if isinstance(item, dict)]
    imported = engine.import_memories(memories, args.user)
    print(f"📥 Imported {imported:,} of {len(payload):,} memories")
    return 0


def run_wipe(engine: MemoryEngine, args) -> int:
    if not args.yes:
        print("❌ Refusing to wipe without --yes")
        return 1

    deleted = engine.wipe_memories(args.user, args.persona)
    print(f"🗑️  Deleted {deleted:,} memories")
    return 0


COMMANDS = {
    "stats": show_stats,
    "consolidate": run_consolidate,
    "decay": run_decay,
    "cleanup": run_cleanup,
    "export": run_export,
    "import": run_import,
    "wipe": run_wipe,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Manage persona memories (stats, maintenance, backup)"
    )
    parser.add_argument(
        "--db",
        type=str,
        default=None,
        help="SQLite database path (default: PERSONA_MEMORY_DB_PATH or data/memory/memories.db)",
    )

    subparsers = parser.add_subparsers(dest="command")

    def add_command(name: str, help_text: str) -> argparse.ArgumentParser:
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("--user", required=True, help="Owning user id")
        sub.add_argument("--persona", required=True, help="Persona id")
        return sub

    add_command("stats", "Show memory statistics")

    consolidate = add_command("consolidate", "Merge near-duplicate memories")
    consolidate.add_argument("--threshold", type=float, default=None, help="Similarity threshold")
    consolidate.add_argument("--model", type=str, default=None, help="Embedding model")

    add_command("decay", "Persist time-based importance decay")

    cleanup = add_command("cleanup", "Delete old, unimportant memories")
    cleanup.add_argument("--days", type=int, default=90, help="Retention in days (default: 90)")

    export = add_command("export", "Export memories as JSON")
    export.add_argument("--out", type=Path, default=None, help="Output file (default: stdout)")

    import_ = add_command("import", "Import memories from a JSON export")
    import_.add_argument("--file", type=Path, required=True, help="JSON export file")

    wipe = add_command("wipe", "Delete every memory of the persona")
    wipe.add_argument("--yes", action="store_true", help="Confirm deletion")

    return parser


def main():
    """CLI entrypoint."""
    parser = build_parser()
    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        print("\n❌ Error: Must specify a command")
        return 1

    settings = load_settings()
    if args.db:
        settings.storage.db_path = args.db
    configure_logging(settings.logging)

    try:
        engine = create_memory_engine(settings)
    except StoreUnavailableError as e:
        print(f"❌ {e}")
        return 1

    try:
        return COMMANDS[args.command](engine, args)
    finally:
        engine.store.close()


if __name__ == "__main__":
    sys.exit(main())
