import argparse
import asyncio
import json
from pathlib import Path
import sys

if __package__ is None or __package__ == "":
    sys.path.append(str(Path(__file__).resolve().parents[1]))

from scoreboard.core.config import get_settings
from scoreboard.services.engine import ScoreboardEngine
from scoreboard.services.kv_store import MemoryKeyValueStore


def parse_args() -> argparse.Namespace:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Dump the scoreboard dataset, optionally refreshed from the remote sheet.")
    parser.add_argument("--dataset", default=str(settings.dataset_file))
    parser.add_argument("--output", default="scoreboard-data.json")
    parser.add_argument("--sync", action="store_true", help="replace transactions with the remote list first")
    return parser.parse_args()


async def run(args: argparse.Namespace) -> int:
    # Offline dumps never touch the persisted milestone snapshot.
    engine = ScoreboardEngine(storage=MemoryKeyValueStore())
    engine.load_file(args.dataset)
    if args.sync:
        outcome = await engine.refresh_from_remote()
        if not outcome.ok:
            print(f"Sync failed, exporting local transactions: {outcome.error}")
    Path(args.output).write_text(json.dumps(engine.export_dataset(), indent=2, ensure_ascii=False), encoding="utf-8")
    return len(engine.store.transactions)


def main() -> None:
    args = parse_args()
    count = asyncio.run(run(args))
    print(f"Exported {count} transactions to {args.output}")


if __name__ == "__main__":
    main()
