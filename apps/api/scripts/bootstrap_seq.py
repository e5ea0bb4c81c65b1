"""One-time sequence bootstrap for a channel from a JSON clip index.

Usage: python bootstrap_seq.py <channel> <clips.json> [--platform twitch|kick]

The catalog must be empty for the channel; a second run is refused.
"""

import argparse
import asyncio
import json
import os
import sys

# Add parent dir to path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from database import Base, async_session_maker, engine
import models  # noqa: F401
from services.common import normalize_channel
from services.errors import CatalogError
from services.importers.normalize import normalize_batch
from services.sequence import bootstrap_sequence


def _load_clips(path: str):
    with open(path, "r", encoding="utf-8") as handle:
        data = json.load(handle)
    if isinstance(data, dict):
        data = data.get("clips") or data.get("data") or []
    if not isinstance(data, list):
        raise ValueError("Clip index must be a JSON list or an object with a 'clips' list")
    return data


async def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Assign permanent clip numbers 1..N to a new channel.")
    parser.add_argument("channel")
    parser.add_argument("index_path")
    parser.add_argument("--platform", default="twitch", choices=["twitch", "kick"])
    args = parser.parse_args(argv)

    channel = normalize_channel(args.channel)
    raw_clips = _load_clips(args.index_path)
    descriptors, errors = normalize_batch(args.platform, raw_clips)
    print(f"📦 Loaded {len(raw_clips)} clips for {channel} ({len(errors)} rejected)")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    try:
        async with async_session_maker() as db:
            assigned = await bootstrap_sequence(db, channel, descriptors)
    except CatalogError as exc:
        print(f"❌ {exc}")
        return 1
    finally:
        await engine.dispose()

    if not assigned:
        print("⚠️ Nothing to number.")
        return 0
    print(f"✅ Numbered {len(assigned)} clips: #1 to #{assigned[-1][1]}")
    for error in errors[:10]:
        print(f"   skipped index {error['index']}: {error['error']}")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
