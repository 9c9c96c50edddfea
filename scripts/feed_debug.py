#!/usr/bin/env python3
"""Print the local feed for a position: sorted items, cursor, and a second page if one exists.

Run from the project root: python scripts/feed_debug.py --lon -73.99 --lat 40.73

Or with the API running: curl -s -X POST "http://127.0.0.1:8000/feeds/local/focus?lon=-73.99&lat=40.73" | jq
"""
import argparse
import asyncio
import sys
from pathlib import Path

project_dir = Path(__file__).resolve().parent.parent
if str(project_dir) not in sys.path:
    sys.path.insert(0, str(project_dir))

from squibfeed.config import settings
from squibfeed.models.cache_record import GeoPoint
from squibfeed.services.feed_cache import build_feed_stores
from squibfeed.services.feeds import LocalFeedController, ReportedLocationProvider
from squibfeed.services.squibs import SquibsClient


def _print_view(title: str, view) -> None:
    print(title)
    print("=" * len(title))
    if view.error:
        print(f"Error:           {view.error}")
    if view.permission_denied:
        print("Location permission denied")
    print(f"Items:           {len(view.items)}")
    print(f"More pages:      {'yes' if view.has_more else 'no'}")
    for item in view.items:
        where = item.location.label() if item.location else "-"
        text = (item.text or "")[:50]
        print(f"  - {item.created_at}  {item.type.value:<5}  {item.author_name or item.author_id}  [{where}]  {text}")
    print()


async def run(lon: float, lat: float, pages: int) -> None:
    stores = build_feed_stores()
    client = SquibsClient()
    controller = LocalFeedController(
        stores.local, client, ReportedLocationProvider(GeoPoint(lon=lon, lat=lat)), page_size=settings.page_size
    )
    try:
        view = await controller.on_focus()
        _print_view(f"Local feed near {GeoPoint(lon=lon, lat=lat).rounded()}", view)
        for n in range(1, pages):
            if not view.has_more:
                break
            view = await controller.load_more()
            _print_view(f"After page {n + 1}", view)
    finally:
        await client.aclose()


def main():
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--lon", type=float, required=True)
    parser.add_argument("--lat", type=float, required=True)
    parser.add_argument("--pages", type=int, default=1, help="pages to load (default 1)")
    args = parser.parse_args()
    asyncio.run(run(args.lon, args.lat, max(1, args.pages)))


if __name__ == "__main__":
    main()
    sys.exit(0)
