"""Run a hotel search against the booking provider and store JSON snapshots."""
from __future__ import annotations

import argparse
import asyncio
import logging
from datetime import date
from pathlib import Path

from hotel_search.config.settings import Settings
from hotel_search.core.errors import HotelSearchError
from hotel_search.core.logging import configure_logging
from hotel_search.hotels import PartyConfiguration, Room, SearchContext
from hotel_search.services import HotelSearchFlow, ProviderClient
from hotel_search.storage.json_writer import JsonStore, snapshot_name
from hotel_search.tasks.search_payloads import SORT_OPTIONS, FilterState, SortSpec

logger = logging.getLogger(__name__)


def _parse_rooms(values: list[str] | None) -> PartyConfiguration:
    """Parse ``--room`` values such as ``2`` or ``2:5,9`` (adults, then child ages)."""
    rooms: list[Room] = []
    for value in values or ["2"]:
        adults_part, _, children_part = value.partition(":")
        adults = int(adults_part)
        children = [int(age) for age in children_part.split(",") if age.strip()]
        rooms.append(Room(adults=[None] * adults, children=children))
    return PartyConfiguration(rooms=rooms)


def _price_point(value: str) -> float | str:
    return value if value == "max" else float(value)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Search hotels and store the results as JSON")
    parser.add_argument("--city", required=True, help="City name as known to the provider")
    parser.add_argument("--check-in", required=True, type=date.fromisoformat)
    parser.add_argument("--check-out", required=True, type=date.fromisoformat)
    parser.add_argument("--inquiry-token", required=True)
    parser.add_argument(
        "--room",
        action="append",
        help="Room occupancy as ADULTS[:CHILD_AGE,...]; repeat per room (default: one room, 2 adults)",
    )
    parser.add_argument("--sort", choices=sorted(SORT_OPTIONS), default="relevance")
    parser.add_argument("--price-point", type=_price_point, default="max", help="Per night, per adult, or 'max'")
    parser.add_argument("--stars", type=int, action="append", default=[])
    parser.add_argument("--amenity", action="append", default=[])
    parser.add_argument("--name", default="", help="Hotel name text filter")
    parser.add_argument("--refundable", action="store_true")
    parser.add_argument("--max-pages", type=int, help="Override HOTEL_SEARCH_SEARCH_MAX_PAGES")
    parser.add_argument("--details-for", help="Hotel id whose room options should be fetched")
    parser.add_argument("--output", type=Path, help="Directory for snapshots (default: download_dir)")
    return parser


async def run(args: argparse.Namespace, settings: Settings) -> None:
    store = JsonStore(args.output or settings.download_dir)
    context = SearchContext(
        city_name=args.city,
        check_in=args.check_in,
        check_out=args.check_out,
        inquiry_token=args.inquiry_token,
        nationality=settings.default_nationality,
    )
    party = _parse_rooms(args.room)
    max_pages = args.max_pages or settings.search_max_pages

    async with ProviderClient.from_settings(settings) as client:
        flow = HotelSearchFlow(client, nationality=settings.default_nationality)
        flow.filters = FilterState(
            text_search=args.name,
            star_ratings=set(args.stars),
            amenity_flags=set(args.amenity),
            price_point=args.price_point,
            refundable_only=args.refundable,
        )
        flow.sort = SortSpec(key=args.sort)

        page = await flow.context_changed(context, party)
        while page.has_next_page and page.page_number < max_pages:
            page = await flow.page_requested()

        session = flow.session
        assert session is not None
        if session.last_page is not None and session.last_page.message:
            logger.info("Provider message: %s", session.last_page.message)
        path = await store.write(
            [record.to_dict() for record in session.hotels],
            filename=snapshot_name("hotels", args.city, args.check_in),
            subdir="search",
            metadata={"context": context.to_dict(), "pages": [p.page_number for p in session.pages]},
        )
        logger.info("Stored %s hotels to %s", len(session.hotels), path)

        if args.details_for:
            hotel = next((item for item in session.hotels if item.id == args.details_for), None)
            if hotel is None:
                logger.error("Hotel %s is not among the fetched results", args.details_for)
                return
            catalog = await flow.hotel_selected(hotel)
            options = catalog.list_recommendations()
            path = await store.write(
                [option.to_dict() for option in options],
                filename=snapshot_name("rooms", hotel.id),
                subdir="details",
                metadata={"hotel_id": hotel.id, "hotel_name": hotel.name},
            )
            logger.info("Stored %s room options for %s to %s", len(options), hotel.name, path)


def main() -> None:
    args = build_parser().parse_args()
    settings = Settings()
    settings.ensure_directories()
    configure_logging(settings.log_level, settings.log_dir)
    try:
        asyncio.run(run(args, settings))
    except HotelSearchError as exc:
        logger.error("Search failed: %s", exc)
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()
