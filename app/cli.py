#!/usr/bin/env python3
"""
Tidewatch CLI Tool.

Command-line interface for the ingestion pipeline:
- Database setup
- Station search and location management
- Current buoy and river conditions

Usage:
    python -m app.cli init-db
    python -m app.cli stations --region "West Coast" --query "half moon"
    python -m app.cli conditions 46012
    python -m app.cli water
    python -m app.cli add-location 46012
    python -m app.cli list-locations
"""
import argparse
import asyncio
import sys
from typing import List, Optional

from app.config import get_settings
from app.main import Services, configure_logging, create_services
from tidewatch.data.observations import WaterData
from tidewatch.data.regions import REGION_NAMES
from tidewatch.exceptions import TidewatchError
from tidewatch.schemas import WaterConditions
from tidewatch.units import (
    cfs_to_gallons_per_second,
    degrees_to_compass,
    temperature_fahrenheit,
    wave_height_category,
    wave_height_feet,
    water_temperature_category,
)


def format_conditions(conditions: WaterConditions) -> List[str]:
    """Human-readable lines for a buoy snapshot."""
    temp = conditions.water_temperature
    wave = conditions.wave_height
    return [
        f"Observed:       {conditions.timestamp.strftime('%Y-%m-%d %H:%M')} UTC",
        f"Water temp:     {temperature_fahrenheit(temp):.1f}°F "
        f"({water_temperature_category(temp)})",
        f"Wave height:    {wave_height_feet(wave):.1f} ft ({wave_height_category(wave)})",
        f"Wave period:    {conditions.wave_period.value:.1f} sec",
        f"Wave direction: {degrees_to_compass(conditions.wave_direction.value)}",
        f"Wind:           {conditions.wind_speed.value:.1f} {conditions.wind_speed.unit} "
        f"from {degrees_to_compass(conditions.wind_direction.value)}",
    ]


def format_water_data(data: WaterData) -> List[str]:
    temp = data.temperature
    discharge = data.discharge
    lines = [f"Temperature: {temp.current:.1f} {temp.unit} (updated {temp.last_updated.isoformat()})"]
    if discharge.unit == "ft3/s":
        gallons = cfs_to_gallons_per_second(discharge.current)
        lines.append(f"Discharge:   {discharge.current:.0f} ft³/s ({gallons:.0f} gal/s)")
    else:
        lines.append(f"Discharge:   {discharge.current:.0f} {discharge.unit}")
    lines.append(f"History:     {len(temp.history)} temperature / {len(discharge.history)} discharge samples")
    return lines


def _print_alert(title: str, message: str) -> None:
    print(f"\n{title}: {message}", file=sys.stderr)


async def list_stations(services: Services, query: Optional[str], region: Optional[str]) -> int:
    from app.locations import search_stations

    stations = search_stations(await services.ndbc.fetch_station_list(), query, region)
    if not stations:
        print("\nNo stations found.")
        return 0

    print("\n" + "=" * 80)
    print("NDBC STATIONS")
    print("=" * 80)
    print(f"{'ID':<10} {'Name':<40} {'Region':<14} {'Lat':>7} {'Lon':>8}")
    print("-" * 80)
    for station in stations:
        print(
            f"{station.id:<10} "
            f"{station.name[:38]:<40} "
            f"{station.region:<14} "
            f"{station.latitude:>7.3f} "
            f"{station.longitude:>8.3f}"
        )
    print("=" * 80)
    print(f"Total: {len(stations)} station(s)\n")
    return 0


async def show_conditions(services: Services, station_id: str) -> int:
    conditions = await services.ndbc.fetch_water_conditions(station_id)
    print(f"\nStation {station_id}")
    for line in format_conditions(conditions):
        print(f"  {line}")
    return 0


async def show_water_data(services: Services) -> int:
    state = await services.conditions.load(show_errors=True)
    if state.current is None:
        return 1

    if state.is_offline:
        print("\nOffline Mode - Showing Cached Data")
    print()
    for line in format_water_data(state.current):
        print(line)
    return 0


async def add_location(services: Services, station_id: str) -> int:
    stations = await services.ndbc.fetch_station_list()
    station = next((s for s in stations if s.id == station_id), None)
    if station is None:
        print(f"\nError: station {station_id} not found.")
        return 1

    location = services.locations.add_location_from_station(station)
    print(f"\n{station.name} has been added to your locations.")
    print(f"Location ID: {location.id}")
    return 0


def list_locations(services: Services) -> int:
    locations = services.store.get_locations()
    if not locations:
        print("\nNo locations found.")
        return 0

    snapshots = services.store.get_all_water_conditions()

    print("\n" + "=" * 80)
    print("LOCATIONS")
    print("=" * 80)
    print(f"{'ID':<36} {'Name':<22} {'Station':<8} {'Fav':<4} {'Water':>7}")
    print("-" * 80)
    for location in locations:
        snapshot = snapshots.get(location.id)
        water = (
            f"{temperature_fahrenheit(snapshot.water_temperature):.1f}°F" if snapshot else "-"
        )
        print(
            f"{location.id:<36} "
            f"{location.name[:20]:<22} "
            f"{location.ndbc_station_id:<8} "
            f"{'*' if location.is_favorite else '':<4} "
            f"{water:>7}"
        )
    print("=" * 80)
    print(f"Total: {len(locations)} location(s)\n")
    return 0


def toggle_favorite(services: Services, location_id: str) -> int:
    location = services.locations.toggle_favorite(location_id)
    if location is None:
        print(f"\nError: location {location_id} not found.")
        return 1
    state = "added to" if location.is_favorite else "removed from"
    print(f"\n{location.name} {state} favorites.")
    return 0


def delete_location(services: Services, location_id: str) -> int:
    if services.store.get_location(location_id) is None:
        print(f"\nError: location {location_id} not found.")
        return 1
    services.locations.delete_location(location_id)
    print(f"\nLocation {location_id} has been deleted.")
    return 0


def create_group(services: Services, name: str, location_ids: List[str]) -> int:
    group = services.locations.create_group(name, location_ids)
    print(f"\nGroup '{group.name}' created with {len(group.location_ids)} location(s).")
    print(f"Group ID: {group.id}")
    return 0


def init_db() -> int:
    """Initialize the configured store."""
    from app.storage import create_store

    print("Initializing storage...")
    store = create_store(get_settings())
    store.close()
    print("Storage initialized successfully.")
    return 0


async def _run(args: argparse.Namespace) -> int:
    services = create_services(offline=getattr(args, "offline", False), on_alert=_print_alert)
    try:
        if args.command == "stations":
            return await list_stations(services, args.query, args.region)
        elif args.command == "conditions":
            return await show_conditions(services, args.station_id)
        elif args.command == "water":
            return await show_water_data(services)
        elif args.command == "add-location":
            return await add_location(services, args.station_id)
        elif args.command == "list-locations":
            return list_locations(services)
        elif args.command == "favorite":
            return toggle_favorite(services, args.location_id)
        elif args.command == "delete-location":
            return delete_location(services, args.location_id)
        elif args.command == "create-group":
            return create_group(services, args.name, args.location_ids)
        raise ValueError(f"Unknown command: {args.command}")
    finally:
        await services.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Tidewatch CLI Tool",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Find West Coast buoys:
    python -m app.cli stations --region "West Coast"

  Show the latest reading from a buoy:
    python -m app.cli conditions 46012

  Show river conditions from the cache only:
    python -m app.cli water --offline
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # init-db
    subparsers.add_parser("init-db", help="Initialize the configured store")

    # stations
    stations_parser = subparsers.add_parser("stations", help="Search NDBC stations")
    stations_parser.add_argument("--query", help="Name or id substring")
    stations_parser.add_argument("--region", choices=REGION_NAMES, help="Region filter")

    # conditions
    conditions_parser = subparsers.add_parser("conditions", help="Latest buoy conditions")
    conditions_parser.add_argument("station_id", help="NDBC station id")

    # water
    water_parser = subparsers.add_parser("water", help="Current USGS river conditions")
    water_parser.add_argument(
        "--offline", action="store_true", help="Use cached data without checking the network"
    )

    # add-location
    add_parser = subparsers.add_parser("add-location", help="Track a station as a location")
    add_parser.add_argument("station_id", help="NDBC station id")

    # list-locations
    subparsers.add_parser("list-locations", help="List tracked locations")

    # favorite
    favorite_parser = subparsers.add_parser("favorite", help="Toggle a location's favorite flag")
    favorite_parser.add_argument("location_id")

    # delete-location
    delete_parser = subparsers.add_parser("delete-location", help="Delete a location")
    delete_parser.add_argument("location_id")

    # create-group
    group_parser = subparsers.add_parser("create-group", help="Create a location group")
    group_parser.add_argument("name")
    group_parser.add_argument("location_ids", nargs="*", help="Location ids to include")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(get_settings().log_level)

    if args.command is None:
        parser.print_help()
        return 1
    if args.command == "init-db":
        return init_db()

    try:
        return asyncio.run(_run(args))
    except TidewatchError as e:
        print(f"\nError: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
