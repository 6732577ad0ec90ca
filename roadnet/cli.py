"""Command-line entry point computing a single route."""

import argparse
import sys

import orjson
from pydantic import ValidationError

from core.log_config import configure_logging
from core.settings import RouterSettings
from roadnet.routing.dto import RouteRequest
from roadnet.routing.service import RouteNotFoundError, RoutingService


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="What-if router")
    parser.add_argument("waypoints", help="Waypoints as 'lon,lat;lon,lat;...'")
    parser.add_argument("--vehicle", default="car", help="Vehicle profile (car, taxi)")
    parser.add_argument(
        "--weighting",
        default="fastest",
        help="Weighting (fastest, shortest, fastest_with_traffic)",
    )
    parser.add_argument("--avoid-area", default="", help="GeoJSON FeatureCollection to avoid")
    parser.add_argument("--start", default="", help="Departure time (ISO 8601)")
    parser.add_argument("--data-dir", default=".", help="Directory for persisted graphs")
    parser.add_argument(
        "--reimport",
        action="store_true",
        help="Rebuild the persisted graph and edge-to-way index before routing",
    )
    parser.add_argument("--log-level", default=None, help="Override ROUTER_LOG_LEVEL")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    settings = RouterSettings()
    logger = configure_logging(args.log_level or settings.log_level)

    try:
        request = RouteRequest.from_query(
            waypoints=args.waypoints,
            vehicle=args.vehicle,
            avoid_area=args.avoid_area,
            start_datetime=args.start,
            weighting=args.weighting,
        )
    except (ValueError, ValidationError) as e:
        logger.error(f"Invalid request: {e}")
        return 2

    service = RoutingService(settings, data_dir=args.data_dir)
    try:
        if args.reimport:
            service.reload(request.vehicle, request.weighting)
        response = service.route(request)
    except RouteNotFoundError as e:
        logger.error(str(e))
        return 1
    except (OSError, ValueError) as e:
        logger.error(f"Routing failed: {e}", exc_info=True)
        return 1

    sys.stdout.write(orjson.dumps(response.to_dict(), option=orjson.OPT_INDENT_2).decode())
    sys.stdout.write("\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
