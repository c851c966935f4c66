"""Command-line interface for watchmerchant."""

import argparse
import json
import sys
from decimal import Decimal, InvalidOperation

from . import __version__
from .config import Settings
from .errors import WatchMerchantError
from .logging_setup import configure_logging
from .models import ProductFilters
from .services import Services, build_services


def get_services() -> Services:
    """Build services from the environment."""
    return build_services(Settings.from_env())


def parse_line_item(item: str) -> tuple[str, int]:
    """
    Parse "SKU" or "SKU:QTY" into a (sku, quantity) pair.

    Raises:
        argparse.ArgumentTypeError: If the quantity isn't a positive integer.
    """
    sku, _, quantity = item.partition(":")
    if not sku:
        raise argparse.ArgumentTypeError(f"Invalid item: {item!r} (expected SKU or SKU:QTY)")
    if not quantity:
        return sku, 1
    try:
        value = int(quantity)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid quantity in {item!r}")
    if value < 1:
        raise argparse.ArgumentTypeError(f"Quantity must be at least 1 in {item!r}")
    return sku, value


def parse_amount(value: str) -> Decimal:
    try:
        return Decimal(value)
    except InvalidOperation:
        raise argparse.ArgumentTypeError(f"Invalid amount: {value!r}")


def _print_json(data) -> None:
    print(json.dumps(data, indent=2))


def cmd_products(args: argparse.Namespace) -> int:
    """List catalog products."""
    try:
        services = get_services()
        filters = ProductFilters(
            search=args.search,
            brands=args.brand or [],
            categories=args.category or [],
            in_stock=args.in_stock,
            sort=args.sort,
        )
        products, meta = services.catalog.list_products(filters, page=args.page, limit=args.limit)

        if args.json:
            _print_json({
                "products": [p.to_dict() for p in products],
                "pagination": meta.to_dict(),
            })
            return 0

        if not products:
            print("No products found.")
            return 0

        for p in products:
            stock = f"{p.stock} in stock" if p.stock else "out of stock"
            print(f"{p.sku:<14} {p.name:<45} ${p.price:>10,.2f}  ({stock})")
        print()
        print(f"Page {meta.page}/{max(meta.total_pages, 1)} - {meta.total} product(s)")
        return 0

    except WatchMerchantError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_rates(args: argparse.Namespace) -> int:
    """Show shipping rates for a parcel."""
    try:
        services = get_services()
        rates = services.shipping.rates(args.country, args.weight, args.value)

        if args.json:
            _print_json([r.to_dict() for r in rates])
            return 0

        for r in rates:
            print(f"{r.carrier:<12} {r.service:<36} ${r.cost:>8,.2f}  {r.estimated_days}")
        return 0

    except WatchMerchantError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_quote(args: argparse.Namespace) -> int:
    """Price a set of items."""
    try:
        services = get_services()
        pricing = services.pricing.quote(args.items, args.shipping, args.coupon)

        if args.json:
            _print_json(pricing.to_dict())
            return 0

        print(f"Subtotal: ${pricing.subtotal:,.2f}")
        print(f"Discount: -${pricing.discount:,.2f}")
        print(f"Tax:      ${pricing.tax:,.2f}")
        print(f"Shipping: ${pricing.shipping:,.2f}")
        print(f"Total:    ${pricing.total:,.2f}")
        return 0

    except WatchMerchantError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_inventory(args: argparse.Namespace) -> int:
    """Check stock for one or more SKUs."""
    try:
        services = get_services()
        statuses = services.inventory.check_many(args.skus)

        if args.json:
            _print_json([s.to_dict() for s in statuses])
            return 0

        for s in statuses:
            print(f"{s.sku:<14} {s.quantity:>4}  {s.lead_time}")
        return 0

    except WatchMerchantError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_serve(args: argparse.Namespace) -> int:
    """Start the API server."""
    try:
        import uvicorn

        settings = Settings.from_env()
        port = args.port or settings.port

        print(f"Starting watchmerchant API server on http://{args.host}:{port}")
        print(f"API docs: http://{args.host}:{port}/docs")
        print()

        # When reload is enabled, uvicorn requires the app as an import string
        app_target = "watchmerchant.api:app" if args.reload else None
        if app_target is None:
            from .api import create_app
            app_target = create_app(settings)

        uvicorn.run(
            app_target,
            host=args.host,
            port=port,
            reload=args.reload,
            workers=1,  # Carts and orders live in process memory
        )
        return 0

    except WatchMerchantError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="watchmerchant",
        description="Demo watch merchant backend: catalog, pricing, shipping and orders.",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # products
    products_parser = subparsers.add_parser("products", help="List catalog products")
    products_parser.add_argument("--search", "-s", help="Search name, brand and description")
    products_parser.add_argument("--brand", "-b", action="append", help="Brand filter (repeatable)")
    products_parser.add_argument(
        "--category", "-c", action="append", help="Category filter (repeatable)"
    )
    products_parser.add_argument(
        "--in-stock", action="store_true", help="Only show products in stock"
    )
    products_parser.add_argument(
        "--sort", choices=["price_asc", "price_desc", "rating", "newest"], help="Sort order"
    )
    products_parser.add_argument("--page", type=int, default=1, help="Page number (default: 1)")
    products_parser.add_argument("--limit", type=int, default=20, help="Page size (default: 20)")
    products_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # rates
    rates_parser = subparsers.add_parser("rates", help="Show shipping rates for a parcel")
    rates_parser.add_argument("country", help="Destination country (ISO alpha-2)")
    rates_parser.add_argument("weight", type=parse_amount, help="Parcel weight in grams")
    rates_parser.add_argument("value", type=parse_amount, help="Declared value")
    rates_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # quote
    quote_parser = subparsers.add_parser("quote", help="Price a set of items")
    quote_parser.add_argument(
        "items", nargs="+", type=parse_line_item, help="Items as SKU or SKU:QTY"
    )
    quote_parser.add_argument("--coupon", help="Coupon code")
    quote_parser.add_argument(
        "--shipping", type=parse_amount, default=Decimal("0"),
        help="Shipping cost to include (default: 0)"
    )
    quote_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # inventory
    inventory_parser = subparsers.add_parser("inventory", help="Check stock for SKUs")
    inventory_parser.add_argument("skus", nargs="+", help="SKUs to check")
    inventory_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # serve
    serve_parser = subparsers.add_parser("serve", help="Start the API server")
    serve_parser.add_argument(
        "--host", default="127.0.0.1", help="Host to bind to (default: 127.0.0.1)"
    )
    serve_parser.add_argument(
        "--port", "-p", type=int, default=None, help="Port to bind to (default: $PORT or 3001)"
    )
    serve_parser.add_argument(
        "--reload", action="store_true", help="Enable auto-reload for development"
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    configure_logging()

    commands = {
        "products": cmd_products,
        "rates": cmd_rates,
        "quote": cmd_quote,
        "inventory": cmd_inventory,
        "serve": cmd_serve,
    }

    cmd_func = commands.get(args.command)
    if cmd_func:
        return cmd_func(args)

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
