"""
Command-line client for the cart reconciliation subsystem.

Usage:
    storefront status
    storefront add PRODUCT_ID [--quantity N] [--color C] [--size S]
    storefront login TOKEN
    storefront logout
"""
import argparse
import asyncio
import json
import sys
from pathlib import Path

from dotenv import load_dotenv

from storefront.app import Storefront, create_storefront
from storefront.errors import StorefrontError
from storefront.logging import configure_logging



def _print_state(app: Storefront) -> None:
    cart = app.engine.get_effective_cart()
    wishlist = app.engine.get_effective_wishlist()
    print(json.dumps(
        {
            "state": app.engine.state.value,
            "session": {
                "token_present": app.session.state.token_present,
                "authenticated": app.session.state.authenticated,
            },
            "cart": {"source": cart.source.value, "items": cart.to_list(), "item_count": cart.item_count},
            "wishlist": list(wishlist.product_ids),
        },
        indent=2,
    ))


async def _run(args: argparse.Namespace) -> int:
    app = create_storefront()
    await app.start()
    try:
        await app.initializer.wait_idle()

        if args.command == "login":
            await app.session.login(args.token)
        elif args.command == "logout":
            await app.session.logout()
        elif args.command == "add":
            try:
                await app.engine.add_to_cart(args.product_id, args.quantity, args.color, args.size)
            except StorefrontError as e:
                print(f"Could not add {args.product_id}: {e}", file=sys.stderr)
                return 1

        await app.initializer.wait_idle()
        _print_state(app)
    finally:
        await app.close()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="storefront", description="Inspect and reconcile the storefront cart")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("status", help="Initialize and print the effective cart")

    add = sub.add_parser("add", help="Add a product to the effective cart")
    add.add_argument("product_id")
    add.add_argument("--quantity", type=int, default=1)
    add.add_argument("--color")
    add.add_argument("--size")

    login = sub.add_parser("login", help="Store a token and merge the guest cart into the account")
    login.add_argument("token")

    sub.add_parser("logout", help="Forget the token and fall back to the guest cart")
    return parser


def main(argv: list[str] | None = None) -> int:
    env_path = Path.cwd() / ".env"
    if env_path.exists():
        load_dotenv(env_path)
    configure_logging()
    args = build_parser().parse_args(argv)
    if getattr(args, "quantity", 1) < 1:
        print("--quantity must be at least 1", file=sys.stderr)
        return 2
    return asyncio.run(_run(args))


if __name__ == "__main__":
    sys.exit(main())
