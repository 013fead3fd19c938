"""Saved address CLI commands."""

import asyncio

import typer

address_app = typer.Typer()


@address_app.command("list")
def list_addresses(
    username: str = typer.Option(..., "--username", help="Owner's username"),
) -> None:
    """List a user's saved addresses in the order checkout offers them."""
    asyncio.run(_list_addresses(username))


async def _list_addresses(username: str) -> None:
    from manacity_api.core.config import get_settings
    from manacity_api.core.database import dispose_engine, get_session_factory, init_engine
    from manacity_api.services.address_book_service import list_address_responses
    from manacity_api.services.auth_service import get_user_by_username

    settings = get_settings()
    init_engine(settings.database_url, schema=settings.database_schema)

    try:
        factory = get_session_factory()
        async with factory() as session:
            user = await get_user_by_username(session, username)
            if user is None:
                typer.echo(f"Error: user '{username}' not found", err=True)
                raise typer.Exit(code=1)
            addresses = await list_address_responses(session, user.id)
            for address in addresses:
                marker = "*" if address.is_default else " "
                line2 = f", {address.line2}" if address.line2 else ""
                typer.echo(
                    f"{marker} {address.id}  {address.label:<20} "
                    f"{address.line1}{line2}, {address.city}, {address.state} {address.pincode}"
                )
            typer.echo(f"\nTotal: {len(addresses)}")
    finally:
        await dispose_engine()
