"""Command line interface for the Catalog API."""
from __future__ import annotations

import json
from typing import List, Optional

import httpx
import typer

from .client import create_client


DEFAULT_API_BASE = "http://localhost:8000"

app = typer.Typer(help="Interact with the catalog backend service.")
movies_app = typer.Typer(help="Browse the public catalog.")
app.add_typer(movies_app, name="movies")
admin_app = typer.Typer(help="Curate ordering, slugs and metadata.")
app.add_typer(admin_app, name="admin")


def _api_base_option() -> typer.Option:
    return typer.Option(
        DEFAULT_API_BASE,
        "--api-base",
        help="Base URL for the Catalog API service.",
        show_default=True,
        envvar="CATALOG_API_BASE",
    )


def _echo_response(response: httpx.Response) -> None:
    """Pretty-print a JSON body, or report the API error and exit non-zero."""

    if response.status_code >= 400:
        try:
            detail = response.json().get("detail") or response.text
        except ValueError:
            detail = response.text
        typer.echo(f"Error {response.status_code}: {detail}", err=True)
        raise typer.Exit(code=1)
    typer.echo(json.dumps(response.json(), indent=2, ensure_ascii=False))


@app.command()
def health(api_base: str = _api_base_option()) -> None:
    """Call the /health endpoint and pretty-print the response."""

    with create_client(api_base) as client:
        _echo_response(client.get("/health"))


@movies_app.command("list")
def list_movies(
    page: int = typer.Option(1, min=1, help="Page number starting at 1."),
    category: Optional[str] = typer.Option(None, help="Filter by category."),
    language: Optional[str] = typer.Option(None, help="Filter by language."),
    year: Optional[int] = typer.Option(None, help="Filter by release year."),
    browse_by: Optional[List[str]] = typer.Option(
        None,
        "--browse-by",
        help="Browse tag filter; repeat to match any of several tags.",
    ),
    search: Optional[str] = typer.Option(None, help="Case-insensitive name prefix."),
    item_type: Optional[str] = typer.Option(None, "--type", help="Movie or Series."),
    admin: bool = typer.Option(
        False,
        "--admin/--public",
        help="Use the admin listing, which includes unpublished drafts.",
        show_default=True,
    ),
    api_base: str = _api_base_option(),
) -> None:
    """Display one page of the catalog in display order."""

    params: dict[str, object] = {"pageNumber": page}
    if category:
        params["category"] = category
    if language:
        params["language"] = language
    if year is not None:
        params["year"] = year
    if browse_by:
        params["browseBy"] = ",".join(browse_by)
    if search:
        params["search"] = search
    if item_type:
        params["type"] = item_type

    path = "/movies/admin" if admin else "/movies"
    with create_client(api_base) as client:
        _echo_response(client.get(path, params=params))


@movies_app.command("show")
def show_movie(
    id_or_slug: str = typer.Argument(..., help="Item identifier or slug."),
    admin: bool = typer.Option(
        False,
        "--admin/--public",
        help="Read through the admin endpoint (no view count, drafts visible).",
        show_default=True,
    ),
    api_base: str = _api_base_option(),
) -> None:
    """Display a single catalog item."""

    path = f"/movies/admin/{id_or_slug}" if admin else f"/movies/{id_or_slug}"
    with create_client(api_base) as client:
        _echo_response(client.get(path))


@movies_app.command("distinct")
def distinct_browse_by(api_base: str = _api_base_option()) -> None:
    """List the distinct browse tags of published items."""

    with create_client(api_base) as client:
        _echo_response(client.get("/movies/browse-by-distinct"))


@movies_app.command("related")
def related_movies(
    id_or_slug: str = typer.Argument(..., help="Item identifier or slug."),
    limit: Optional[int] = typer.Option(None, help="Maximum titles to return."),
    admin: bool = typer.Option(
        False, "--admin/--public", help="Include unpublished drafts.", show_default=True
    ),
    api_base: str = _api_base_option(),
) -> None:
    """List titles sharing a category with the given one."""

    path = f"/movies/admin/related/{id_or_slug}" if admin else f"/movies/related/{id_or_slug}"
    params = {"limit": limit} if limit is not None else None
    with create_client(api_base) as client:
        _echo_response(client.get(path, params=params))


@movies_app.command("random")
def random_movies(api_base: str = _api_base_option()) -> None:
    """Show a handful of random published titles."""

    with create_client(api_base) as client:
        _echo_response(client.get("/movies/random/all"))


@movies_app.command("banner")
def banner(
    limit: Optional[int] = typer.Option(None, help="Maximum titles to return."),
    admin: bool = typer.Option(
        False, "--admin/--public", help="Include unpublished drafts.", show_default=True
    ),
    api_base: str = _api_base_option(),
) -> None:
    """Show the banner titles, most recently featured first."""

    path = "/movies/admin/banner" if admin else "/movies/banner"
    params = {"limit": limit} if limit is not None else None
    with create_client(api_base) as client:
        _echo_response(client.get(path, params=params))


@app.command()
def actor(
    slug: str = typer.Argument(..., help="Person slug, e.g. keanu-reeves."),
    page: int = typer.Option(1, min=1, help="Page number starting at 1."),
    limit: Optional[int] = typer.Option(None, help="Titles per page."),
    api_base: str = _api_base_option(),
) -> None:
    """Show one page of a person's published filmography."""

    params: dict[str, object] = {"page": page}
    if limit is not None:
        params["limit"] = limit
    with create_client(api_base) as client:
        _echo_response(client.get(f"/actors/{slug}", params=params))


@admin_app.command("reorder")
def reorder_page(
    page: int = typer.Option(..., min=1, help="Page whose items are being reordered."),
    ordered_ids: List[str] = typer.Argument(..., help="Every id on the page, in the new order."),
    api_base: str = _api_base_option(),
) -> None:
    """Reorder the items of one page."""

    payload = {"pageNumber": page, "orderedIds": ordered_ids}
    with create_client(api_base) as client:
        _echo_response(client.post("/movies/admin/reorder-page", json=payload))


@admin_app.command("move")
def move_to_page(
    target_page: int = typer.Option(..., "--to", min=1, help="Destination page."),
    movie_ids: List[str] = typer.Argument(..., help="Identifiers of the items to move."),
    api_base: str = _api_base_option(),
) -> None:
    """Move items to the start of another page."""

    payload = {"targetPage": target_page, "movieIds": movie_ids}
    with create_client(api_base) as client:
        _echo_response(client.post("/movies/admin/move-to-page", json=payload))


@admin_app.command("generate-slugs")
def generate_slugs(api_base: str = _api_base_option()) -> None:
    """Regenerate slugs for the whole catalog."""

    with create_client(api_base) as client:
        _echo_response(client.post("/movies/admin/generate-slugs"))


def _sync_payload(
    movie_ids: Optional[List[str]],
    only_missing: bool,
    force: bool,
    limit: Optional[int],
) -> dict[str, object]:
    payload: dict[str, object] = {"onlyMissing": only_missing, "force": force}
    if movie_ids:
        payload["movieIds"] = movie_ids
    if limit is not None:
        payload["limit"] = limit
    return payload


@admin_app.command("sync-credits")
def sync_credits(
    movie_ids: Optional[List[str]] = typer.Argument(None, help="Optional item ids to restrict to."),
    only_missing: bool = typer.Option(
        False, "--only-missing/--all", help="Only items without cached cast.", show_default=True
    ),
    force: bool = typer.Option(False, "--force/--respect-ttl", help="Ignore the cache TTL."),
    limit: Optional[int] = typer.Option(None, help="Maximum items to refresh (capped server-side)."),
    cast_limit: Optional[int] = typer.Option(None, help="Maximum cast members to store."),
    api_base: str = _api_base_option(),
) -> None:
    """Refresh TMDb cast and director data."""

    payload = _sync_payload(movie_ids, only_missing, force, limit)
    if cast_limit is not None:
        payload["castLimit"] = cast_limit
    with create_client(api_base) as client:
        _echo_response(client.post("/movies/admin/tmdb/sync-credits", json=payload))


@admin_app.command("sync-ratings")
def sync_ratings(
    movie_ids: Optional[List[str]] = typer.Argument(None, help="Optional item ids to restrict to."),
    only_missing: bool = typer.Option(
        False, "--only-missing/--all", help="Only items without ratings.", show_default=True
    ),
    force: bool = typer.Option(False, "--force/--respect-ttl", help="Ignore the cache TTL."),
    limit: Optional[int] = typer.Option(None, help="Maximum items to refresh (capped server-side)."),
    api_base: str = _api_base_option(),
) -> None:
    """Refresh IMDb and Rotten Tomatoes ratings."""

    payload = _sync_payload(movie_ids, only_missing, force, limit)
    with create_client(api_base) as client:
        _echo_response(client.post("/movies/admin/ratings/sync", json=payload))


@admin_app.command("banner")
def set_banner(
    movie_ids: List[str] = typer.Argument(..., help="Identifiers of the items to update."),
    remove: bool = typer.Option(
        False, "--remove/--add", help="Take the titles off the banner.", show_default=True
    ),
    api_base: str = _api_base_option(),
) -> None:
    """Feature titles in the homepage banner, or remove them."""

    payload = {"movieIds": movie_ids, "value": not remove}
    with create_client(api_base) as client:
        _echo_response(client.post("/movies/admin/banner", json=payload))
