"""Tests for the Typer-based catalog CLI."""
from __future__ import annotations

import importlib
import json
import sys
from pathlib import Path
from typing import Any

import pytest
from fastapi.testclient import TestClient
from typer.testing import CliRunner

PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from backend.catalog_api.app import create_app  # noqa: E402
from backend.catalog_api.settings import CatalogSettings  # noqa: E402
from backend.catalog_cli.app import app as cli_app  # noqa: E402
from backend.catalog_cli import client as client_module  # noqa: E402

cli_app_module = importlib.import_module("backend.catalog_cli.app")


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def cli_client(tmp_path: Path) -> TestClient:
    """Provide a TestClient and patch the CLI HTTP client factory."""

    settings = CatalogSettings(
        database_url=f"sqlite:///{tmp_path / 'catalog.db'}",
        page_size=2,
        tmdb_api_key=None,
        tmdb_bearer_token=None,
        omdb_api_key=None,
    )
    test_client = TestClient(create_app(settings=settings))

    original_factory = client_module.create_client
    original_app_factory = cli_app_module.create_client

    def _factory(base_url: str, *, timeout: float = 30.0, transport: Any = None):  # type: ignore[override]
        return test_client

    client_module.create_client = _factory  # type: ignore[assignment]
    cli_app_module.create_client = _factory  # type: ignore[assignment]

    yield test_client

    client_module.create_client = original_factory  # type: ignore[assignment]
    cli_app_module.create_client = original_app_factory  # type: ignore[assignment]


def _seed(cli_client: TestClient, *names: str, **overrides: Any) -> list[dict[str, Any]]:
    created = []
    for name in names:
        payload = {
            "type": "Movie",
            "name": name,
            "desc": f"{name} description",
            "category": "Drama",
            "browseBy": "Hollywood",
            "language": "English",
            "year": 2020,
            "isPublished": True,
        }
        payload.update(overrides)
        response = cli_client.post("/movies", json=payload)
        assert response.status_code == 201, response.text
        created.append(response.json())
    return created


def test_cli_health_command_outputs_status(runner: CliRunner, cli_client: TestClient) -> None:
    result = runner.invoke(cli_app, ["health"])

    assert result.exit_code == 0
    assert "\"status\": \"ok\"" in result.output


def test_cli_lists_public_page(runner: CliRunner, cli_client: TestClient) -> None:
    _seed(cli_client, "Alpha", "Beta", "Gamma")

    result = runner.invoke(cli_app, ["movies", "list", "--page", "2"])

    assert result.exit_code == 0
    payload = json.loads(result.output)
    assert payload["page"] == 2
    assert payload["pages"] == 2
    assert [movie["name"] for movie in payload["movies"]] == ["Gamma"]


def test_cli_admin_listing_includes_drafts(runner: CliRunner, cli_client: TestClient) -> None:
    _seed(cli_client, "Visible")
    _seed(cli_client, "Draft", isPublished=False)

    public = json.loads(runner.invoke(cli_app, ["movies", "list"]).output)
    admin = json.loads(runner.invoke(cli_app, ["movies", "list", "--admin"]).output)

    assert public["totalMovies"] == 1
    assert admin["totalMovies"] == 2


def test_cli_list_filters_by_browse_tags(runner: CliRunner, cli_client: TestClient) -> None:
    _seed(cli_client, "West")
    _seed(cli_client, "East", browseBy="Bollywood")
    _seed(cli_client, "South", browseBy="Tollywood")

    result = runner.invoke(
        cli_app, ["movies", "list", "--browse-by", "Bollywood", "--browse-by", "Tollywood"]
    )

    assert result.exit_code == 0
    assert json.loads(result.output)["totalMovies"] == 2


def test_cli_show_by_slug(runner: CliRunner, cli_client: TestClient) -> None:
    _seed(cli_client, "The Matrix")

    result = runner.invoke(cli_app, ["movies", "show", "the-matrix"])

    assert result.exit_code == 0
    payload = json.loads(result.output)
    assert payload["name"] == "The Matrix"
    assert payload["viewCount"] == 1


def test_cli_show_missing_item_exits_non_zero(runner: CliRunner, cli_client: TestClient) -> None:
    result = runner.invoke(cli_app, ["movies", "show", "nope"])

    assert result.exit_code == 1
    assert "Error 404: Movie not found" in result.output


def test_cli_distinct_browse_tags(runner: CliRunner, cli_client: TestClient) -> None:
    _seed(cli_client, "One")
    _seed(cli_client, "Two", browseBy="Bollywood")

    result = runner.invoke(cli_app, ["movies", "distinct"])

    assert result.exit_code == 0
    assert json.loads(result.output) == ["Bollywood", "Hollywood"]


def test_cli_reorder_page(runner: CliRunner, cli_client: TestClient) -> None:
    first, second, _third = _seed(cli_client, "First", "Second", "Third")

    result = runner.invoke(
        cli_app, ["admin", "reorder", "--page", "1", second["id"], first["id"]]
    )

    assert result.exit_code == 0
    assert json.loads(result.output)["reorderedCount"] == 2
    listing = cli_client.get("/movies").json()
    assert [movie["id"] for movie in listing["movies"]] == [second["id"], first["id"]]


def test_cli_reorder_rejects_foreign_ids(runner: CliRunner, cli_client: TestClient) -> None:
    first, _second, third = _seed(cli_client, "First", "Second", "Third")

    result = runner.invoke(cli_app, ["admin", "reorder", "--page", "1", first["id"], third["id"]])

    assert result.exit_code == 1
    assert "orderedIds must contain exactly the IDs of this page" in result.output


def test_cli_move_to_page(runner: CliRunner, cli_client: TestClient) -> None:
    first, _second, third = _seed(cli_client, "First", "Second", "Third")

    result = runner.invoke(cli_app, ["admin", "move", "--to", "1", third["id"]])

    assert result.exit_code == 0
    payload = json.loads(result.output)
    assert payload["targetPage"] == 1
    assert payload["movedCount"] == 1
    listing = cli_client.get("/movies").json()
    assert [movie["id"] for movie in listing["movies"]] == [third["id"], first["id"]]


def test_cli_move_unknown_ids(runner: CliRunner, cli_client: TestClient) -> None:
    result = runner.invoke(cli_app, ["admin", "move", "--to", "1", "missing"])

    assert result.exit_code == 1
    assert "Error 404: Selected movies not found" in result.output


def test_cli_generate_slugs(runner: CliRunner, cli_client: TestClient) -> None:
    _seed(cli_client, "Alpha", "Beta")

    result = runner.invoke(cli_app, ["admin", "generate-slugs"])

    assert result.exit_code == 0
    assert json.loads(result.output)["updatedCount"] == 2


def test_cli_sync_credits_without_provider(runner: CliRunner, cli_client: TestClient) -> None:
    result = runner.invoke(cli_app, ["admin", "sync-credits", "--only-missing"])

    assert result.exit_code == 1
    assert "TMDb is not configured" in result.output


def test_cli_banner_add_and_list(runner: CliRunner, cli_client: TestClient) -> None:
    first, _second = _seed(cli_client, "First", "Second")
    draft = _seed(cli_client, "Draft", isPublished=False)[0]

    added = runner.invoke(cli_app, ["admin", "banner", first["id"], draft["id"]])
    public = runner.invoke(cli_app, ["movies", "banner"])
    admin = runner.invoke(cli_app, ["movies", "banner", "--admin"])

    assert added.exit_code == 0
    assert json.loads(added.output)["message"] == "Added to Banner"
    assert [movie["name"] for movie in json.loads(public.output)] == ["First"]
    assert len(json.loads(admin.output)) == 2

    removed = runner.invoke(cli_app, ["admin", "banner", "--remove", first["id"]])
    assert json.loads(removed.output)["message"] == "Removed from Banner"
    assert json.loads(runner.invoke(cli_app, ["movies", "banner"]).output) == []


def test_cli_related_and_random(runner: CliRunner, cli_client: TestClient) -> None:
    drama, _other = _seed(cli_client, "Drama One", "Drama Two")
    _seed(cli_client, "Laughs", category="Comedy")

    related = runner.invoke(cli_app, ["movies", "related", drama["slug"]])
    picks = runner.invoke(cli_app, ["movies", "random"])
    missing = runner.invoke(cli_app, ["movies", "related", "nope"])

    assert related.exit_code == 0
    assert [movie["name"] for movie in json.loads(related.output)] == ["Drama Two"]
    assert len(json.loads(picks.output)) == 3
    assert missing.exit_code == 1
    assert "Error 404: Movie not found" in missing.output


def test_cli_actor_filmography(runner: CliRunner, cli_client: TestClient) -> None:
    _seed(cli_client, "The Matrix", casts=[{"name": "Keanu Reeves"}])

    result = runner.invoke(cli_app, ["actor", "keanu-reeves"])
    missing = runner.invoke(cli_app, ["actor", "nobody"])

    assert result.exit_code == 0
    payload = json.loads(result.output)
    assert payload["actor"]["name"] == "Keanu Reeves"
    assert [movie["name"] for movie in payload["movies"]] == ["The Matrix"]
    assert missing.exit_code == 1
    assert "Error 404: Actor not found" in missing.output
