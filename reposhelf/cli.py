from typing import Any, Dict, List, NoReturn, Optional

import typer

from admin.app.errors import CatalogError
from admin.app.services import articles, catalog, categories, curation, github_api
from admin.app.services import item_storage as store

app = typer.Typer(help="reposhelf: curate GitHub repos and articles into a static catalog")

MIN_RATE_REMAINING = 10


def _fail(message: str) -> NoReturn:
    typer.secho(f"error: {message}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1)


def _fmt_num(n: Optional[int]) -> str:
    n = n or 0
    return f"{n / 1000:.1f}k" if n >= 1000 else str(n)


def _fetch_info(url: str) -> Dict[str, Any]:
    if github_api.parse_github_url(url):
        info = github_api.get_repo_info(url)
        info["type"] = "repo"
    else:
        info = articles.get_article_info(url)
        info["type"] = "article"
    return info


def _overrides(**fields: Any) -> Dict[str, Any]:
    return {k: v for k, v in fields.items() if v is not None}


@app.command()
def add(
    url: str = typer.Argument(..., help="GitHub repository or article URL"),
    name: Optional[str] = typer.Option(None, "--name"),
    name_en: Optional[str] = typer.Option(None, "--name-en"),
    summary: Optional[str] = typer.Option(None, "--summary"),
    description: Optional[str] = typer.Option(None, "--description"),
    category: Optional[str] = typer.Option(None, "--category", "-c"),
    tag: Optional[List[str]] = typer.Option(None, "--tag", "-t", help="repeatable; commas allowed"),
    image: Optional[List[str]] = typer.Option(None, "--image", "-i", help="URL or local path, repeatable"),
    notes: Optional[str] = typer.Option(None, "--notes"),
    no_content: bool = typer.Option(False, "--no-content", help="skip README/article fetch"),
):
    """Add a repository or article to the catalog."""
    try:
        info = _fetch_info(url)
        typer.echo(f"{info['type']}: {info.get('name')} ({info['id']})")

        sources = list(image or [])
        suggested = info.pop("images", None) or []
        info.pop("thumbnail", None)
        if not sources and info["type"] == "article":
            sources = list(suggested)

        if category is None:
            known = categories.category_ids()
            category = typer.prompt(f"category [{', '.join(known)}]")
            if category not in known:
                typer.secho(f"note: '{category}' is not a known category", fg=typer.colors.YELLOW)

        data = {
            **info,
            **_overrides(
                name=name,
                nameEn=name_en,
                summary=summary,
                description=description,
                notes=notes,
            ),
            "category": category,
            "tags": ",".join(tag or []),
        }
        record = curation.add_item(data, sources, fetch_content=not no_content)
    except (CatalogError, ValueError, OSError) as e:
        _fail(str(e))

    typer.secho(f"added {record.id} ({len(record.images)} image(s))", fg=typer.colors.GREEN)


@app.command()
def update(
    item_id: str = typer.Argument(..., metavar="ID"),
    name: Optional[str] = typer.Option(None, "--name"),
    name_en: Optional[str] = typer.Option(None, "--name-en"),
    summary: Optional[str] = typer.Option(None, "--summary"),
    description: Optional[str] = typer.Option(None, "--description"),
    category: Optional[str] = typer.Option(None, "--category", "-c"),
    tag: Optional[List[str]] = typer.Option(None, "--tag", "-t", help="replaces the tag list"),
    notes: Optional[str] = typer.Option(None, "--notes"),
    add_image: Optional[List[str]] = typer.Option(None, "--add-image", "-i"),
    archived: Optional[bool] = typer.Option(None, "--archive/--unarchive"),
    refetch_content: bool = typer.Option(False, "--refetch-content"),
):
    """Update fields of an existing item; new images are appended."""
    updates = _overrides(
        name=name,
        nameEn=name_en,
        summary=summary,
        description=description,
        category=category,
        notes=notes,
        archived=archived,
    )
    if tag is not None:
        updates["tags"] = ",".join(tag)
    try:
        item = curation.update_item(
            item_id, updates, list(add_image or []), refetch_content=refetch_content
        )
    except (CatalogError, ValueError, OSError) as e:
        _fail(str(e))
    typer.secho(
        f"updated {item_id} ({len(item.get('images') or [])} image(s))", fg=typer.colors.GREEN
    )


@app.command()
def delete(
    item_id: str = typer.Argument(..., metavar="ID"),
    yes: bool = typer.Option(False, "--yes", "-y", help="do not ask for confirmation"),
):
    """Delete an item with its images and index entry."""
    if not yes:
        typer.confirm(f"delete {item_id}?", abort=True)
    try:
        existed = curation.delete_item(item_id)
    except (CatalogError, OSError) as e:
        _fail(str(e))
    typer.echo(f"deleted {item_id}" if existed else f"{item_id} was not in the catalog")


@app.command("list")
def list_items():
    """List catalog entries, most recent first."""
    try:
        ids = catalog.list_ids()
    except (OSError, ValueError) as e:
        _fail(str(e))
    for item_id in ids:
        try:
            item = store.read_item(item_id)
        except CatalogError:
            typer.echo(f"{item_id}\t<missing record>")
            continue
        flag = " [archived]" if item.get("archived") else ""
        typer.echo(f"{item_id}\t{item.get('type', '?')}\t{item.get('name', '')}{flag}")
    typer.echo(f"{len(ids)} item(s)")


@app.command("batch-update")
def batch_update():
    """Refresh GitHub stats for every repository item."""
    rate = github_api.check_rate_limit()
    typer.echo(f"API rate limit: {rate['remaining']}/{rate['limit']} (reset {rate['reset']})")
    if rate["remaining"] < MIN_RATE_REMAINING:
        _fail("GitHub rate limit nearly exhausted; set GITHUB_TOKEN and retry later")

    try:
        for event in curation.batch_refresh():
            kind = event["type"]
            if kind == "start":
                typer.echo(f"{event['total']} repo(s) to refresh")
            elif kind == "progress":
                head = f"[{event['current']}/{event['total']}] {event['name']}"
                if event["success"]:
                    typer.echo(f"{head} ok stars={_fmt_num(event.get('stars'))} forks={_fmt_num(event.get('forks'))}")
                else:
                    typer.echo(f"{head} failed: {event.get('error')}")
            elif kind == "done":
                typer.echo(f"done: {event['updated']} updated, {event['failed']} failed")
    except (CatalogError, OSError, ValueError) as e:
        _fail(str(e))


@app.command()
def serve(
    port: Optional[int] = typer.Option(None, "--port", "-p"),
    host: str = typer.Option("0.0.0.0", "--host"),
):
    """Run the admin HTTP service."""
    from admin.app.main import run

    run(port=port, host=host)


@app.command()
def version():
    """Show version."""
    import importlib.metadata as md

    print(md.version("reposhelf"))


if __name__ == "__main__":
    app()
