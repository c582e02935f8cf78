"""CLI entrypoint (Typer).

- `micelion plan "<idea>" [--lang es] [--save --user <id>]` prints the
  validated plan as JSON, optionally storing it as a project
- `micelion serve` runs the API
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Optional

import typer

from micelion.agent.planner import PlanPipeline
from micelion.config import get_settings
from micelion.exceptions import PlanGenerationError
from micelion.schemas import Plan

app = typer.Typer(help="Micelion learning-plan generator.")


async def _generate(
    pipeline: PlanPipeline,
    idea: str,
    lang: str,
    user: Optional[str],
) -> tuple[Plan, Optional[str]]:
    try:
        plan = await pipeline.generate_plan(idea, lang)
    finally:
        await pipeline.close()

    if user is None:
        return plan, None

    from micelion.database import repository
    from micelion.database.session import close_db, get_session, init_db

    try:
        await init_db()
        async with get_session() as db:
            project, _ = await repository.save_plan(db, plan, user)
    finally:
        await close_db()
    return plan, project.id


@app.command()
def plan(
    idea: str = typer.Argument(..., help="Free-text learning goal"),
    lang: str = typer.Option("en", "--lang", "-l", help="Language of the idea: en or es"),
    save: bool = typer.Option(False, "--save", help="Store the plan as a project"),
    user: Optional[str] = typer.Option(None, "--user", help="Owner of the stored project"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Generate a learning plan and print it as JSON."""
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if lang not in ("en", "es"):
        raise typer.BadParameter("lang must be 'en' or 'es'", param_hint="--lang")
    if save and not user:
        raise typer.BadParameter("--save requires --user", param_hint="--user")

    pipeline = PlanPipeline.from_settings(get_settings())

    try:
        result, project_id = asyncio.run(_generate(pipeline, idea, lang, user if save else None))
    except PlanGenerationError as e:
        typer.echo(f"AI Error ({e.kind.value}): {e.message}", err=True)
        raise typer.Exit(code=1)

    typer.echo(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
    if project_id:
        typer.echo(f"Saved as project {project_id}", err=True)


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, help="Bind address"),
    port: Optional[int] = typer.Option(None, help="Bind port"),
):
    """Run the API server."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "micelion.api.main:app",
        host=host or settings.api_host,
        port=port or settings.api_port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    app()
