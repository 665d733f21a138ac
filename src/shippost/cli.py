"""CLI entry point for ShipPost."""

import asyncio
from pathlib import Path
from typing import Optional

import typer

from shippost.config import Settings, get_settings
from shippost.container import build_container
from shippost.core import NotFoundError
from shippost.observability import setup_logging

app = typer.Typer(help="Turn pushed commits into reviewed build-in-public posts.", no_args_is_help=True)


def _load(config: Optional[Path]) -> Settings:
    settings = get_settings(config)
    setup_logging(settings)
    return settings


def _require_persistent_storage(settings: Settings) -> None:
    if settings.storage.backend == "memory":
        print("❌ storage.backend is memory: this process cannot see commits received by the server.")
        print("   Set storage.backend: yaml in config.yaml, or call POST /webhooks/digest on the running API.")
        raise typer.Exit(code=1)


def _print_credentials(settings: Settings) -> None:
    print("\n🔑 Credentials:")
    if settings.anthropic_api_key:
        print("  ✓ ANTHROPIC_API_KEY - post generation through Claude")
    else:
        print("  ✗ ANTHROPIC_API_KEY - missing (generation will fail)")

    if settings.slack_bot_token:
        print(f"  ✓ SLACK_BOT_TOKEN - drafts go to #{settings.default_channel}")
    else:
        print("  ⚠️  SLACK_BOT_TOKEN - missing (drafts only reachable through the API)")

    if settings.post_bridge_api_key:
        print("  ✓ POST_BRIDGE_API_KEY - approved posts get published")
    else:
        print("  ⚠️  POST_BRIDGE_API_KEY - missing (direct publishing will fail)")


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", help="Bind address"),
    port: int = typer.Option(3000, help="Bind port"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
) -> None:
    """Start the HTTP API (webhooks, projects, drafts, Slack interactions)."""
    import uvicorn

    settings = _load(None)

    print("\n" + "=" * 70)
    print("🚀 SHIPPOST API")
    print("=" * 70)
    _print_credentials(settings)
    print(f"\n📡 Webhooks: http://{host}:{port}/webhooks/github, /webhooks/gitlab")
    print(f"📖 API docs: http://{host}:{port}/docs\n")

    uvicorn.run(
        "shippost.api.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level=settings.logging.level.lower(),
    )


@app.command()
def digest(config: Optional[Path] = typer.Option(None, help="Path to config.yaml")) -> None:
    """Process today's batched commits for every digest and smart project."""
    settings = _load(config)
    _require_persistent_storage(settings)
    asyncio.run(_run_digest(settings))


async def _run_digest(settings: Settings) -> None:
    print("\n" + "=" * 70)
    print("🚀 SHIPPOST DAILY DIGEST")
    print("=" * 70)
    _print_credentials(settings)

    container = build_container(settings)
    await container.startup()

    result = await container.digest.run()

    print(f"\nFound {result['projects']} active projects\n")
    for project_id, outcome in result["results"].items():
        print(f"📦 {project_id}")
        if "skipped" in outcome:
            print(f"   ⏭️  {outcome['skipped']}, skipping")
        elif "error" in outcome:
            print(f"   ❌ Error: {outcome['error']}")
        elif outcome["commits"] == 0:
            print("   ⏭️  No new commits, skipping")
        else:
            print(f"   {outcome['commits']} commits, ✅ {outcome['postsGenerated']} posts generated")

    print("\n" + "=" * 70)
    if result["postsGenerated"]:
        print(f"✨ Daily digest complete: {result['postsGenerated']} posts sent for review")
    else:
        print("📭 No posts to generate today")
    print("=" * 70 + "\n")


@app.command()
def generate(
    project_id: str = typer.Argument(..., help="Project id"),
    config: Optional[Path] = typer.Option(None, help="Path to config.yaml"),
) -> None:
    """Generate drafts now from a project's unprocessed commits."""
    settings = _load(config)
    _require_persistent_storage(settings)
    asyncio.run(_run_generate(settings, project_id))


async def _run_generate(settings: Settings, project_id: str) -> None:
    container = build_container(settings)
    await container.startup()

    print(f"\n🧠 Generating posts for {project_id}...")
    try:
        result = await container.pipeline.generate_for_project(project_id)
    except NotFoundError as e:
        print(f"❌ {e}")
        raise typer.Exit(code=1)
    if not result["success"]:
        print(f"📭 {result['message']}")
        return

    print(f"✅ {result['postsGenerated']} drafts from {result['commitsProcessed']} commits\n")
    for draft in result["drafts"]:
        print(f"  • {draft.platform} ({len(draft.content)} chars) [{draft.id}]")
        print(f"    {draft.content}\n")


@app.command()
def accounts(config: Optional[Path] = typer.Option(None, help="Path to config.yaml")) -> None:
    """List social accounts connected to Post-Bridge, for post_bridge.account_ids."""
    asyncio.run(_run_accounts(_load(config)))


async def _run_accounts(settings: Settings) -> None:
    container = build_container(settings)
    found = await container.publisher.get_accounts()
    print(f"\n🔗 {len(found)} connected accounts:")
    for account in found:
        print(f"  • {account.get('platform')}: {account.get('username')} (id {account.get('id')})")
    print()


if __name__ == "__main__":
    app()
