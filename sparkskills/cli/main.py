"""CLI commands for SparkSkills."""

import asyncio
import json
import logging
import time

import typer
from rich.console import Console
from rich.table import Table

from sparkskills import __version__

app = typer.Typer(
    name="sparkskills",
    help="SparkSkills - a self-improving skill library for LLM conversations",
    no_args_is_help=True,
)
skills_app = typer.Typer(help="Manage the skill library", no_args_is_help=True)
app.add_typer(skills_app, name="skills")

console = Console()


def version_callback(value: bool):
    if value:
        console.print(f"SparkSkills v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-v", callback=version_callback, is_eager=True
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Log pipeline activity"),
):
    """SparkSkills - learn reusable skills from conversations."""
    if verbose:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )


# ============================================================================
# Factories
# ============================================================================


def create_provider(config):
    """Instantiate the correct completion provider from config.

    Uses lazy imports so a missing SDK only errors when that provider is selected.
    """
    from sparkskills.providers import OpenAICompatibleProvider

    api_key = config.get_api_key()
    api_base = config.get_api_base()
    model = config.agent.model

    if config.agent.provider == "anthropic":
        from sparkskills.providers.anthropic import AnthropicProvider

        if model:
            return AnthropicProvider(api_key=api_key, api_base=api_base, default_model=model)
        return AnthropicProvider(api_key=api_key, api_base=api_base)
    if model:
        return OpenAICompatibleProvider(api_key=api_key, api_base=api_base, default_model=model)
    return OpenAICompatibleProvider(api_key=api_key, api_base=api_base)


def create_store(config):
    """Skill store on the configured local storage directory."""
    from sparkskills.skills.store import SkillStore
    from sparkskills.storage import LocalBlobStore

    return SkillStore(LocalBlobStore(config.storage_path))


def create_pipeline(config, store, provider=None):
    from sparkskills.skills.reflection import ReflectionPipeline

    return ReflectionPipeline(
        store,
        provider,
        model=config.reflection.model,
        max_tokens=config.reflection.max_tokens,
        demo_mode=config.skills.demo_mode,
        context_ttl=config.context_ttl,
    )


def _require_provider(config):
    if not config.get_api_key():
        console.print("[red]Error: No API key configured.[/red]")
        console.print("Run [cyan]sparkskills onboard[/cyan] to set up a provider.")
        raise typer.Exit(1)
    return create_provider(config)


def _fail(action: str, error: Exception):
    console.print(f"[red]Failed to {action}: {error}[/red]")
    raise typer.Exit(1)


# ============================================================================
# Skill Library Commands
# ============================================================================


@skills_app.command("list")
def list_skills(
    category: str = typer.Option(
        None, "--category", "-c", help="general, earnings, screening or meta"
    ),
):
    """List skills, optionally filtered by category."""
    from sparkskills.config import load_config

    store = create_store(load_config())
    try:
        skills = asyncio.run(store.list_skills(category))
    except Exception as e:
        _fail("list skills", e)

    table = Table(title=f"Skills ({category or 'all'}): {len(skills)}")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Category")
    table.add_column("Retrieved", justify="right")
    table.add_column("Helped", justify="right")
    table.add_column("Not helped", justify="right")
    for skill in skills:
        table.add_row(
            skill.id,
            skill.name,
            skill.category.value,
            str(skill.times_retrieved),
            str(skill.times_helped),
            str(skill.times_not_helped),
        )
    console.print(table)


@skills_app.command("show")
def show_skill(skill_id: str = typer.Argument(..., help="Skill ID")):
    """Show a single skill as JSON."""
    from sparkskills.config import load_config

    store = create_store(load_config())
    try:
        skill = asyncio.run(store.get_skill(skill_id))
    except Exception as e:
        _fail("get skill", e)

    if skill is None:
        console.print(f"[red]Skill not found: {skill_id}[/red]")
        raise typer.Exit(1)
    console.print_json(json.dumps(skill.to_dict()))


@skills_app.command("stats")
def stats():
    """Show skill library statistics."""
    from sparkskills.config import load_config

    store = create_store(load_config())
    try:
        data = asyncio.run(store.get_stats())
    except Exception as e:
        _fail("get statistics", e)
    console.print_json(json.dumps(data))


@skills_app.command("reset")
def reset(yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation")):
    """Delete every skill and restore the seed skills."""
    from sparkskills.config import load_config

    if not yes:
        typer.confirm("This deletes all learned skills. Continue?", abort=True)

    store = create_store(load_config())
    try:
        seeds = asyncio.run(store.reset_to_seeds())
    except Exception as e:
        _fail("reset skills", e)
    console.print(f"[green]>[/green] Skills reset to seed state ({len(seeds)} skills)")


@skills_app.command("init")
def init():
    """Seed the library if it is empty."""
    from sparkskills.config import load_config

    store = create_store(load_config())
    try:
        seeded = asyncio.run(store.initialize_skills())
    except Exception as e:
        _fail("initialize skills", e)

    if seeded:
        console.print("[green]>[/green] Skills initialized with seeds")
    else:
        console.print("[dim]Skill library already initialized[/dim]")


@skills_app.command("delete")
def delete(skill_id: str = typer.Argument(..., help="Skill ID")):
    """Delete a skill by ID."""
    from sparkskills.config import load_config

    store = create_store(load_config())
    try:
        skill = asyncio.run(store.delete_skill(skill_id))
    except Exception as e:
        _fail(f"delete skill {skill_id}", e)

    if skill is None:
        console.print(f"[red]Skill not found: {skill_id}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]>[/green] Skill {skill.name} deleted")


@skills_app.command("create-demo")
def create_demo():
    """Create the fiscal-year normalization demo skill."""
    from sparkskills.config import load_config
    from sparkskills.skills.seeds import demo_skill

    store = create_store(load_config())
    skill = demo_skill()
    try:
        asyncio.run(store.save_skill(skill))
    except Exception as e:
        _fail("create demo skill", e)
    console.print(f"[green]>[/green] Demo skill created: {skill.name} ({skill.id})")


# ============================================================================
# Pipeline Commands
# ============================================================================


@app.command()
def retrieve(message: str = typer.Argument(..., help="Message to retrieve skills for")):
    """Show which skills would be injected for a message."""
    from sparkskills.config import load_config
    from sparkskills.skills.injection import augment_message, estimate_tokens
    from sparkskills.skills.retrieval import SkillRetriever

    config = load_config()
    retriever = SkillRetriever(
        create_store(config),
        max_relevant=config.skills.max_relevant,
        token_budget=config.skills.token_budget,
    )

    async def run():
        result = await retriever.retrieve_skills_for_message(message)
        await retriever.wait_for_background()
        return result

    try:
        result = asyncio.run(run())
    except Exception as e:
        _fail("retrieve skills", e)

    console.print(f"General:  {', '.join(s.name for s in result.general) or '-'}")
    console.print(f"Relevant: {', '.join(s.name for s in result.relevant) or '-'}")
    console.print(
        f"Retrieved {len(result.skill_ids)} skills, "
        f"{len(result.formatted)} chars (~{estimate_tokens(result.formatted)} tokens)\n"
    )
    console.print(augment_message(message, result.formatted), markup=False)


@app.command()
def reflect(
    user_message: str = typer.Option(
        "Compare NVDA and AMD gross margins", "--user-message", "-u"
    ),
    assistant_response: str = typer.Option(
        "NVDA gross margin is 75%, AMD is 50%", "--assistant-response", "-a"
    ),
):
    """Run reflection on a simulated conversation."""
    from sparkskills.config import load_config

    config = load_config()
    provider = _require_provider(config)
    store = create_store(config)
    pipeline = create_pipeline(config, store, provider)
    conversation_id = f"test-{int(time.time() * 1000)}"

    async def run():
        general = await store.list_skills("general")
        await pipeline.store_retrieved_skills(conversation_id, [s.id for s in general])
        await pipeline.update_conversation_message(conversation_id, user_message)
        await pipeline.update_conversation_response(conversation_id, assistant_response)
        return await pipeline.trigger_reflection(conversation_id)

    try:
        result = asyncio.run(run())
    except Exception as e:
        _fail("run reflection", e)

    if result is None:
        console.print("[yellow]Reflection skipped (no skill index). "
                      "Run [cyan]sparkskills skills init[/cyan] first.[/yellow]")
        raise typer.Exit(1)
    console.print_json(result.model_dump_json())


@app.command()
def conversations():
    """Show pending conversation contexts."""
    from sparkskills.config import load_config

    config = load_config()
    pipeline = create_pipeline(config, create_store(config))

    async def run():
        contexts = []
        for conversation_id in await pipeline.get_all_conversation_ids():
            context = await pipeline.get_conversation_context(conversation_id)
            if context is not None:
                contexts.append(context)
        return contexts

    try:
        contexts = asyncio.run(run())
    except Exception as e:
        _fail("list conversations", e)

    if not contexts:
        console.print("[dim]No active conversation contexts[/dim]")
        return

    table = Table(title=f"Conversation contexts: {len(contexts)}")
    table.add_column("ID", style="cyan")
    table.add_column("Skills", justify="right")
    table.add_column("Message")
    table.add_column("Response")
    for context in contexts:
        table.add_row(
            context.conversation_id,
            str(len(context.retrieved_skill_ids)),
            context.user_message[:50],
            (context.assistant_response or "")[:50],
        )
    console.print(table)


@app.command()
def cleanup():
    """Delete conversation contexts older than the TTL."""
    from sparkskills.config import load_config

    config = load_config()
    pipeline = create_pipeline(config, create_store(config))
    try:
        removed = asyncio.run(pipeline.cleanup_old_contexts())
    except Exception as e:
        _fail("clean up contexts", e)
    console.print(f"[green]>[/green] Removed {removed} expired contexts")


@app.command()
def chat(
    message: str = typer.Option(None, "--message", "-m", help="Message to send"),
    conversation_id: str = typer.Option(None, "--conversation", "-c", help="Conversation ID"),
    capture: bool = typer.Option(False, "--capture", help="Print captured model traffic"),
):
    """Chat with the model, using and learning skills."""
    from sparkskills.agent import AgentLoop
    from sparkskills.config import load_config
    from sparkskills.skills.diagnostics import MessageCapture
    from sparkskills.skills.retrieval import SkillRetriever

    config = load_config()
    provider = _require_provider(config)
    store = create_store(config)

    agent = AgentLoop(
        store=store,
        provider=provider,
        model=config.agent.model or None,
        retriever=SkillRetriever(
            store,
            max_relevant=config.skills.max_relevant,
            token_budget=config.skills.token_budget,
        ),
        pipeline=create_pipeline(config, store, provider),
        capture=MessageCapture(enabled=capture),
        skills_enabled=config.skills.enabled,
        reflect=config.reflection.enabled,
    )

    async def run_once():
        if config.skills.enabled:
            await store.initialize_skills()
        try:
            return await agent.process_direct(message, conversation_id)
        finally:
            await agent.close()

    async def run_interactive():
        if config.skills.enabled:
            await store.initialize_skills()
        try:
            while True:
                try:
                    user_input = console.input("[bold blue]You:[/bold blue] ")
                except (KeyboardInterrupt, EOFError):
                    console.print("\nGoodbye!")
                    break
                if not user_input.strip():
                    continue
                response = await agent.process_direct(user_input)
                console.print(f"\n{response}\n", markup=False)
        finally:
            await agent.close()

    if message:
        response = asyncio.run(run_once())
        console.print(f"\n{response}", markup=False)
    else:
        console.print("Interactive mode (Ctrl+C to exit)\n")
        asyncio.run(run_interactive())

    if capture:
        for captured in agent.capture.messages():
            console.print(f"[dim]{captured.timestamp.isoformat()} {captured.direction.value}[/dim]")
            console.print(captured.raw, markup=False)


# ============================================================================
# Setup Commands
# ============================================================================


@app.command()
def onboard():
    """Choose a provider and model, and store the API key."""
    from sparkskills.cli.providers import PROVIDERS
    from sparkskills.config import Config, get_config_path, load_config, save_config

    config_path = get_config_path()
    config = load_config() if config_path.exists() else Config()

    console.print("[bold]Step 1:[/bold] Choose your LLM provider\n")
    for i, p in enumerate(PROVIDERS, 1):
        console.print(f"  [cyan]{i}[/cyan]. {p.label}")
    console.print()

    provider_idx = typer.prompt("Select provider", type=int, default=1) - 1
    if not 0 <= provider_idx < len(PROVIDERS):
        console.print("[red]Invalid selection.[/red]")
        raise typer.Exit(1)
    provider = PROVIDERS[provider_idx]
    config.agent.provider = provider.key

    console.print("\n[bold]Step 2:[/bold] Choose a model\n")
    for i, m in enumerate(provider.models, 1):
        console.print(f"  [cyan]{i}[/cyan]. {m.label}  [dim]{m.description}[/dim]")
    console.print()

    model_idx = typer.prompt("Select model", type=int, default=1) - 1
    if not 0 <= model_idx < len(provider.models):
        console.print("[red]Invalid selection.[/red]")
        raise typer.Exit(1)
    config.agent.model = provider.models[model_idx].id
    if provider.reflection_model:
        config.reflection.model = provider.reflection_model

    console.print("\n[bold]Step 3:[/bold] Enter your API key\n")
    console.print(f"  [dim]Get one at {provider.key_url_hint}[/dim]\n")
    api_key = typer.prompt("API key", hide_input=True)
    if not api_key.strip():
        console.print("[red]API key cannot be empty.[/red]")
        raise typer.Exit(1)
    getattr(config.providers, provider.key).api_key = api_key.strip()

    save_config(config)
    console.print(f"[green]>[/green] Config saved to {config_path}")
    console.print("\nTry it out: [cyan]sparkskills chat -m \"Compare NVDA and AMD revenue\"[/cyan]")


@app.command()
def status():
    """Show status and configuration."""
    from sparkskills.cli.providers import get_provider
    from sparkskills.config import get_config_path, load_config

    config_path = get_config_path()
    config = load_config()
    storage = config.storage_path

    console.print("SparkSkills Status\n")
    console.print(
        f"Config:    {config_path} "
        f"{'[green]>[/green]' if config_path.exists() else '[red]x[/red]'}"
    )
    console.print(
        f"Storage:   {storage} "
        f"{'[green]>[/green]' if storage.exists() else '[red]x[/red]'}"
    )

    provider_key = config.agent.provider
    if provider_key:
        provider_info = get_provider(provider_key)
        console.print(f"Provider:  [cyan]{provider_info.label if provider_info else provider_key}[/cyan]")
    else:
        console.print("Provider:  [dim]not set[/dim]")
    console.print(f"Model:     {config.agent.model or '[dim]not set[/dim]'}")
    console.print(
        f"Reflect:   {config.reflection.model if config.reflection.enabled else '[dim]disabled[/dim]'}"
    )
    console.print(
        f"API Key:   {'[green]configured[/green]' if config.get_api_key() else '[dim]not set[/dim]'}"
    )
    console.print(
        f"Skills:    {'[green]enabled[/green]' if config.skills.enabled else '[dim]disabled[/dim]'}"
        f"{' (demo mode)' if config.skills.demo_mode else ''}"
    )

    if not provider_key:
        console.print(
            "\n[yellow]Run [cyan]sparkskills onboard[/cyan] to set up a provider.[/yellow]"
        )


if __name__ == "__main__":
    app()
