"""Main entry point for the contentcli application.

Sets up the Typer CLI application, performs dependency injection (Composition Root),
defines CLI commands, and delegates execution to the CommandHandler.
"""

import asyncio
import logging
from typing import Any, Coroutine, Dict, List, Optional

import typer
from typing_extensions import Annotated

from contentcli import __version__
from contentcli.core.command_handler import CommandHandler
from contentcli.core.services.generation_service import GenerationService
from contentcli.core.services.research_service import ResearchService
from contentcli.domain.interfaces.ai_model import ContentGenerator
from contentcli.domain.models.ai import DEFAULT_MAX_TOKENS, DEFAULT_TEMPERATURE, GenerationOptions
from contentcli.domain.models.research import ResearchOutcome
from contentcli.domain.models.throttling import LLM_SERVICE
from contentcli.infrastructure.ai.groq.groq_client import GroqContentClient
from contentcli.infrastructure.ai.openai.openai_client import OpenAIContentClient
from contentcli.infrastructure.cache.caching_service import DiskCachingService
from contentcli.infrastructure.cli.display import ConsoleDisplay
from contentcli.infrastructure.config.settings import (
    get_cache_dir, get_cache_enabled, get_config, get_default_model, get_default_provider, get_groq_api_key,
    get_openai_api_key, get_openai_base_url, get_rate_limit_configs, get_reddit_user_agent, get_serpapi_key,
    load_configuration,
)
from contentcli.infrastructure.monitoring.logger_setup import setup_logging
from contentcli.infrastructure.research.reddit_client import RedditClient
from contentcli.infrastructure.research.serp_client import SerpApiClient
from contentcli.infrastructure.resilience.rate_limiter import RateLimiterRegistry

logger = logging.getLogger(__name__)

# Options given to the top-level callback, read when dependencies are built
_cli_options: Dict[str, Any] = {"verbose": False, "provider": None}

# Single instances of our services, created on first use
_dependencies: Optional[Dict[str, Any]] = None


# --- Dependency Injection Container (Manual) ---

def create_content_generator(provider: str, timeout: Optional[float] = None) -> Optional[ContentGenerator]:
    """Instantiates the generator for a provider, or None when it has no API key.

    ``timeout`` should match the 'llm' service timeout so the SDK gives up on a
    request the rate limiter has already abandoned.
    """
    model = get_default_model(provider)
    if provider == "groq":
        api_key = get_groq_api_key()
        if api_key:
            return GroqContentClient(api_key=api_key, model=model, timeout=timeout)
    elif provider == "openai":
        api_key = get_openai_api_key()
        if api_key:
            return OpenAIContentClient(api_key=api_key, model=model, base_url=get_openai_base_url(), timeout=timeout)
    else:
        logger.error(f"Unknown AI provider '{provider}'. Use 'openai' or 'groq'.")
        return None
    logger.warning(f"No API key configured for provider '{provider}'. Content generation disabled.")
    return None


def create_dependencies() -> Dict[str, Any]:
    """Creates and wires up all dependencies for the application.

    This acts as the Composition Root.
    """
    load_configuration()
    log_level = "DEBUG" if _cli_options["verbose"] else get_config("logging.level", "WARNING")
    setup_logging(
        log_level=log_level,
        log_file=get_config("logging.file"),
        log_format=get_config("logging.format", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"),
    )
    logger.info("Initializing application dependencies...")

    dependencies: Dict[str, Any] = {}
    dependencies["ui"] = ConsoleDisplay()
    rate_limit_configs = get_rate_limit_configs()
    dependencies["rate_limiter"] = RateLimiterRegistry(configs=rate_limit_configs)
    dependencies["cache_service"] = DiskCachingService(get_cache_dir()) if get_cache_enabled() else None

    provider = _cli_options["provider"] or get_default_provider()
    llm_timeout = next((c.timeout_seconds for c in rate_limit_configs if c.name == LLM_SERVICE), None)
    dependencies["generator"] = create_content_generator(provider, timeout=llm_timeout)

    serpapi_key = get_serpapi_key()
    dependencies["serp_client"] = SerpApiClient(api_key=serpapi_key) if serpapi_key else None
    dependencies["reddit_client"] = RedditClient(user_agent=get_reddit_user_agent())

    dependencies["research_service"] = ResearchService(
        rate_limiter=dependencies["rate_limiter"],
        generator=dependencies["generator"],
        serp_client=dependencies["serp_client"],
        reddit_client=dependencies["reddit_client"],
        cache=dependencies["cache_service"],
    )
    dependencies["generation_service"] = (
        GenerationService(dependencies["generator"], dependencies["rate_limiter"])
        if dependencies["generator"] is not None else None
    )
    dependencies["command_handler"] = CommandHandler(
        research_service=dependencies["research_service"],
        generation_service=dependencies["generation_service"],
        rate_limiter=dependencies["rate_limiter"],
        cache_service=dependencies["cache_service"],
        ui=dependencies["ui"],
    )
    logger.info("Application dependencies initialized.")
    return dependencies


def get_dependencies() -> Dict[str, Any]:
    global _dependencies
    if _dependencies is None:
        _dependencies = create_dependencies()
    return _dependencies


async def close_dependencies(dependencies: Dict[str, Any]) -> None:
    """Stops rate limiter workers and closes HTTP clients."""
    await dependencies["rate_limiter"].shutdown()
    for name in ("serp_client", "reddit_client"):
        client = dependencies.get(name)
        if client is not None:
            await client.aclose()
    if dependencies.get("cache_service") is not None:
        dependencies["cache_service"].close()


# --- Typer App Definition ---
app = typer.Typer(
    name="contentcli",
    help="contentcli: keyword research and content generation with per-service rate limiting.",
    add_completion=False,
)


# --- Helper for Running Async Commands ---
def run_async(coro: Coroutine[Any, Any, bool]) -> None:
    """Runs a command coroutine, then releases resources. Exits non-zero on failure."""
    global _dependencies
    dependencies = get_dependencies()

    async def run_and_close() -> bool:
        try:
            return await coro
        finally:
            await close_dependencies(dependencies)

    try:
        succeeded = asyncio.run(run_and_close())
    finally:
        # Clients are bound to the loop that just closed
        _dependencies = None
    if succeeded is False:
        raise typer.Exit(code=1)


# --- CLI Commands ---

@app.command()
def research(
    keywords: Annotated[List[str], typer.Argument(help="One or more keywords to research.")],
    no_cache: Annotated[bool, typer.Option("--no-cache", help="Ignore cached research.")] = False,
):
    """Research keywords: search data, competitors and forum discussions."""
    dependencies = get_dependencies()
    handler: CommandHandler = dependencies["command_handler"]
    ui: ConsoleDisplay = dependencies["ui"]

    if len(keywords) < 2:
        run_async(handler.handle_research(keywords, use_cache=not no_cache))
        return

    async def research_with_progress() -> bool:
        with ui.create_progress() as progress:
            task = progress.add_task("Researching keywords", total=len(keywords))

            def advance(outcome: ResearchOutcome) -> None:
                progress.advance(task)

            return await handler.handle_research(keywords, use_cache=not no_cache, on_result=advance)

    run_async(research_with_progress())


@app.command()
def generate(
    prompt: Annotated[str, typer.Argument(help="Prompt to send to the content generator.")],
    temperature: Annotated[float, typer.Option("--temperature", "-t", min=0.0, max=2.0)] = DEFAULT_TEMPERATURE,
    max_tokens: Annotated[int, typer.Option("--max-tokens", min=1)] = DEFAULT_MAX_TOKENS,
    as_json: Annotated[bool, typer.Option("--json", help="Parse and pretty-print a JSON answer.")] = False,
):
    """Generate text (or JSON) from a prompt."""
    handler: CommandHandler = get_dependencies()["command_handler"]
    options = GenerationOptions(temperature=temperature, max_tokens=max_tokens)
    run_async(handler.handle_generate(prompt, options, as_json=as_json))


@app.command()
def limits():
    """Show configured services and their current rate-limit state."""
    handler: CommandHandler = get_dependencies()["command_handler"]

    async def show() -> bool:
        handler.handle_limits()
        return True

    run_async(show())


@app.command()
def trending(
    category: Annotated[str, typer.Argument(help="Topic category, e.g. 'cybersecurity'.")],
):
    """List trending topics for a category."""
    handler: CommandHandler = get_dependencies()["command_handler"]
    run_async(handler.handle_trending(category))


@app.command(name="clear-cache")
def clear_cache_command(
    prefix: Annotated[Optional[str], typer.Option("--prefix", help="Only clear entries with this prefix.")] = None,
):
    """Clears the application cache."""
    handler: CommandHandler = get_dependencies()["command_handler"]
    run_async(handler.handle_clear_cache(prefix))


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"contentcli {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging.")] = False,
    provider: Annotated[
        Optional[str], typer.Option("--provider", "-p", help="AI provider ('openai' or 'groq'). Uses default if not set.")
    ] = None,
    version: Annotated[
        bool, typer.Option("--version", callback=_version_callback, is_eager=True, help="Show the version and exit.")
    ] = False,
):
    """Keyword research and content generation with per-service rate limiting."""
    _cli_options["verbose"] = verbose
    _cli_options["provider"] = provider


# --- Main Execution Guard ---

def cli_entry_point():
    """Function to be called by the script entry point in pyproject.toml."""
    app()


if __name__ == "__main__":
    cli_entry_point()
