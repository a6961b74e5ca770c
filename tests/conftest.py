import pytest
from typer.testing import CliRunner

from contentcli.core.command_handler import CommandHandler
from contentcli.core.services.generation_service import GenerationService
from contentcli.core.services.research_service import ResearchService
from contentcli.domain.interfaces.ai_model import ContentGenerator
from contentcli.domain.models.throttling import ServiceConfig
from contentcli.infrastructure.cache.caching_service import DiskCachingService
from contentcli.infrastructure.cli.display import ConsoleDisplay
from contentcli.infrastructure.resilience.rate_limiter import RateLimiterRegistry


@pytest.fixture(scope="session")
def runner():
    """Provides a Typer CliRunner instance."""
    return CliRunner()


@pytest.fixture
def mock_generator(mocker):
    """A content generator whose generate_content is an AsyncMock."""
    generator = mocker.MagicMock(spec=ContentGenerator)
    generator.provider_name = "mock"
    generator.generate_content = mocker.AsyncMock(return_value="Mocked AI integration response")
    return generator


@pytest.fixture
def mock_console_display(mocker):
    """Mocks the ConsoleDisplay to capture output easily."""
    return mocker.MagicMock(spec=ConsoleDisplay)


@pytest.fixture
def app_dependencies(mocker, monkeypatch, tmp_path, mock_generator, mock_console_display):
    """Wires real services around a mocked generator and UI, and installs them in main.

    SerpAPI and Reddit clients are left out so no network call is made.
    """
    fast = dict(max_requests=100, window_seconds=60.0, base_backoff_seconds=0.01,
                max_backoff_seconds=0.02, jitter_seconds=0.0, max_retries=1)
    rate_limiter = RateLimiterRegistry([ServiceConfig(name=name, **fast) for name in ("llm", "serpapi", "reddit")])
    cache_service = DiskCachingService(tmp_path / "cache")
    research_service = ResearchService(rate_limiter=rate_limiter, generator=mock_generator, cache=cache_service)
    generation_service = GenerationService(mock_generator, rate_limiter)

    dependencies = {
        "ui": mock_console_display,
        "rate_limiter": rate_limiter,
        "cache_service": cache_service,
        "generator": mock_generator,
        "serp_client": None,
        "reddit_client": None,
        "research_service": research_service,
        "generation_service": generation_service,
        "command_handler": CommandHandler(
            research_service=research_service,
            generation_service=generation_service,
            rate_limiter=rate_limiter,
            cache_service=cache_service,
            ui=mock_console_display,
        ),
    }
    monkeypatch.setattr("contentcli.main._dependencies", None)
    mocker.patch("contentcli.main.create_dependencies", return_value=dependencies)
    yield dependencies
    cache_service.close()
