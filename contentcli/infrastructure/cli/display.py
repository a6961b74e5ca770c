"""Console implementation of the UserInterface using rich."""

import logging
from typing import Any, List, Optional

from rich.box import HEAVY, ROUNDED, SIMPLE
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.progress import BarColumn, MofNCompleteColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table
from rich.text import Text

from contentcli.domain.interfaces.user_interface import UserInterface
from contentcli.domain.models.research import KeywordResearch, ResearchOutcome, SerpData
from contentcli.domain.models.throttling import ServiceStats

logger = logging.getLogger(__name__)

MAX_QUESTIONS_SHOWN = 5


class ConsoleDisplay(UserInterface):
    """Concrete implementation of UserInterface using the rich library for console output."""

    def __init__(self, console: Optional[Console] = None):
        self._console = console or Console()

    @property
    def console(self) -> Console:
        """Get the Rich console instance for direct operations."""
        return self._console

    def display_output(self, output: str, **kwargs: Any) -> None:
        """Displays output text to the user, rendering Markdown.

        Args:
            output: The text to display.
            **kwargs: Additional arguments including:
                - title: Panel title (default: "Output")
                - markdown: Render as Markdown (default: True)
        """
        title = kwargs.get("title", "Output")
        body = Markdown(str(output)) if kwargs.get("markdown", True) else Text(str(output))
        logger.debug(f"display_output called: title={title}, content_length={len(str(output))}")
        self.console.print(Panel(body, title=f"[bold white]{title}[/bold white]", title_align="left",
                                 border_style="blue", box=ROUNDED, padding=(0, 1)))

    def display_error(self, error_message: str, **kwargs: Any) -> None:
        """Displays an error message in a distinct style."""
        panel = Panel(
            Text(error_message, style="white"),
            title="[bold red]Error[/bold red]",
            border_style="red",
            box=HEAVY,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_info(self, info_message: str, **kwargs: Any) -> None:
        panel = Panel(
            Text(info_message, style="white"),
            title="[bold blue]Info[/bold blue]",
            border_style="blue",
            box=SIMPLE,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        logger.warning(f"Display warning: {warning_message}")
        panel = Panel(
            Text(warning_message, style="white"),
            title="[bold yellow]Warning[/bold yellow]",
            border_style="yellow",
            box=HEAVY,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_service_stats(self, stats: List[ServiceStats]) -> None:
        """Renders one row per service with its current throttling state."""
        table = Table(title="Rate limits", box=ROUNDED, header_style="bold cyan")
        table.add_column("Service")
        table.add_column("Queued", justify="right")
        table.add_column("Recent", justify="right")
        table.add_column("Retrying", justify="right")
        table.add_column("Ready")
        table.add_column("Next slot", justify="right")
        for entry in stats:
            table.add_row(
                entry.service,
                str(entry.queue_length),
                str(entry.recent_requests),
                str(entry.pending_retries),
                "[green]yes[/green]" if entry.can_proceed else "[red]no[/red]",
                "now" if entry.can_proceed else f"{entry.delay_until_next_slot:.1f}s",
            )
        self.console.print(table)

    def display_serp(self, serp: SerpData) -> None:
        summary = Table(box=SIMPLE, show_header=False)
        summary.add_column(style="bold")
        summary.add_column()
        summary.add_row("Search volume", f"{serp.search_volume:,}")
        summary.add_row("Competition", serp.competition)
        summary.add_row("CPC", f"${serp.cpc:.2f}")
        summary.add_row("Source", serp.source)
        if serp.related_keywords:
            summary.add_row("Related", ", ".join(serp.related_keywords))
        self.console.print(Panel(summary, title=f"[bold]SERP: {serp.keyword}[/bold]", border_style="cyan", box=ROUNDED))

        if serp.top_competitors:
            competitors = Table(title="Top competitors", box=SIMPLE, header_style="bold")
            competitors.add_column("#", justify="right")
            competitors.add_column("Domain")
            competitors.add_column("Title")
            for competitor in serp.top_competitors:
                competitors.add_row(str(competitor.position), competitor.domain, competitor.title)
            self.console.print(competitors)

        if serp.featured_snippet and serp.featured_snippet.content:
            self.console.print(Panel(Text(serp.featured_snippet.content), title="Featured snippet",
                                     subtitle=serp.featured_snippet.url, border_style="green", box=SIMPLE))

    def display_research(self, research: KeywordResearch) -> None:
        self.display_serp(research.serp)
        questions = research.serp.questions[:MAX_QUESTIONS_SHOWN]
        if questions:
            self.display_list("People also ask", questions)

        reddit = research.reddit
        if reddit.popular_threads:
            table = Table(title=f"Reddit ({reddit.popular_threads} threads)", box=SIMPLE, header_style="bold")
            table.add_column("Thread")
            table.add_column("Subreddit")
            table.add_column("Upvotes", justify="right")
            table.add_column("Sentiment")
            for insight in reddit.questions[:MAX_QUESTIONS_SHOWN]:
                table.add_row(insight.question, f"r/{insight.subreddit}", str(insight.upvotes), insight.sentiment)
            self.console.print(table)
        if reddit.pain_points:
            self.display_list("Pain points", reddit.pain_points[:MAX_QUESTIONS_SHOWN])

    def display_research_summary(self, outcomes: List[ResearchOutcome]) -> None:
        table = Table(title="Research summary", box=ROUNDED, header_style="bold cyan")
        table.add_column("Keyword")
        table.add_column("Status")
        table.add_column("Details")
        for outcome in outcomes:
            if outcome.success and outcome.research:
                serp = outcome.research.serp
                details = f"volume {serp.search_volume:,}, {serp.competition} competition"
                table.add_row(outcome.keyword, "[green]ok[/green]", details)
            else:
                table.add_row(outcome.keyword, "[red]failed[/red]", outcome.error or "")
        self.console.print(table)

    def display_list(self, title: str, items: List[str]) -> None:
        if not items:
            self.display_info(f"{title}: nothing found.")
            return
        body = "\n".join(f"{index}. {item}" for index, item in enumerate(items, start=1))
        self.console.print(Panel(Text(body), title=f"[bold]{title}[/bold]", border_style="magenta", box=SIMPLE))

    def create_progress(self) -> Progress:
        """A progress bar bound to this console, for batch operations."""
        return Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            console=self.console,
            transient=True,
        )
