import sys
import asyncio

# --- Settings/Logging ---
from src.logging.setup import setup_logging
from src.config.settings import settings

setup_logging()

from loguru import logger

from src.pipeline.orchestrator import Orchestrator, RunResult
from src.scrapers.sihf_scraper import SihfScraper
from src.storage.file_sink import FileSink

from rich import print
from rich.panel import Panel


def print_summary(result: RunResult) -> None:
    if result.ok:
        body = (
            f"[green]{result.records_written} game(s) written[/green] to "
            f"{settings.output_dir}/{settings.results_artifact}\n"
            f"Enrichment failures: {result.enrichment_failures}"
        )
        print(Panel(body, title="SIHF fetch", border_style="green"))
    else:
        body = (
            f"[red]Failed while {result.failed_in.value.lower()}[/red]\n"
            f"{result.error}\n"
            f"Details in {settings.output_dir}/{settings.status_artifact}"
        )
        print(Panel(body, title="SIHF fetch", border_style="red"))


async def main() -> int:
    """Runs one fetch and returns the process exit status."""
    logger.info("Starting SIHF results fetch")
    scraper = SihfScraper(config=settings)
    try:
        result = await Orchestrator(scraper, FileSink(settings.output_dir)).run()
    finally:
        await scraper.close()

    print_summary(result)
    return 0 if result.ok else 1


if __name__ == "__main__":
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        logger.info("Execution interrupted by user (KeyboardInterrupt).")
        sys.exit(0)
    except Exception as e:
        logger.exception(f"Unhandled exception in main execution: {e}")
        sys.exit(1)
