import asyncio
import logging
import sys
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

import click

from .config import Settings, get_settings, validate_config
from .dataset import Dataset, EnrichedItem, load_dataset, save_dataset
from .errors import PipelineError
from .ingest.items import RawItem, load_raw_items
from .logging import PerformanceLogger, get_logger, log_processing_stage, setup_logging
from .models.classifier import ClassifierAdapter, classify_item
from .models.local_models import LocalModels
from .processing.dedupe import DedupIndex, group_near_duplicates, raw_item_id
from .processing.enrichment import ItemEnricher
from .processing.gate import ConfidenceGate
from .processing.language import LanguageFilter
from .processing.merge import merge_items, previously_seen_ids
from .processing.ranking import rank_items
from .processing.relevance import RelevanceFilter
from .ui import FriendlyUI, init_ui
from .utils import ensure_directory, ensure_utc, utc_now

logger = get_logger(__name__)


@dataclass
class RunReport:
    """Counts for one processing run."""
    fetched: int = 0
    skipped_existing: int = 0
    irrelevant: int = 0
    duplicates: int = 0
    non_english: int = 0
    processed: int = 0
    accepted: int = 0
    rejected: int = 0
    merged: int = 0
    expired: int = 0
    near_duplicates: int = 0
    degraded: int = 0
    processing_method: str = "rule-based"
    written: list[Path] = field(default_factory=list)


@contextmanager
def _stage(ui: FriendlyUI | None, name: str):
    if ui is None:
        yield None, None
        return
    with ui.stage(name) as (progress, task):
        yield progress, task


async def run_pipeline(
    settings: Settings,
    threshold: float | None = None,
    models: LocalModels | None = None,
    now: datetime | None = None,
    ui: FriendlyUI | None = None,
) -> RunReport:
    """Run one incremental processing pass over the crawler output.

    Args:
        settings: The application settings.
        threshold: Confidence threshold; falls back to ``settings.confidence_threshold``.
        models: Local model registry; built from settings when omitted.
        now: Reference time for retention and timestamps.
        ui: Optional friendly UI instance.

    Returns:
        Counts for the run.

    Raises:
        PipelineError: raw input unreadable, threshold missing or output unwritable.
            Nothing is written in that case.
    """
    threshold = threshold if threshold is not None else settings.confidence_threshold
    if threshold is None:
        raise PipelineError("No confidence threshold configured (set CONFIDENCE_THRESHOLD or pass --threshold)")
    try:
        gate = ConfidenceGate(threshold)
    except ValueError as e:
        raise PipelineError(str(e)) from e

    now = ensure_utc(now or utc_now())
    report = RunReport()

    with PerformanceLogger("full_pipeline", logger):
        # Stage 1: Load inputs
        with _stage(ui, "Loading raw items and previous dataset"):
            raw_items = load_raw_items(settings.raw_path)
            # Newest first, so the most recent copy of a story is the one kept
            raw_items = sorted(raw_items, key=lambda item: item.pub_date, reverse=True)
            previous = load_dataset(settings.dataset_path)

        report.fetched = len(raw_items)
        seen_ids = previously_seen_ids(previous)
        fresh = [item for item in raw_items if raw_item_id(item) not in seen_ids]
        report.skipped_existing = len(raw_items) - len(fresh)
        logger.info("Skipped already published items", **log_processing_stage(
            "incremental", len(raw_items), len(fresh), skipped=report.skipped_existing
        ))

        # Stage 2: Relevance and deduplication
        with _stage(ui, "Filtering and deduplicating"):
            relevant = RelevanceFilter().filter_items(fresh)
            report.irrelevant = len(fresh) - len(relevant)

            unique = DedupIndex(seen_ids).deduplicate(relevant)
            report.duplicates = len(relevant) - len(unique)

        if settings.processing_limit is not None and len(unique) > settings.processing_limit:
            logger.info("Processing limit reached", limit=settings.processing_limit, pending=len(unique))
            unique = unique[:settings.processing_limit]
        if ui:
            ui.info(f"{len(unique)} new items to process")

        # Stage 3: Models
        with _stage(ui, "Loading local models"):
            owns_models = models is None
            if models is None:
                models = LocalModels.rules_only() if settings.rules_only else LocalModels(settings=settings.models)
            adapter = ClassifierAdapter(models)
            await adapter.load()

        report.processing_method = "ai-powered" if adapter.model_backed else "rule-based"
        if ui:
            ui.verbose_log(f"Processing method: {report.processing_method}")

        # Stage 4: Language check, classification and enrichment
        with _stage(ui, "Classifying and enriching") as (progress, task):
            languages = LanguageFilter(models)
            enricher = ItemEnricher(models)
            try:
                enriched = await _process_items(
                    unique, languages, adapter, enricher, settings.workers, now, ui, progress, task
                )
            finally:
                if owns_models:
                    models.close()
        report.non_english = languages.skipped
        report.processed = len(enriched)
        report.degraded = enricher.degraded

        # Stage 5: Gate, merge, annotate, rank
        with _stage(ui, "Merging dataset"):
            accepted = gate.filter(enriched)
            report.accepted, report.rejected = gate.accepted, gate.rejected

            merged = merge_items(previous, accepted, settings.retention_days, now)
            report.expired = merged.expired

            chronological = sorted(merged.items, key=lambda item: (item.pub_date, item.id))
            annotated, groups = group_near_duplicates(chronological, settings.near_duplicate_threshold)
            report.near_duplicates = sum(len(group.duplicate_ids) for group in groups)

            articles = rank_items(annotated)
            report.merged = len(articles)

        # Stage 6: Persist
        with _stage(ui, "Writing dataset"):
            dataset = Dataset(processed_at=now, processing_method=report.processing_method, articles=articles)
            report.written = save_dataset(dataset, settings.dataset_path, dated_copy=settings.write_dated_copy)

    logger.info("Pipeline complete", **{k: v for k, v in vars(report).items() if k != "written"})
    return report


async def _process_items(
    items: list[RawItem],
    languages: LanguageFilter,
    adapter: ClassifierAdapter,
    enricher: ItemEnricher,
    workers: int,
    now: datetime,
    ui: FriendlyUI | None = None,
    progress=None,
    task=None,
) -> list[EnrichedItem]:
    """Check, classify and enrich items concurrently, at most ``workers`` at a time.

    Items skipped by the language check are left out of the result.
    """
    semaphore = asyncio.Semaphore(workers)
    classifier = adapter.classifier
    done = 0

    async def process(item: RawItem):
        nonlocal done
        async with semaphore:
            checked = await languages.check(item)
            if checked is None:
                enriched = None
            else:
                classification = await classify_item(classifier, checked.title, checked.excerpt)
                enriched = await enricher.enrich(checked, classification, raw_item_id(checked), now)
        done += 1
        if ui:
            ui.update_progress(progress, task, done, len(items))
        return enriched

    # gather keeps input order
    results = await asyncio.gather(*(process(item) for item in items))
    return [item for item in results if item is not None]


@click.command()
@click.option("--threshold", type=click.FloatRange(0.0, 1.0), help="Minimum confidence for publication")
@click.option("--limit", type=click.IntRange(min=1), help="Maximum new items processed in this run")
@click.option("--retention-days", type=click.IntRange(min=1), help="Drop items older than this many days")
@click.option("--workers", type=click.IntRange(min=1), help="Concurrent per-item workers")
@click.option(
    "--data-dir",
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory holding latest-raw.json and the processed dataset",
)
@click.option("--rules-only", is_flag=True, help="Skip local models and use rule-based processing")
@click.option("--log-level", default="ERROR", help="Log level")
@click.option("--verbose", is_flag=True, help="Show detailed progress information")
@click.option(
    "--validate-config",
    "validate_config_flag",
    is_flag=True,
    help="Validate configuration and exit",
)
def cli(
    threshold,
    limit,
    retention_days,
    workers,
    data_dir,
    rules_only,
    log_level,
    verbose,
    validate_config_flag,
):
    """AI News Daily - classify, enrich and publish the crawled AI news items."""
    actual_log_level = "INFO" if verbose else log_level
    setup_logging(log_level=actual_log_level, json_logging=False)

    if not verbose:
        logging.getLogger().setLevel(logging.ERROR)
        logging.getLogger("transformers").setLevel(logging.ERROR)

    ui = init_ui(verbose=verbose)

    try:
        settings = get_settings()
        if threshold is not None:
            settings.confidence_threshold = threshold
        if limit:
            settings.processing_limit = limit
        if retention_days:
            settings.retention_days = retention_days
        if workers:
            settings.workers = workers
        if data_dir:
            settings.data_dir = ensure_directory(data_dir).resolve()
        if rules_only:
            settings.rules_only = True

        if validate_config_flag:
            if validate_config(settings):
                ui.success("Configuration is valid")
                sys.exit(0)
            else:
                ui.error("Configuration validation failed")
                sys.exit(1)

        if not validate_config(settings):
            ui.error("Configuration validation failed. Use --validate-config for details.")
            sys.exit(1)

        report = asyncio.run(run_pipeline(settings=settings, ui=ui))
        ui.show_run_summary(report, str(settings.dataset_path))
        if report.degraded:
            ui.warning(f"{report.degraded} items were enriched with rule-based fallbacks")

    except PipelineError as e:
        logger.error("Pipeline failed", error=str(e))
        ui.error(str(e))
        sys.exit(1)
    except Exception as e:
        logger.error("CLI execution failed", error=str(e), exc_info=True)
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


if __name__ == "__main__":
    cli()
