import logging
import random
import sys

import uvicorn

from api.app import create_app
from config import Settings, settings
from core.assembler import RecordAssembler, normalize_batch
from core.catalog import Catalog
from core.loader import CatalogLoadError, load_raw_batch
from core.log_setup import setup_logging
from core.logistics import FeeSampler, LogisticsParser
from core.policy import policy_from_settings

log = logging.getLogger(__name__)


def load_catalog(settings: Settings) -> Catalog:
    """Load the raw batch, normalize it and wrap it for querying.

    Raises CatalogLoadError when the batch file is missing or malformed.
    """
    path = settings.catalog_path
    items = load_raw_batch(path)

    # One generator and one lock for the whole process; seeded runs are reproducible.
    rng = random.Random(settings.random_seed)
    sampler = FeeSampler(rng)
    policy = policy_from_settings(settings)
    assembler = RecordAssembler(policy, LogisticsParser(policy, sampler))
    records = normalize_batch(items, assembler, workers=settings.normalize_workers)

    log.info(f"{len(records)} products loaded from {path}")
    return Catalog(records, rng=rng, default_limit=settings.default_page_size, lock=sampler.lock)


def main() -> None:
    setup_logging(settings, "catalog-api.log")

    try:
        catalog = load_catalog(settings)
    except CatalogLoadError as e:
        log.critical(f"Cannot start API: {e}")
        sys.exit(1)

    app = create_app(
        catalog,
        cors_origins=settings.cors_origins,
        recommended_count=settings.recommended_count,
        currency_markers=settings.currency_markers,
    )
    log.info(f"Serving on http://{settings.host}:{settings.port}")
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
