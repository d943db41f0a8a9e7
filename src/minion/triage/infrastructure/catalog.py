"""
Product Catalog Adapters
========================

Catalog implementations beyond the raw Jira one:

- CachedProductCatalog: in-memory cache in front of any catalog
- CatalogRefreshScheduler: APScheduler job emptying that cache periodically
- FileProductCatalog: YAML catalog with watchdog hot-reload
"""

import asyncio
import threading
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

import yaml
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from pydantic import BaseModel, Field, StrictStr
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from minion.shared.infrastructure.logging import get_logger
from minion.triage.application import IProductCatalog

logger = get_logger(__name__)


class CachedProductCatalog(IProductCatalog):
    """
    Caches product names and per-product version lists.

    Failures from the wrapped catalog are not cached and propagate.
    """

    def __init__(self, delegate: IProductCatalog):
        self._delegate = delegate
        self._products: Optional[Set[str]] = None
        self._versions: Dict[str, List[str]] = {}
        self._lock = asyncio.Lock()

    async def list_products(self) -> Set[str]:
        if self._products is None:
            async with self._lock:
                if self._products is None:
                    self._products = set(await self._delegate.list_products())
        return set(self._products)

    async def list_sorted_versions(self, product: str) -> List[str]:
        if product not in self._versions:
            async with self._lock:
                if product not in self._versions:
                    self._versions[product] = list(
                        await self._delegate.list_sorted_versions(product)
                    )
        return list(self._versions[product])

    async def refresh(self) -> None:
        """Drop everything cached; the next calls go to the delegate."""
        async with self._lock:
            self._products = None
            self._versions = {}
        logger.info("Product catalog cache cleared")


class CatalogRefreshScheduler:
    """
    Wrapper for APScheduler refreshing the catalog cache in the background.

    Manages the lifecycle of the scheduler and its single job.
    """

    def __init__(self, interval_seconds: int = 3600):
        self.interval_seconds = interval_seconds
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._running = False

    async def start(self, job_func: Callable[[], Awaitable[None]]) -> None:
        """Start the scheduler with the given job function."""
        if self._running:
            logger.warning("Catalog refresh scheduler already running")
            return

        self._scheduler = AsyncIOScheduler()
        self._scheduler.add_job(
            job_func,
            "interval",
            seconds=self.interval_seconds,
            id="catalog_refresh",
            name="Product Catalog Refresh",
            misfire_grace_time=60,
            max_instances=1,
            replace_existing=True
        )
        self._scheduler.start()
        self._running = True

        logger.info(
            "Catalog refresh scheduler started",
            extra={"interval_seconds": self.interval_seconds}
        )

    async def stop(self) -> None:
        """Stop the scheduler gracefully."""
        if not self._running:
            return

        if self._scheduler:
            self._scheduler.shutdown(wait=False)

        self._running = False
        logger.info("Catalog refresh scheduler stopped")

    @property
    def is_running(self) -> bool:
        return self._running


# ========== File catalog ==========

class CatalogDocument(BaseModel):
    """
    Shape of the YAML catalog file.

    products:
      SonarQube: ["6.7", "7.0", "7.1"]
    """
    products: Dict[StrictStr, List[StrictStr]] = Field(default_factory=dict)


class CatalogFileHandler(FileSystemEventHandler):
    """Watchdog event handler for catalog file changes."""

    def __init__(self, catalog: "FileProductCatalog", path: Path):
        self.catalog = catalog
        self.path = path
        super().__init__()

    def _reload_if_catalog(self, event, changed_path) -> None:
        if event.is_directory:
            return
        if Path(changed_path).resolve() == self.path.resolve():
            logger.info(f"Catalog file changed: {changed_path}")
            self.catalog.reload()

    def on_modified(self, event):
        self._reload_if_catalog(event, event.src_path)

    def on_created(self, event):
        self._reload_if_catalog(event, event.src_path)

    def on_moved(self, event):
        # Atomic saves write a temporary file and rename it over the catalog
        self._reload_if_catalog(event, event.dest_path)


class FileProductCatalog(IProductCatalog):
    """
    Thread-safe YAML product catalog with hot-reload support.

    Versions are listed oldest first in the file and served as written.
    """

    def __init__(self, path: Path):
        self._path = Path(path)
        self._document = CatalogDocument()
        self._lock = threading.Lock()
        self._observer: Optional[Any] = None

    def load(self) -> CatalogDocument:
        """Initial load; a missing file gives an empty catalog."""
        document = self._load_from_file()
        with self._lock:
            self._document = document
        return document

    def _load_from_file(self) -> CatalogDocument:
        if not self._path.exists():
            logger.warning(f"Catalog file not found: {self._path}, using an empty catalog")
            return CatalogDocument()

        with open(self._path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        return CatalogDocument(**data)

    def reload(self) -> bool:
        """Reload from file, keeping the previous catalog on error."""
        try:
            document = self._load_from_file()
        except Exception as e:
            logger.error(f"Failed to reload catalog file: {e}")
            return False
        with self._lock:
            self._document = document
        logger.info(
            "Catalog file reloaded",
            extra={"products": len(document.products)}
        )
        return True

    def start_watching(self) -> None:
        """Watch the catalog file for changes (no-op if it does not exist)."""
        if not self._path.exists():
            logger.info(f"Catalog file doesn't exist, skipping file watch: {self._path}")
            return

        try:
            self._observer = Observer()
            self._observer.schedule(
                CatalogFileHandler(self, self._path),
                str(self._path.resolve().parent),
                recursive=False
            )
            self._observer.start()
            logger.info(f"Started watching catalog file: {self._path}")
        except OSError as e:
            # inotify is not always available (containers)
            logger.warning(f"File watching not available, using static catalog: {e}")
            self._observer = None

    def stop_watching(self) -> None:
        """Stop watching (safe to call even if not watching)."""
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=5)
            self._observer = None

    async def list_products(self) -> Set[str]:
        with self._lock:
            return set(self._document.products)

    async def list_sorted_versions(self, product: str) -> List[str]:
        with self._lock:
            return list(self._document.products.get(product, []))
