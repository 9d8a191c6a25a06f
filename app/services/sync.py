"""
CDN Catalog Sync

Imports new files from the image CDN as catalog rows:
    /categories/...            → Category
    /locations/... /delivery/  → DeliveryLocation (default price)
    anything else              → Product in the default category

A file is imported at most once: its remote id is claimed in the
synced-image ledger before any row is created, and the claim is an
atomic insert-or-ignore on the file id. Existing catalog rows are
never modified or deleted by a sync pass.

Author: Khalil Bannouri
Version: 1.0.0
"""

import asyncio
import logging
import re
from enum import Enum
from pathlib import PurePosixPath
from typing import Optional

from app.core.config import Settings, get_settings
from app.models import UnitType
from app.schemas import (
    Category,
    CategoryCreate,
    DeliveryLocationCreate,
    ProductCreate,
    SyncedImageCreate,
    SyncReport,
)
from app.services.cdn.base import BaseCdnService, RemoteFile
from app.services.storage.base import BaseStorage

logger = logging.getLogger(__name__)


# =============================================================================
# NAME HANDLING
# =============================================================================

# Canonical English file names → Arabic display names
NAME_TRANSLATIONS: dict[str, str] = {
    "kibbeh fried": "كبة مقلية",
    "kibbeh grilled": "كبة مشوية",
    "raqayeq cheese": "رقايق جبنة",
    "raqayeq cheese sausage": "رقايق جبنة وسجق",
    "sambousa meat": "سمبوسك لحمة",
    "sambousa cheese": "سمبوسك جبنة",
    "shishbarak": "ششبرك لحمة",
    "grape leaves meat": "ورق عنب بلحمة",
    "grape leaves oil": "ورق عنب بزيت",
    "appetizers": "مقبلات",
    "main dishes": "أطباق رئيسية",
    "desserts": "حلويات",
}

_TRAILING_COUNTER = re.compile(r"[\s._-]*\d+$")
_SEPARATORS = re.compile(r"[\s._-]+")
_NON_SLUG = re.compile(r"[^a-z0-9]+")


def derive_display_name(file_name: str) -> str:
    """
    Turn a remote file name into a canonical display name.

    "kibbeh_fried-1712345678.png" → "kibbeh fried"

    Args:
        file_name: Remote file name, extension included

    Returns:
        str: Name without extension, separators or trailing counter
    """
    stem = PurePosixPath(file_name.strip("/")).stem
    without_counter = _TRAILING_COUNTER.sub("", stem) or stem
    return _SEPARATORS.sub(" ", without_counter).strip()


def translate_name(name: str) -> str:
    """Localized name for known canonical names, otherwise unchanged."""
    return NAME_TRANSLATIONS.get(name.lower(), name)


def slugify(name: str) -> str:
    return _NON_SLUG.sub("-", name.lower()).strip("-")


class FileKind(str, Enum):
    CATEGORY = "category"
    LOCATION = "location"
    PRODUCT = "product"


_LOCATION_FOLDERS = {"locations", "delivery", "delivery-locations", "delivery_locations"}


def classify(file_path: str) -> FileKind:
    """
    Decide which catalog row a remote file becomes, by folder name.

    Only folder segments count; the file name itself is ignored.
    """
    folders = [part.lower() for part in PurePosixPath(file_path).parts[:-1] if part != "/"]

    if "categories" in folders:
        return FileKind.CATEGORY
    if any(folder in _LOCATION_FOLDERS for folder in folders):
        return FileKind.LOCATION
    return FileKind.PRODUCT


# =============================================================================
# SYNC SERVICE
# =============================================================================

class CatalogSyncService:
    """
    One-shot reconciliation of the catalog against the CDN listing.

    Example:
        >>> service = CatalogSyncService(get_storage(), get_cdn_service())
        >>> report = await service.run_once()
        >>> print(report.new_products_added)
    """

    def __init__(
        self,
        storage: BaseStorage,
        cdn: BaseCdnService,
        settings: Optional[Settings] = None,
    ):
        self.storage = storage
        self.cdn = cdn
        self.settings = settings or get_settings()

    async def _ensure_default_category(self, report: SyncReport) -> Category:
        categories = await self.storage.get_categories()
        if categories:
            return categories[0]

        logger.info("No categories yet, creating the default category")
        report.new_categories_added += 1
        return await self.storage.create_category(CategoryCreate(
            name=self.settings.default_category_name,
            slug=self.settings.default_category_slug,
            image=self.settings.default_category_image,
        ))

    async def _unique_slug(self, base: str, remote: RemoteFile) -> str:
        slug = slugify(base) or f"category-{slugify(remote.file_id)}"
        if await self.storage.get_category_by_slug(slug) is None:
            return slug
        return f"{slug}-{slugify(remote.file_id)}"

    async def _import_file(self, remote: RemoteFile, default_category: Category, report: SyncReport) -> None:
        canonical = derive_display_name(remote.name)
        name = translate_name(canonical)
        kind = classify(remote.file_path)

        if kind is FileKind.CATEGORY:
            await self.storage.create_category(CategoryCreate(
                name=name,
                slug=await self._unique_slug(canonical, remote),
                image=remote.url,
            ))
            report.new_categories_added += 1

        elif kind is FileKind.LOCATION:
            await self.storage.create_delivery_location(DeliveryLocationCreate(
                name=name,
                price=self.settings.sync_default_location_price,
                image=remote.url,
            ))
            report.new_locations_added += 1

        else:
            await self.storage.create_product(ProductCreate(
                category_id=default_category.id,
                name=name,
                description="",
                price=self.settings.sync_default_product_price,
                unit_type=UnitType(self.settings.sync_default_unit_type),
                image=remote.url,
                is_popular=False,
            ))
            report.new_products_added += 1

        logger.debug(f"Imported {remote.file_path} as {kind.value} '{name}'")

    async def run_once(self) -> SyncReport:
        """
        Run one sync pass.

        Returns:
            SyncReport: Counts of rows created and files skipped

        Raises:
            CdnError: If the listing could not be fetched
        """
        files = await self.cdn.list_files()
        report = SyncReport(total_files=len(files))

        default_category = await self._ensure_default_category(report)

        for remote in files:
            if remote.is_directory_marker:
                report.skipped += 1
                continue

            claimed = await self.storage.claim_synced_image(SyncedImageCreate(
                file_id=remote.file_id,
                file_name=remote.name,
                url=remote.url,
            ))
            if not claimed:
                report.skipped += 1
                continue

            # Same file re-listed under a new id
            if await self.storage.get_product_by_image(remote.url):
                logger.debug(f"Product already uses {remote.url}, skipping")
                report.skipped += 1
                continue

            await self._import_file(remote, default_category, report)

        logger.info(
            f"🔄 Sync pass done: {report.new_products_added} products, "
            f"{report.new_categories_added} categories, "
            f"{report.new_locations_added} locations added "
            f"({report.skipped} skipped of {report.total_files})"
        )
        return report


# =============================================================================
# PERIODIC SCHEDULER
# =============================================================================

class SyncScheduler:
    """
    Runs sync passes on a fixed interval inside the current event loop.

    A tick that fires while the previous pass is still running is
    skipped, not queued. The in-flight flag is process-local: separate
    processes do not coordinate, and rely on the ledger claim instead.
    """

    def __init__(self, sync_service: CatalogSyncService, interval_seconds: float):
        self.sync_service = sync_service
        self.interval_seconds = interval_seconds
        self.last_report: Optional[SyncReport] = None
        self.skipped_ticks = 0
        self._in_flight = False
        self._loop_task: Optional[asyncio.Task] = None
        self._pending: set[asyncio.Task] = set()

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    @property
    def is_running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    async def tick(self) -> Optional[SyncReport]:
        """
        Run one pass unless one is already in flight.

        Returns:
            The pass report, or None if skipped or failed
        """
        if self._in_flight:
            self.skipped_ticks += 1
            logger.debug("Previous sync pass still running, skipping tick")
            return None

        self._in_flight = True
        try:
            report = await self.sync_service.run_once()
            self.last_report = report
            return report
        except Exception as e:
            logger.exception(f"Image sync failed: {e}")
            return None
        finally:
            self._in_flight = False

    def _spawn_tick(self) -> asyncio.Task:
        task = asyncio.create_task(self.tick())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def trigger(self) -> Optional[SyncReport]:
        """
        Run a pass now, outside the schedule.

        Honors the in-flight flag like a scheduled tick, and stop()
        waits for it the same way.
        """
        return await self._spawn_tick()

    async def _run(self) -> None:
        while True:
            self._spawn_tick()
            await asyncio.sleep(self.interval_seconds)

    def start(self) -> None:
        """Start ticking; the first pass runs immediately."""
        if self.is_running:
            return
        logger.info(f"⏱️ Image sync scheduled every {self.interval_seconds}s")
        self._loop_task = asyncio.create_task(self._run())

    async def stop(self, wait: bool = True) -> None:
        """
        Stop scheduling new passes.

        A pass already in flight is not cancelled; with wait=True this
        coroutine returns once it has finished.
        """
        if self._loop_task is not None:
            self._loop_task.cancel()
            try:
                await self._loop_task
            except asyncio.CancelledError:
                pass
            self._loop_task = None

        if wait and self._pending:
            await asyncio.gather(*self._pending)
