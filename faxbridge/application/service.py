"""Wires the spool bridge components together and owns their threads."""
from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor

import httpx

from faxbridge.application.correlator import ArtifactCorrelator
from faxbridge.application.inbound import InboundMaterializer
from faxbridge.application.notifications import NotificationMatcher
from faxbridge.application.submitter import JobSubmitter
from faxbridge.core.errors import WatchSetupError
from faxbridge.core.settings import Settings
from faxbridge.core.spool import SpoolDirectory
from faxbridge.domain import PendingArtifact
from faxbridge.infrastructure import ArtifactCache, JobRegistry, WebhookFaxClient
from faxbridge.workers.watcher import SpoolWatcher

logger = logging.getLogger(__name__)


class BridgeService:
    """Owns the shared state (artifact cache, job registry, spool) and the workers."""

    def __init__(self, settings: Settings, *, http_client: httpx.Client | None = None) -> None:
        self.settings = settings
        self.spool = SpoolDirectory(settings.spool_dir.resolve())
        self.registry = JobRegistry()
        self.cache = ArtifactCache()

        self.client: WebhookFaxClient | None = None
        if settings.send_webhook_url:
            self.client = WebhookFaxClient(
                settings.send_webhook_url,
                settings.send_webhook_user,
                settings.send_webhook_pass,
                timeout=settings.send_timeout,
                http_client=http_client,
            )
        else:
            logger.warning("SEND_WEBHOOK_URL is not set; outbound faxes will fail")

        self.submitter = JobSubmitter(
            self.spool,
            self.registry,
            self.client,
            caller_number=settings.fax_number,
        )
        self.correlator = ArtifactCorrelator(self.cache, self.submitter, self.spool)
        self.matcher = NotificationMatcher(
            self.spool,
            self.registry,
            correlation_field=settings.notify_correlation_field,
        )
        self.materializer = InboundMaterializer(self.spool)

        self._executor = ThreadPoolExecutor(
            max_workers=settings.submit_workers,
            thread_name_prefix="faxbridge-dispatch",
        )
        self.watcher = SpoolWatcher(
            self.spool,
            self.correlator,
            self._executor,
            document_suffixes=settings.document_suffixes,
            settle_polls=settings.settle_polls,
            settle_interval=settings.settle_interval,
        )
        self._stop_sweeping = threading.Event()
        self._sweeper: threading.Thread | None = None
        self._started = False

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------
    def start(self, *, watch: bool = True) -> None:
        """Prepare the spool and start watching it.

        Raises :class:`WatchSetupError` when the spool cannot be created or
        watched; there is no useful degraded mode without it.
        """

        try:
            self.spool.ensure()
        except OSError as exc:
            raise WatchSetupError(f"cannot create spool directory {self.spool.root}: {exc}") from exc

        if watch:
            self.watcher.start()
            self._executor.submit(self.watcher.scan_existing)

        if self.settings.unpaired_retention > 0:
            self._stop_sweeping.clear()
            self._sweeper = threading.Thread(
                target=self._sweep_loop,
                name="faxbridge-sweeper",
                daemon=True,
            )
            self._sweeper.start()
        self._started = True
        logger.info("Fax bridge started on spool %s", self.spool.root)

    def stop(self) -> None:
        """Stop watching and give in-flight submissions the grace period to finish."""

        if not self._started:
            return
        self.watcher.stop(timeout=5.0)
        self._stop_sweeping.set()
        if self._sweeper is not None:
            self._sweeper.join(timeout=5.0)
            self._sweeper = None

        grace = self.settings.shutdown_grace
        drainer = threading.Thread(
            target=self._executor.shutdown,
            kwargs={"wait": True},
            name="faxbridge-drain",
            daemon=True,
        )
        drainer.start()
        drainer.join(timeout=grace)
        if drainer.is_alive():
            logger.warning("In-flight submissions still running after %.0fs grace period", grace)

        if self.client is not None:
            self.client.close()
        self._started = False
        logger.info("Fax bridge stopped")

    # ------------------------------------------------------------------
    # retention
    # ------------------------------------------------------------------
    def sweep_unpaired(self) -> list[PendingArtifact]:
        return self.correlator.expire_unpaired(self.settings.unpaired_retention)

    def _sweep_loop(self) -> None:
        while not self._stop_sweeping.wait(self.settings.sweep_interval):
            try:
                self.sweep_unpaired()
            except Exception:  # pylint: disable=broad-except
                logger.exception("Unpaired artifact sweep failed")
