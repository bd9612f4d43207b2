"""Mutating target operations: refresh, tag and service updates, delete."""

from typing import TYPE_CHECKING, Any

import structlog

from ..utils.exceptions import RemoteFetchError, ValidationError
from .identifiers import require_ocid
from .listing_cache import ListingCache

if TYPE_CHECKING:
    from ..cloud.client import OCIDataSafeClient

logger = structlog.get_logger(__name__)


class TargetOperations:
    """
    Run mutations against Data Safe targets.

    Every operation takes an OCID (resolve names first), looks up the display
    name for the log line and honours dry-run. After a real mutation the
    listing cache is invalidated so the next listing reflects the change;
    a batch refresh invalidates once at the end.
    """

    def __init__(
        self,
        client: "OCIDataSafeClient",
        listing_cache: ListingCache | None = None,
        dry_run: bool = False,
    ) -> None:
        self.client = client
        self.listing_cache = listing_cache
        self.dry_run = dry_run

    def _name(self, target_id: str) -> str:
        return self.client.get_target(target_id).display_name or target_id

    def _changed(self) -> None:
        if self.listing_cache is not None:
            self.listing_cache.invalidate()

    def refresh(
        self, target_id: str, current: int = 1, total: int = 1, wait: bool = False
    ) -> bool:
        """
        Refresh one target.

        The listing cache is not touched here; ``refresh_all`` invalidates it
        once after the batch.

        Args:
            target_id: Target OCID
            current: Position in a batch, for progress logging
            total: Batch size, for progress logging
            wait: Block until the refresh work request finished

        Returns:
            True if the refresh was submitted, False in dry-run mode

        Raises:
            RemoteFetchError: If the call failed, or a waited-for refresh FAILED
        """
        require_ocid(target_id, "target")
        name = self._name(target_id)

        if self.dry_run:
            logger.info("[DRY-RUN] Would refresh target", target=name, ocid=target_id)
            return False

        mode = "waiting for completion" if wait else "async"
        logger.info(f"[{current}/{total}] Refreshing target ({mode})", target=name)
        status = self.client.refresh_target(target_id, wait=wait)
        if wait:
            if status == "FAILED":
                raise RemoteFetchError("refresh_target", f"refresh of {name} FAILED")
            logger.info("Refresh finished", target=name, status=status)
        return True

    def refresh_all(self, target_ids: list[str], wait: bool = False) -> int:
        """
        Refresh several targets one after the other.

        Returns:
            Number of refreshes submitted (0 in dry-run mode)
        """
        submitted = 0
        try:
            for index, target_id in enumerate(target_ids, start=1):
                if self.refresh(target_id, current=index, total=len(target_ids), wait=wait):
                    submitted += 1
        finally:
            if submitted:
                self._changed()
        return submitted

    def update_service(self, target_id: str, service_name: str) -> bool:
        """Point one target at another database service name."""
        require_ocid(target_id, "target")
        if not service_name or not service_name.strip():
            raise ValidationError("Service name is required", value=service_name)

        target = self.client.get_target(target_id)
        name = target.display_name or target_id
        logger.info("Updating service name for target", target=name, service_name=service_name)

        if self.dry_run:
            logger.info("[DRY-RUN] Would update service", target=name, service_name=service_name)
            return False

        self.client.update_target_service(target_id, target.database_details, service_name.strip())
        self._changed()
        return True

    def update_tags(
        self,
        target_id: str,
        freeform_tags: dict[str, str] | None = None,
        defined_tags: dict[str, dict[str, Any]] | None = None,
    ) -> bool:
        """Replace freeform and/or defined tags on one target."""
        require_ocid(target_id, "target")
        if freeform_tags is None and defined_tags is None:
            raise ValueError("Nothing to update: give freeform and/or defined tags")

        name = self._name(target_id)

        if self.dry_run:
            logger.info("[DRY-RUN] Would update tags", target=name, ocid=target_id)
            logger.debug("Tag payload", freeform_tags=freeform_tags, defined_tags=defined_tags)
            return False

        logger.info("Updating tags for target", target=name)
        self.client.update_target_tags(target_id, freeform_tags, defined_tags)
        self._changed()
        return True

    def delete(self, target_id: str) -> bool:
        """Delete one target registration."""
        require_ocid(target_id, "target")
        name = self._name(target_id)

        if self.dry_run:
            logger.info("[DRY-RUN] Would delete target", target=name, ocid=target_id)
            return False

        logger.warning("Deleting target", target=name, ocid=target_id)
        self.client.delete_target(target_id)
        self._changed()
        return True
