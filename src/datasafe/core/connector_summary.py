"""Group targets by the on-prem connector they are reached through."""

from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import structlog

from ..cloud.response_models import OnPremConnector, TargetDatabase
from ..constants import NO_CONNECTOR_ID, NO_CONNECTOR_NAME, UNKNOWN_CONNECTOR_NAME
from ..utils.exceptions import RemoteFetchError

if TYPE_CHECKING:
    from ..cloud.client import DirectoryClient

logger = structlog.get_logger(__name__)


@dataclass
class ConnectorGroup:
    """
    Targets sharing one on-prem connector.

    Attributes:
        connector_id: Connector OCID, or ``no-connector`` for cloud targets
        connector_name: Connector display name
        targets: Targets in this group, in listing order
    """

    connector_id: str
    connector_name: str
    targets: list[TargetDatabase] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.targets)

    def state_counts(self) -> dict[str, int]:
        """Target count per lifecycle state, sorted by state."""
        counts = Counter(t.lifecycle_state or "UNKNOWN" for t in self.targets)
        return dict(sorted(counts.items()))

    def to_dict(self) -> dict[str, object]:
        return {
            "connector_id": self.connector_id,
            "connector_name": self.connector_name,
            "lifecycle_states": [
                {"state": state, "count": count} for state, count in self.state_counts().items()
            ],
            "total": self.total,
        }


def connector_of(target: TargetDatabase, connector_ids: set[str]) -> str | None:
    """
    Find the connector a target goes through.

    List summaries only name the connector in ``associated_resource_ids``; full
    records carry it in the connection option.
    """
    for resource_id in target.associated_resource_ids:
        if resource_id in connector_ids:
            return resource_id
    return target.connector_id


def has_connector_hints(targets: list[TargetDatabase]) -> bool:
    return any(t.associated_resource_ids or t.connector_id for t in targets)


def with_connection_details(
    client: "DirectoryClient", targets: list[TargetDatabase]
) -> list[TargetDatabase]:
    """
    Replace list summaries by full records so connection options are known.

    Targets whose details cannot be fetched are dropped with a warning.
    """
    logger.info(
        "No connector ids in the listing, fetching target details", targets=len(targets)
    )
    detailed = []
    for index, target in enumerate(targets, start=1):
        try:
            detailed.append(client.get_target(target.id))
        except RemoteFetchError as e:
            logger.warning("Failed to fetch target details", target_id=target.id, error=str(e))
        if index % 200 == 0:
            logger.info(f"Fetched details for {index}/{len(targets)} targets")
    return detailed


def group_by_connector(
    targets: list[TargetDatabase], connectors: list[OnPremConnector]
) -> list[ConnectorGroup]:
    """
    Group targets by connector.

    Groups are ordered by connector name; targets without a connector end up
    in a single ``No Connector (Cloud)`` group. A connector id that is not in
    ``connectors`` (outside the scope, or deleted) is named ``Unknown Connector``.
    """
    names = {c.id: c.display_name or c.id for c in connectors}
    known = set(names)
    groups: dict[str, ConnectorGroup] = {}

    for target in targets:
        connector_id = connector_of(target, known) or NO_CONNECTOR_ID
        group = groups.get(connector_id)
        if group is None:
            if connector_id == NO_CONNECTOR_ID:
                name = NO_CONNECTOR_NAME
            else:
                name = names.get(connector_id, UNKNOWN_CONNECTOR_NAME)
            group = groups[connector_id] = ConnectorGroup(connector_id, name)
        group.targets.append(target)

    return sorted(
        groups.values(), key=lambda g: (g.connector_id == NO_CONNECTOR_ID, g.connector_name)
    )
