"""Pydantic models for OCI Data Safe and Identity responses.

SDK responses are converted with ``oci.util.to_dict`` and validated into these
models right at the client boundary, so the rest of the package never handles
untyped JSON.

Design Principles:
- Graceful degradation: extra="allow" keeps fields we do not model
- Two key styles: snake_case (SDK ``to_dict``) and kebab-case (``oci`` CLI
  JSON, e.g. saved selections) both validate
- Null tag maps become empty dicts

Usage:
    target = TargetDatabase.model_validate(oci.util.to_dict(response.data))
    target.display_name, target.lifecycle_state, target.infrastructure_type
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator


def _kebab(name: str) -> str:
    return name.replace("_", "-")


_MODEL_CONFIG = {
    "extra": "allow",
    "populate_by_name": True,
    "alias_generator": _kebab,
}


class OCIResource(BaseModel):
    """Fields shared by every OCI resource we list."""

    id: str = Field(..., description="Resource OCID")
    compartment_id: str | None = Field(None, description="Owning compartment OCID")
    lifecycle_state: str | None = Field(None, description="Lifecycle state")
    time_created: datetime | None = Field(None, description="Creation timestamp")
    freeform_tags: dict[str, str] = Field(default_factory=dict)
    defined_tags: dict[str, dict[str, Any]] = Field(default_factory=dict)

    model_config = _MODEL_CONFIG

    @field_validator("freeform_tags", "defined_tags", mode="before")
    @classmethod
    def _null_tags_to_empty(cls, v: Any) -> Any:
        return v or {}

    def to_cli_dict(self) -> dict[str, Any]:
        """Dump with kebab-case keys, the shape the oci CLI prints."""
        return self.model_dump(mode="json", by_alias=True)


class TargetDatabase(OCIResource):
    """A Data Safe target database (list summary or full get response).

    Attributes:
        display_name: Name shown in the console; may be absent in odd records
        lifecycle_details: Free text explaining NEEDS_ATTENTION and friends
        database_details: Type specific block (database_type, infrastructure_type, ...)
        connection_option: Connector / private endpoint details (get only)
        associated_resource_ids: Connector or endpoint OCIDs (list summary only)
    """

    display_name: str | None = Field(None, description="Target display name")
    lifecycle_details: str | None = None
    description: str | None = None
    database_details: dict[str, Any] = Field(default_factory=dict)
    connection_option: dict[str, Any] | None = None
    associated_resource_ids: list[str] = Field(default_factory=list)

    @field_validator("database_details", mode="before")
    @classmethod
    def _null_details_to_empty(cls, v: Any) -> Any:
        return v or {}

    @field_validator("associated_resource_ids", mode="before")
    @classmethod
    def _null_ids_to_empty(cls, v: Any) -> Any:
        return v or []

    @property
    def database_type(self) -> str | None:
        return self._detail("database_type")

    @property
    def infrastructure_type(self) -> str | None:
        return self._detail("infrastructure_type")

    @property
    def connector_id(self) -> str | None:
        """OCID of the on-prem connector this target uses, if any."""
        if not self.connection_option:
            return None
        for key in ("on_prem_connector_id", "on-prem-connector-id", "on-premise-connector-id"):
            if self.connection_option.get(key):
                return self.connection_option[key]
        return None

    def _detail(self, key: str) -> str | None:
        # List summaries carry these at the top level, get responses inside database_details
        for source in (self.model_extra or {}, self.database_details):
            value = source.get(key) or source.get(_kebab(key))
            if value:
                return value
        return None


class Compartment(OCIResource):
    """An IAM compartment (the listing scope)."""

    name: str = Field(..., description="Compartment name")
    description: str | None = None


class OnPremConnector(OCIResource):
    """A Data Safe on-premises connector."""

    display_name: str | None = None
    description: str | None = None
    available_version: str | None = None
    created_version: str | None = None
    lifecycle_details: str | None = None
