"""OCI Data Safe directory client.

Wraps the ``oci`` Python SDK calls the toolkit needs behind a small,
synchronous, typed interface.

Architecture Overview:
---------------------
- Lazy SDK client initialization: nothing touches ~/.oci/config until the
  first call, so commands that never reach OCI (e.g. ``--input-json``) work
  without credentials
- Pagination is handled here with ``oci.pagination.list_call_get_all_results``;
  callers always see one aggregated list
- Responses are converted with ``oci.util.to_dict`` and validated into the
  pydantic models from ``response_models``
- No retries: the SDK is built with ``NoneRetryStrategy`` and every failure is
  surfaced as ``RemoteFetchError``

Authentication is whatever the OCI config profile provides (API key, security
token, ...); this module only selects the profile, region and config file.
"""

from collections.abc import Callable
from typing import Any, Protocol, TypeVar

import oci
import structlog
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ..config import OCIConfig
from ..core.lifecycle import LifecycleFilter
from ..observability.logger import tracing_enabled
from ..constants import DEFAULT_REFRESH_WAIT_SECONDS, REFRESH_DONE_STATES
from ..utils.exceptions import RemoteFetchError, ValidationError
from .response_models import Compartment, OnPremConnector, TargetDatabase

logger = structlog.get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

_SERVICE_DETAIL_MODELS: dict[str, type] = {
    "INSTALLED_DATABASE": oci.data_safe.models.InstalledDatabaseDetails,
    "DATABASE_CLOUD_SERVICE": oci.data_safe.models.DatabaseCloudServiceDetails,
}


class DirectoryClient(Protocol):
    """The remote operations the resolution and caching layer depends on."""

    def list_targets(
        self, compartment_id: str, lifecycle_states: LifecycleFilter = frozenset()
    ) -> list[TargetDatabase]: ...

    def get_target(self, target_id: str) -> TargetDatabase: ...

    def list_compartments(self) -> list[Compartment]: ...

    def get_compartment(self, compartment_id: str) -> Compartment: ...

    def list_connectors(self, compartment_id: str) -> list[OnPremConnector]: ...


class OCIDataSafeClient:
    """
    Data Safe and Identity client backed by the OCI Python SDK.

    Features:
    - Target database list/get/refresh/update/delete
    - On-prem connector listing
    - Compartment listing and lookup (tenancy subtree)
    """

    def __init__(self, config: OCIConfig, sdk_config: dict[str, Any] | None = None) -> None:
        """
        Initialize the client.

        Args:
            config: Profile, region and config file selection
            sdk_config: Pre-loaded SDK config dict (skips reading the config file)
        """
        self.config = config
        self._sdk_config = sdk_config
        self._data_safe: oci.data_safe.DataSafeClient | None = None
        self._identity: oci.identity.IdentityClient | None = None

    @property
    def sdk_config(self) -> dict[str, Any]:
        """OCI SDK configuration dict, loaded from the config file on first use."""
        if self._sdk_config is None:
            config_file = str(self.config.config_file.expanduser())
            logger.debug(
                "Loading OCI config", config_file=config_file, profile=self.config.profile
            )
            try:
                sdk_config = oci.config.from_file(
                    file_location=config_file, profile_name=self.config.profile
                )
                if self.config.region:
                    sdk_config["region"] = self.config.region
                oci.config.validate_config(sdk_config)
            except (
                oci.exceptions.ConfigFileNotFound,
                oci.exceptions.ProfileNotFound,
                oci.exceptions.InvalidConfig,
            ) as e:
                raise RemoteFetchError("load_config", str(e)) from e
            self._sdk_config = sdk_config
        return self._sdk_config

    @property
    def data_safe(self) -> oci.data_safe.DataSafeClient:
        if self._data_safe is None:
            self._data_safe = oci.data_safe.DataSafeClient(
                self._client_config(), retry_strategy=oci.retry.NoneRetryStrategy()
            )
        return self._data_safe

    @property
    def identity(self) -> oci.identity.IdentityClient:
        if self._identity is None:
            self._identity = oci.identity.IdentityClient(
                self._client_config(), retry_strategy=oci.retry.NoneRetryStrategy()
            )
        return self._identity

    @property
    def tenancy_id(self) -> str:
        return self.sdk_config["tenancy"]

    def _client_config(self) -> dict[str, Any]:
        # SDK request logging only at TRACE
        return {**self.sdk_config, "log_requests": tracing_enabled()}

    # ------------------------------------------------------------------
    # Targets
    # ------------------------------------------------------------------

    def list_targets(
        self, compartment_id: str, lifecycle_states: LifecycleFilter = frozenset()
    ) -> list[TargetDatabase]:
        """
        List target databases in a compartment and all its sub-compartments.

        The list API filters on a single lifecycle state only. A single-state
        filter is pushed to the service; larger filters are applied here.

        Args:
            compartment_id: Compartment OCID
            lifecycle_states: States to keep (empty set = all)

        Returns:
            Every matching target across all pages
        """
        kwargs: dict[str, Any] = {
            "compartment_id_in_subtree": True,
            "access_level": "ACCESSIBLE",
        }
        if len(lifecycle_states) == 1:
            (state,) = lifecycle_states
            kwargs["lifecycle_state"] = state.value

        logger.debug(
            "Listing Data Safe targets",
            compartment_id=compartment_id,
            lifecycle=sorted(s.value for s in lifecycle_states),
        )
        items = self._list_all(
            "list_targets", self.data_safe.list_target_databases, compartment_id, **kwargs
        )
        targets = self._validate_many("list_targets", TargetDatabase, items)

        if len(lifecycle_states) > 1:
            wanted = {s.value for s in lifecycle_states}
            targets = [t for t in targets if t.lifecycle_state in wanted]
        return targets

    def get_target(self, target_id: str) -> TargetDatabase:
        """Get full details (including connection option) for one target."""
        logger.debug("Getting Data Safe target", target_id=target_id)
        data = self._call("get_target", self.data_safe.get_target_database, target_id)
        return self._validate("get_target", TargetDatabase, data)

    def refresh_target(
        self,
        target_id: str,
        wait: bool = False,
        max_wait_seconds: int = DEFAULT_REFRESH_WAIT_SECONDS,
    ) -> str | None:
        """
        Start a refresh of a target database.

        Args:
            target_id: Target OCID
            wait: Block until the refresh work request SUCCEEDED or FAILED
            max_wait_seconds: Give up waiting after this long

        Returns:
            Final work request status when waiting, otherwise None
        """
        if not wait:
            self._call("refresh_target", self.data_safe.refresh_target_database, target_id)
            return None

        composite = oci.data_safe.DataSafeClientCompositeOperations(self.data_safe)
        data = self._call(
            "refresh_target",
            composite.refresh_target_database_and_wait_for_state,
            target_id,
            wait_for_states=list(REFRESH_DONE_STATES),
            waiter_kwargs={"max_wait_seconds": max_wait_seconds},
        )
        return getattr(data, "status", None)

    def update_target_tags(
        self,
        target_id: str,
        freeform_tags: dict[str, str] | None = None,
        defined_tags: dict[str, dict[str, Any]] | None = None,
    ) -> None:
        """Replace freeform and/or defined tags on a target (None leaves a set untouched)."""
        details = oci.data_safe.models.UpdateTargetDatabaseDetails(
            freeform_tags=freeform_tags, defined_tags=defined_tags
        )
        self._call(
            "update_target_tags", self.data_safe.update_target_database, target_id, details
        )

    def update_target_service(
        self, target_id: str, database_details: dict[str, Any], service_name: str
    ) -> None:
        """
        Point a target at another database service.

        ``database_details`` is the target's current details block; it is sent
        back unchanged apart from ``service_name``.
        """
        database_type = database_details.get("database_type")
        model = _SERVICE_DETAIL_MODELS.get(database_type or "")
        if model is None:
            raise ValidationError(
                f"Target database type {database_type} has no service name", value=target_id
            )

        known = model().swagger_types
        fields = {k: v for k, v in database_details.items() if k in known and k != "database_type"}
        fields["service_name"] = service_name
        details = oci.data_safe.models.UpdateTargetDatabaseDetails(database_details=model(**fields))
        self._call(
            "update_target_service", self.data_safe.update_target_database, target_id, details
        )

    def delete_target(self, target_id: str) -> None:
        """Delete a target database registration."""
        self._call("delete_target", self.data_safe.delete_target_database, target_id)

    # ------------------------------------------------------------------
    # Connectors
    # ------------------------------------------------------------------

    def list_connectors(self, compartment_id: str) -> list[OnPremConnector]:
        """List on-prem connectors in a compartment subtree."""
        logger.debug("Listing on-prem connectors", compartment_id=compartment_id)
        items = self._list_all(
            "list_connectors",
            self.data_safe.list_on_prem_connectors,
            compartment_id,
            compartment_id_in_subtree=True,
            access_level="ACCESSIBLE",
        )
        return self._validate_many("list_connectors", OnPremConnector, items)

    # ------------------------------------------------------------------
    # Compartments
    # ------------------------------------------------------------------

    def list_compartments(self) -> list[Compartment]:
        """List every compartment in the tenancy subtree."""
        logger.debug("Listing compartments", tenancy_id=self.tenancy_id)
        items = self._list_all(
            "list_compartments",
            self.identity.list_compartments,
            self.tenancy_id,
            compartment_id_in_subtree=True,
            access_level="ANY",
        )
        return self._validate_many("list_compartments", Compartment, items)

    def get_compartment(self, compartment_id: str) -> Compartment:
        data = self._call("get_compartment", self.identity.get_compartment, compartment_id)
        return self._validate("get_compartment", Compartment, data)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _call(self, operation: str, method: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """Invoke a single SDK method and return ``response.data``."""
        logger.debug("OCI call", operation=operation, args=args)
        try:
            response = method(*args, **kwargs)
        except oci.exceptions.ServiceError as e:
            raise RemoteFetchError(operation, e.message, status_code=e.status) from e
        except oci.exceptions.RequestException as e:
            raise RemoteFetchError(operation, str(e)) from e
        except oci.exceptions.CompositeOperationError as e:
            raise RemoteFetchError(operation, f"waiting failed: {e.cause}") from e
        return response.data

    def _list_all(
        self, operation: str, method: Callable[..., Any], *args: Any, **kwargs: Any
    ) -> list[Any]:
        """Invoke a list SDK method across all pages."""
        logger.debug("OCI paginated call", operation=operation, args=args)
        try:
            response = oci.pagination.list_call_get_all_results(method, *args, **kwargs)
        except oci.exceptions.ServiceError as e:
            raise RemoteFetchError(operation, e.message, status_code=e.status) from e
        except oci.exceptions.RequestException as e:
            raise RemoteFetchError(operation, str(e)) from e
        return list(response.data or [])

    @staticmethod
    def _validate(operation: str, model: type[ModelT], data: Any) -> ModelT:
        try:
            return model.model_validate(oci.util.to_dict(data))
        except PydanticValidationError as e:
            raise RemoteFetchError(operation, f"unexpected response shape: {e}") from e

    @classmethod
    def _validate_many(cls, operation: str, model: type[ModelT], items: list[Any]) -> list[ModelT]:
        return [cls._validate(operation, model, item) for item in items]
