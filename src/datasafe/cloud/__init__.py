"""OCI Data Safe / Identity client and response models."""

from .client import DirectoryClient, OCIDataSafeClient
from .response_models import Compartment, OnPremConnector, TargetDatabase

__all__ = [
    "DirectoryClient",
    "OCIDataSafeClient",
    "TargetDatabase",
    "Compartment",
    "OnPremConnector",
]
