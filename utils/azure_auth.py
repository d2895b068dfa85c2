# utils/azure_auth.py
import os, logging
from functools import lru_cache
from azure.identity import DefaultAzureCredential, ManagedIdentityCredential
from azure.identity.aio import DefaultAzureCredential as AsyncDefaultAzureCredential
from azure.identity.aio import ManagedIdentityCredential as AsyncManagedIdentityCredential

logging.getLogger("azure.identity").setLevel(logging.WARNING)

# “prod-safe” DAC (only env + MI)
_DAC_EXCLUSIONS = dict(
    exclude_environment_credential=False,
    exclude_managed_identity_credential=False,
    exclude_workload_identity_credential=True,
    exclude_shared_token_cache_credential=True,
    exclude_visual_studio_code_credential=True,
    exclude_cli_credential=True,
    exclude_powershell_credential=True,
    exclude_interactive_browser_credential=True,
)


def _using_managed_identity() -> bool:
    # Container Apps / Functions / App Service MI signals
    return bool(
        os.getenv("AZURE_CLIENT_ID")
        or os.getenv("MSI_ENDPOINT")
        or os.getenv("IDENTITY_ENDPOINT")
    )


@lru_cache(maxsize=1)
def get_credential():
    if _using_managed_identity():
        return ManagedIdentityCredential(client_id=os.getenv("AZURE_CLIENT_ID"))
    return DefaultAzureCredential(**_DAC_EXCLUSIONS)


def create_async_credential():
    """Async twin of get_credential for azure.*.aio clients. Not cached: the caller closes it."""
    if _using_managed_identity():
        return AsyncManagedIdentityCredential(client_id=os.getenv("AZURE_CLIENT_ID"))
    return AsyncDefaultAzureCredential(**_DAC_EXCLUSIONS)
