"""
Azure Client Module
===================

Provides a thread-safe wrapper around the Azure SDK for building
management clients and issuing the diagnostic-settings query.

This module implements the Azure client layer of the application
architecture, handling all direct communication with Azure Resource
Manager.

Classes
-------
AzureClient
    Main client class for Azure operations.

Example
-------
>>> from azqr.core.azure_client import AzureClient
>>>
>>> client = AzureClient()
>>> client.validate_credentials("00000000-0000-0000-0000-000000000000")
True
>>> kv = client.get_keyvault_client("00000000-0000-0000-0000-000000000000")
>>> vaults = list(kv.vaults.list_by_subscription())

Notes
-----
The credential and the management clients are created lazily and cached
per (service, subscription) pair.

See Also
--------
azure.identity : Credential providers.
azure.mgmt : Management plane SDK packages.
"""

from __future__ import annotations

import logging
import re
import threading
from typing import Any, Callable, Dict, List, Optional, Tuple

from azure.core.exceptions import (
    AzureError,
    ClientAuthenticationError,
    ResourceNotFoundError,
)
from azure.identity import DefaultAzureCredential
from azure.mgmt.appcontainers import ContainerAppsAPIClient
from azure.mgmt.keyvault import KeyVaultManagementClient
from azure.mgmt.monitor import MonitorManagementClient
from azure.mgmt.network import NetworkManagementClient
from azure.mgmt.resource import SubscriptionClient
from azure.mgmt.web import WebSiteManagementClient

from azqr.core.exceptions import (
    AzureClientError,
    CredentialsError,
    DiagnosticsLookupError,
    ServiceError,
)

# Module logger
logger = logging.getLogger(__name__)

_SUBSCRIPTION_RE = re.compile(r"^/subscriptions/([^/]+)", re.IGNORECASE)


class AzureClient:
    """
    Thread-safe Azure client factory with credential management.

    Parameters
    ----------
    credential : TokenCredential, optional
        Credential to authenticate with. Defaults to
        ``DefaultAzureCredential`` (environment, managed identity,
        Azure CLI login, ...).
    retry_total : int, default=3
        Maximum retries for failed management API calls.
    timeout : int, default=30
        Connection and read timeout in seconds.

    Attributes
    ----------
    retry_total : int
        Retry attempts for API calls.
    timeout : int
        Request timeout in seconds.

    Examples
    --------
    >>> client = AzureClient()
    >>> for sub in client.list_subscriptions():
    ...     print(sub["subscription_id"], sub["display_name"])

    >>> client.has_diagnostic_settings(vault.id)
    False

    Raises
    ------
    CredentialsError
        If Azure credentials are not found or invalid.
    ServiceError
        If a management API call fails.
    """

    # Supported management services and their client classes
    SUPPORTED_SERVICES: Dict[str, Tuple[str, Callable[..., Any]]] = {
        "keyvault": ("Azure Key Vault", KeyVaultManagementClient),
        "network": ("Azure Networking", NetworkManagementClient),
        "appcontainers": ("Azure Container Apps", ContainerAppsAPIClient),
        "web": ("Azure App Service", WebSiteManagementClient),
        "monitor": ("Azure Monitor", MonitorManagementClient),
    }

    def __init__(
        self,
        credential: Optional[Any] = None,
        retry_total: int = 3,
        timeout: int = 30,
    ) -> None:
        self.retry_total = retry_total
        self.timeout = timeout

        self._credential = credential
        self._clients: Dict[Tuple[str, str], Any] = {}
        self._lock = threading.Lock()

        logger.debug("Initialized AzureClient")

    @property
    def credential(self) -> Any:
        """
        Get or create the credential (lazy initialization).

        Raises
        ------
        CredentialsError
            If no credential source is available.
        """
        if self._credential is None:
            try:
                self._credential = DefaultAzureCredential()
                logger.debug("Created DefaultAzureCredential")
            except Exception as e:
                raise CredentialsError(
                    f"Failed to create Azure credential: {e}",
                    details={"hint": "Run 'az login' or set AZURE_CLIENT_ID, "
                             "AZURE_TENANT_ID and AZURE_CLIENT_SECRET"},
                ) from e
        return self._credential

    def _get_client(self, service_name: str, subscription_id: str) -> Any:
        """
        Get or create a management client for a service and subscription.

        Parameters
        ----------
        service_name : str
            Key of ``SUPPORTED_SERVICES`` (e.g. 'keyvault').
        subscription_id : str
            Subscription the client operates on.

        Returns
        -------
        object
            The management client.

        Raises
        ------
        ServiceError
            If the service is unknown or the client cannot be created.
        """
        key = (service_name, subscription_id)
        with self._lock:
            if key in self._clients:
                return self._clients[key]

            if service_name not in self.SUPPORTED_SERVICES:
                raise ServiceError(
                    f"Unsupported service '{service_name}'",
                    service=service_name,
                )

            _, client_class = self.SUPPORTED_SERVICES[service_name]
            try:
                client = client_class(
                    self.credential,
                    subscription_id,
                    retry_total=self.retry_total,
                    connection_timeout=self.timeout,
                    read_timeout=self.timeout,
                )
            except CredentialsError:
                raise
            except Exception as e:
                logger.exception(f"Failed to create {service_name} client")
                raise ServiceError(
                    f"Failed to create {service_name} client: {e}",
                    service=service_name,
                    subscription_id=subscription_id,
                ) from e

            self._clients[key] = client
            logger.debug(f"Created {service_name} client for {subscription_id}")
            return client

    # =========================================================================
    # Service Client Accessors
    # =========================================================================

    def get_keyvault_client(self, subscription_id: str) -> KeyVaultManagementClient:
        """Key Vault management client."""
        return self._get_client("keyvault", subscription_id)

    def get_network_client(self, subscription_id: str) -> NetworkManagementClient:
        """Network management client (Application Gateways)."""
        return self._get_client("network", subscription_id)

    def get_container_apps_client(self, subscription_id: str) -> ContainerAppsAPIClient:
        """Container Apps management client (managed environments)."""
        return self._get_client("appcontainers", subscription_id)

    def get_web_client(self, subscription_id: str) -> WebSiteManagementClient:
        """App Service management client (plans)."""
        return self._get_client("web", subscription_id)

    def get_monitor_client(self, subscription_id: str) -> MonitorManagementClient:
        """Azure Monitor management client (diagnostic settings)."""
        return self._get_client("monitor", subscription_id)

    # =========================================================================
    # Diagnostic Settings
    # =========================================================================

    def has_diagnostic_settings(self, resource_id: str) -> bool:
        """
        Query whether a resource has at least one diagnostic setting.

        This is the remote lookup behind the per-scan diagnostics cache.

        Parameters
        ----------
        resource_id : str
            Full ARM resource id.

        Returns
        -------
        bool
            True if any diagnostic setting targets the resource.

        Raises
        ------
        DiagnosticsLookupError
            If the id is not a subscription-scoped ARM id or the query
            failed (network, authorization, throttling).
        """
        match = _SUBSCRIPTION_RE.match(resource_id or "")
        if not match:
            raise DiagnosticsLookupError(
                "Resource id is not a subscription-scoped ARM id",
                resource_id=resource_id,
            )

        try:
            monitor = self.get_monitor_client(match.group(1))
            settings = monitor.diagnostic_settings.list(resource_uri=resource_id)
            return any(True for _ in settings)
        except (AzureError, AzureClientError) as e:
            raise DiagnosticsLookupError(
                f"Failed to query diagnostic settings: {getattr(e, 'message', None) or e}",
                resource_id=resource_id,
            ) from e

    # =========================================================================
    # Credential and Subscription Operations
    # =========================================================================

    def _subscription_client(self) -> SubscriptionClient:
        return SubscriptionClient(
            self.credential,
            retry_total=self.retry_total,
            connection_timeout=self.timeout,
            read_timeout=self.timeout,
        )

    def validate_credentials(self, subscription_id: str) -> bool:
        """
        Validate credentials by reading the target subscription.

        Parameters
        ----------
        subscription_id : str
            Subscription that will be scanned.

        Returns
        -------
        bool
            True if the credential can read the subscription.

        Raises
        ------
        CredentialsError
            If credentials are invalid, expired, or missing, or the
            subscription is not visible to them.
        """
        try:
            subscription = self._subscription_client().subscriptions.get(subscription_id)
            logger.info(
                f"Credentials validated for subscription "
                f"{subscription.subscription_id} ({subscription.display_name})"
            )
            return True

        except ClientAuthenticationError as e:
            raise CredentialsError(
                "Invalid Azure credentials",
                details={"hint": "Run 'az login' or check the service principal"},
            ) from e
        except ResourceNotFoundError as e:
            raise CredentialsError(
                f"Subscription {subscription_id} not found or not accessible",
                subscription_id=subscription_id,
            ) from e
        except CredentialsError:
            raise
        except Exception as e:
            logger.exception("Credential validation failed")
            raise CredentialsError(f"Failed to validate credentials: {e}") from e

    def list_subscriptions(self) -> List[Dict[str, str]]:
        """
        List subscriptions visible to the credential.

        Returns
        -------
        list of dict
            Dicts with 'subscription_id', 'display_name' and 'state', sorted
            by display name.

        Raises
        ------
        AzureClientError
            If unable to list subscriptions.
        """
        try:
            subscriptions = [
                {
                    "subscription_id": s.subscription_id,
                    "display_name": s.display_name or "",
                    "state": str(getattr(s.state, "value", s.state) or ""),
                }
                for s in self._subscription_client().subscriptions.list()
            ]
        except ClientAuthenticationError as e:
            raise CredentialsError("Invalid Azure credentials") from e
        except CredentialsError:
            raise
        except Exception as e:
            logger.exception("Failed to list subscriptions")
            raise AzureClientError(f"Failed to list subscriptions: {e}") from e

        logger.info(f"Discovered {len(subscriptions)} subscriptions")
        return sorted(subscriptions, key=lambda s: s["display_name"].lower())

    # =========================================================================
    # Context Manager Support
    # =========================================================================

    def close(self) -> None:
        """Close every cached management client."""
        with self._lock:
            for client in self._clients.values():
                close = getattr(client, "close", None)
                if close:
                    close()
            self._clients.clear()

    def __enter__(self) -> AzureClient:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return (
            f"AzureClient(clients={len(self._clients)}, "
            f"retry_total={self.retry_total}, timeout={self.timeout})"
        )
