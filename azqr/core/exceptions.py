"""
Custom Exceptions for Azqr
==========================

This module defines a hierarchy of custom exceptions used throughout
the application for consistent error handling and reporting.

Exception Hierarchy
-------------------
::

    AzqrError (base)
    ├── AzureClientError
    │   ├── CredentialsError
    │   └── ServiceError
    ├── ScannerError
    │   ├── ResourceFetchError
    │   └── ScanCancelledError
    ├── DiagnosticsLookupError
    ├── InvalidScopeError
    └── RuleRegistrationError

Only ``InvalidScopeError`` aborts a whole scan. Fetch failures are confined
to the scanner that raised them, and lookup failures are confined to the
single (resource, rule) result that needed the lookup.

Example
-------
>>> from azqr.core.exceptions import AzureClientError, CredentialsError
>>>
>>> try:
...     client.validate_credentials(subscription_id)
... except CredentialsError as e:
...     print(f"Invalid credentials: {e}")
... except AzureClientError as e:
...     print(f"Azure error: {e}")
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class AzqrError(Exception):
    """
    Base exception for all Azqr errors.

    All custom exceptions in the application inherit from this class,
    allowing for broad exception catching when needed.

    Parameters
    ----------
    message : str
        Human-readable error message.
    details : dict, optional
        Additional context about the error.

    Attributes
    ----------
    message : str
        The error message.
    details : dict
        Additional error details.

    Example
    -------
    >>> raise AzqrError("Something went wrong", details={"code": 500})
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (Details: {self.details})"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to dictionary for serialization.

        Returns
        -------
        dict
            Dictionary representation of the error.
        """
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


# =============================================================================
# Azure Client Exceptions
# =============================================================================


class AzureClientError(AzqrError):
    """
    Base exception for Azure client-related errors.

    Raised when there's an issue with Azure connectivity, authentication,
    or management API access.

    Parameters
    ----------
    message : str
        Human-readable error message.
    service : str, optional
        The management service that caused the error.
    subscription_id : str, optional
        The subscription the call was made against.
    details : dict, optional
        Additional context about the error.
    """

    def __init__(
        self,
        message: str,
        service: Optional[str] = None,
        subscription_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.service = service
        self.subscription_id = subscription_id
        full_details = details or {}
        if service:
            full_details["service"] = service
        if subscription_id:
            full_details["subscription_id"] = subscription_id
        super().__init__(message, full_details)


class CredentialsError(AzureClientError):
    """
    Raised when Azure credentials are invalid, missing, or expired.

    Example
    -------
    >>> raise CredentialsError(
    ...     "Azure credentials not found",
    ...     details={"hint": "Run 'az login' to set up credentials"}
    ... )
    """

    pass


class ServiceError(AzureClientError):
    """
    Raised when there's an error accessing a specific management API.

    Example
    -------
    >>> raise ServiceError(
    ...     "Failed to access Key Vault management API",
    ...     service="keyvault",
    ...     subscription_id="00000000-0000-0000-0000-000000000000"
    ... )
    """

    pass


# =============================================================================
# Scanner Exceptions
# =============================================================================


class ScannerError(AzqrError):
    """
    Base exception for scanner-related errors.

    Parameters
    ----------
    message : str
        Human-readable error message.
    resource_type : str, optional
        The type of resource being scanned.
    subscription_id : str, optional
        The subscription being scanned.
    details : dict, optional
        Additional context about the error.
    """

    def __init__(
        self,
        message: str,
        resource_type: Optional[str] = None,
        subscription_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.resource_type = resource_type
        self.subscription_id = subscription_id
        full_details = details or {}
        if resource_type:
            full_details["resource_type"] = resource_type
        if subscription_id:
            full_details["subscription_id"] = subscription_id
        super().__init__(message, full_details)


class ResourceFetchError(ScannerError):
    """
    Raised when unable to enumerate resources of one type.

    Example
    -------
    >>> raise ResourceFetchError(
    ...     "Failed to list key vaults",
    ...     resource_type="Microsoft.KeyVault/vaults",
    ...     subscription_id="00000000-0000-0000-0000-000000000000"
    ... )
    """

    pass


class ScanCancelledError(ScannerError):
    """
    Raised when a scan observes its cancellation signal.

    Attributes
    ----------
    partial_results : list of Result
        Rows the scanner finished before it stopped. Empty when the scan
        was cancelled before or during the fetch.

    Example
    -------
    >>> raise ScanCancelledError(
    ...     "Scan cancelled before fetch",
    ...     resource_type="Microsoft.Network/applicationGateways"
    ... )
    """

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.partial_results: List[Any] = []


# =============================================================================
# Evaluation Exceptions
# =============================================================================


class DiagnosticsLookupError(AzqrError):
    """
    Raised when the diagnostic-settings query for a resource fails.

    Rules that hit this error produce an undetermined result carrying the
    message as evidence; the scan itself continues.

    Parameters
    ----------
    message : str
        Human-readable error message.
    resource_id : str, optional
        The resource whose diagnostic settings were queried.
    details : dict, optional
        Additional context about the error.
    """

    def __init__(
        self,
        message: str,
        resource_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.resource_id = resource_id
        full_details = details or {}
        if resource_id:
            full_details["resource_id"] = resource_id
        super().__init__(message, full_details)


class InvalidScopeError(AzqrError):
    """
    Raised when a scan scope is malformed.

    Example
    -------
    >>> raise InvalidScopeError(
    ...     "Subscription id must be a GUID",
    ...     details={"subscription_id": "not-a-guid"}
    ... )
    """

    pass


class RuleRegistrationError(AzqrError):
    """
    Raised when a rule catalog is assembled inconsistently.

    Covers duplicate rule ids across the catalog and rules registered under
    a scanner for a different resource type.

    Example
    -------
    >>> raise RuleRegistrationError(
    ...     "Duplicate rule id 'kv-001'",
    ...     details={"rule_id": "kv-001"}
    ... )
    """

    pass
