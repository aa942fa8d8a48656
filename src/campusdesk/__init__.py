"""campusdesk - query cache and REST client for a school admin dashboard."""

# API facade
from campusdesk.api import (
    CampusApi,
    DashboardEndpoint,
    LoggingNotifier,
    Notifier,
    ResourceEndpoint,
    connect,
)

# Configuration
from campusdesk.config import Settings, configure_logging

# Duration parsing
from campusdesk.duration import parse_duration

# Errors
from campusdesk.errors import (
    ApiError,
    CampusDeskError,
    FormValidationError,
    NetworkError,
    RequestTimeout,
    ResponseParseError,
)

# Keys
from campusdesk.keys import key_to_path, resource_key, serialize_key

# Mutations
from campusdesk.mutation import Mutation

# Query cache
from campusdesk.query_client import QueryClient, Subscription, create_query_client

# Requests
from campusdesk.request import RequestExecutor

# Resources
from campusdesk.resources import DASHBOARD_METRICS_KEY, RESOURCES, Resource

# Core types
from campusdesk.types import (
    Duration,
    MutationResult,
    MutationStatus,
    QueryState,
    QueryStatus,
    ResourceKey,
)

__version__ = "0.1.0"

__all__ = [
    "DASHBOARD_METRICS_KEY",
    "RESOURCES",
    "ApiError",
    "CampusApi",
    "CampusDeskError",
    "DashboardEndpoint",
    "Duration",
    "FormValidationError",
    "LoggingNotifier",
    "Mutation",
    "MutationResult",
    "MutationStatus",
    "NetworkError",
    "Notifier",
    "QueryClient",
    "QueryState",
    "QueryStatus",
    "RequestExecutor",
    "RequestTimeout",
    "Resource",
    "ResourceEndpoint",
    "ResourceKey",
    "ResponseParseError",
    "Settings",
    "Subscription",
    "configure_logging",
    "connect",
    "create_query_client",
    "key_to_path",
    "parse_duration",
    "resource_key",
    "serialize_key",
]
