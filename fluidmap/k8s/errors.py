"""Errors raised by Query Interface implementations."""

from __future__ import annotations


class QueryError(Exception):
    """A read against the cluster failed.

    Attributes:
        target: What was being read, e.g. ``StatefulSet list in fluid-system``.
        status: HTTP status from the API server, when there was one.
    """

    def __init__(self, message: str, target: str = "", status: int | None = None) -> None:
        super().__init__(message)
        self.target = target
        self.status = status


class NotFoundError(QueryError):
    """The requested object does not exist."""


class ForbiddenError(QueryError):
    """The caller lacks RBAC permission for the read."""


class UnknownRuntimeTypeError(QueryError):
    """A runtime type tag is not in the supported-type table."""

    def __init__(self, runtime_type: str) -> None:
        super().__init__(f"unknown runtime type: {runtime_type!r}", target="Runtime")
        self.runtime_type = runtime_type


class ClusterUnreachableError(QueryError):
    """The API server could not be reached at all."""
