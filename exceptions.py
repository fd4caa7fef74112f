"""Custom exceptions for deploywatch."""

from __future__ import annotations


class DeployWatchError(Exception):
    """Base exception for deploywatch errors."""


class PagesAPIError(DeployWatchError):
    """The Pages deployments API could not be queried for a project."""

    def __init__(self, project: str, status_code: int | None, detail: str = ""):
        self.project = project
        self.status_code = status_code
        self.detail = detail
        where = f"HTTP {status_code}" if status_code is not None else "request failed"
        message = f"Pages API {where} for {project}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class StateStoreError(DeployWatchError):
    """A tracked-state record could not be read or written."""

    def __init__(self, key: str, detail: str):
        self.key = key
        self.detail = detail
        super().__init__(f"State store error for {key}: {detail}")
