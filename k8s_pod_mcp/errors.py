"""Exception hierarchy shared by the backend, dispatcher and transports."""

from __future__ import annotations


class K8sMcpError(Exception):
    """Base class for all errors raised inside k8s_pod_mcp."""


class ConfigError(K8sMcpError):
    """A configuration candidate could not be read or failed validation."""


class BackendError(K8sMcpError):
    """The live Kubernetes backend could not be built or a call failed."""


class InvalidRequest(K8sMcpError):
    """The incoming message is not a well-formed JSON-RPC 2.0 request."""


class InvalidParamsError(K8sMcpError):
    """The request ``params`` value has the wrong shape for the method."""


class MissingParameterError(InvalidParamsError):
    """A required parameter is absent from ``params``."""

    def __init__(self, name: str) -> None:
        super().__init__(f"{name} is required")
        self.name = name
