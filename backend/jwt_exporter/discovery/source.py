"""Secret source abstractions over the Kubernetes API."""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
import re
from collections.abc import Iterable
from typing import Any, Protocol

import yaml
from kubernetes import client, config

from ..errors import DiscoveryError, FatalStartupError
from .models import SecretBlob

LOGGER = logging.getLogger(__name__)


class SecretSource(Protocol):
    """Protocol for listing namespaces and the secrets inside them."""

    async def list_namespaces(self) -> list[str]:
        """Return the names of every namespace to inspect."""

    async def list_secrets(
        self, namespace: str, label_selector: str | None = None
    ) -> list[SecretBlob]:
        """Return the secrets of ``namespace``, filtered by ``label_selector`` when given."""


def build_core_api(kubeconfig_path: str = "") -> client.CoreV1Api:
    """Build a CoreV1 client from a kubeconfig file or the in-cluster service account.

    Without a path the in-cluster configuration is tried first, then the
    default kubeconfig location.
    """
    configuration = client.Configuration()
    try:
        if kubeconfig_path:
            config.load_kube_config(
                config_file=kubeconfig_path, client_configuration=configuration
            )
        else:
            try:
                config.load_incluster_config(client_configuration=configuration)
            except config.ConfigException:
                config.load_kube_config(client_configuration=configuration)
    except (config.ConfigException, OSError, yaml.YAMLError, TypeError) as exc:
        raise FatalStartupError(
            f"Error building from kubeconfig {kubeconfig_path or '<default>'}: {exc}"
        ) from exc
    return client.CoreV1Api(client.ApiClient(configuration))


class KubernetesSecretSource:
    """Lists namespaces and secrets with the official Kubernetes client."""

    def __init__(self, core_api: client.CoreV1Api) -> None:
        self._core_api = core_api

    @classmethod
    def from_kubeconfig(cls, kubeconfig_path: str = "") -> KubernetesSecretSource:
        return cls(build_core_api(kubeconfig_path))

    async def list_namespaces(self) -> list[str]:
        try:
            response = await asyncio.to_thread(self._core_api.list_namespace)
            return [item.metadata.name for item in response.items or []]
        except Exception as exc:
            raise DiscoveryError(f"Error requesting namespaces: {exc}") from exc

    async def list_secrets(
        self, namespace: str, label_selector: str | None = None
    ) -> list[SecretBlob]:
        kwargs: dict[str, Any] = {}
        if label_selector is not None:
            kwargs["label_selector"] = label_selector
        try:
            response = await asyncio.to_thread(
                self._core_api.list_namespaced_secret, namespace, **kwargs
            )
            return [_to_blob(item, namespace) for item in response.items or []]
        except Exception as exc:
            raise DiscoveryError(
                f"Error requesting secrets in namespace {namespace}: {exc}"
            ) from exc


def _to_blob(secret: Any, namespace: str) -> SecretBlob:
    metadata = secret.metadata
    name = metadata.name
    data: dict[str, bytes] = {}
    for key, encoded in (secret.data or {}).items():
        try:
            data[key] = base64.b64decode(encoded or "", validate=True)
        except (binascii.Error, ValueError):
            LOGGER.warning(
                "Skipping secret data entry that is not valid base64",
                extra={"secret_name": name, "secret_namespace": namespace, "secret_key": key},
            )
    return SecretBlob(
        name=name,
        namespace=metadata.namespace or namespace,
        labels=dict(metadata.labels or {}),
        annotations=dict(metadata.annotations or {}),
        data=data,
    )


_SET_TERM = re.compile(r"^\s*([^\s!=,()]+)\s+(in|notin)\s+\(([^)]*)\)\s*$")


def _split_terms(selector: str) -> list[str]:
    terms: list[str] = []
    depth = 0
    current: list[str] = []
    for char in selector:
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        if char == "," and depth == 0:
            terms.append("".join(current))
            current = []
            continue
        current.append(char)
    terms.append("".join(current))
    return [term.strip() for term in terms if term.strip()]


def _matches_term(labels: dict[str, str], term: str) -> bool:
    set_match = _SET_TERM.match(term)
    if set_match:
        key, operator, raw_values = set_match.groups()
        values = {value.strip() for value in raw_values.split(",") if value.strip()}
        if operator == "in":
            return labels.get(key) in values
        return labels.get(key) not in values
    if "!=" in term:
        key, value = (part.strip() for part in term.split("!=", 1))
        return labels.get(key) != value
    if "==" in term:
        key, value = (part.strip() for part in term.split("==", 1))
        return labels.get(key) == value
    if "=" in term:
        key, value = (part.strip() for part in term.split("=", 1))
        return labels.get(key) == value
    if term.startswith("!"):
        return term[1:].strip() not in labels
    return term in labels


def matches_selector(labels: dict[str, str], selector: str | None) -> bool:
    """Evaluate a Kubernetes label selector against ``labels``."""
    if not selector:
        return True
    return all(_matches_term(labels, term) for term in _split_terms(selector))


class InMemorySecretSource:
    """In-memory secret source used for tests and local runs."""

    def __init__(
        self,
        secrets: Iterable[SecretBlob] = (),
        namespaces: Iterable[str] | None = None,
    ) -> None:
        self.secrets: list[SecretBlob] = list(secrets)
        if namespaces is None:
            namespaces = sorted({secret.namespace for secret in self.secrets})
        self.namespaces: list[str] = list(namespaces)
        self.fail_namespaces = False
        self.failing_namespaces: set[str] = set()
        self.calls: list[tuple[str, str | None]] = []

    def add(self, secret: SecretBlob) -> None:
        self.secrets.append(secret)
        if secret.namespace not in self.namespaces:
            self.namespaces.append(secret.namespace)

    async def list_namespaces(self) -> list[str]:
        if self.fail_namespaces:
            raise DiscoveryError("Error requesting namespaces: source unavailable")
        return list(self.namespaces)

    async def list_secrets(
        self, namespace: str, label_selector: str | None = None
    ) -> list[SecretBlob]:
        self.calls.append((namespace, label_selector))
        if namespace in self.failing_namespaces:
            raise DiscoveryError(f"Error requesting secrets in namespace {namespace}")
        return [
            secret
            for secret in self.secrets
            if secret.namespace == namespace and matches_selector(secret.labels, label_selector)
        ]
