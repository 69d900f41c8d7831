"""K8sPlatform: Pods and Services via the kubernetes Python client.

The API host comes from the master URL handed to the constructor; there
is no kubeconfig lookup and no module-level client state.
"""

from __future__ import annotations

import logging
from typing import Any

from etcd_operator.errors import PlatformAPIError

logger = logging.getLogger(__name__)


class K8sPlatform:
    """Platform that talks to the API server through ``CoreV1Api``.

    Every kubernetes error is re-raised as PlatformAPIError carrying the
    HTTP status and reason when the API reported one.
    """

    def __init__(self, master: str, verify_ssl: bool = True) -> None:
        self._master = master.rstrip("/")
        self._verify_ssl = verify_ssl
        self._core: Any = None

    @property
    def master(self) -> str:
        return self._master

    # --- Platform protocol ---

    def create_service(self, namespace: str, body: dict[str, Any]) -> str:
        name = body["metadata"]["name"]
        self._call(
            f"create service {namespace}/{name}",
            "create_namespaced_service",
            namespace=namespace,
            body=body,
        )
        return name

    def create_pod(self, namespace: str, body: dict[str, Any]) -> str:
        name = body["metadata"]["name"]
        self._call(
            f"create pod {namespace}/{name}",
            "create_namespaced_pod",
            namespace=namespace,
            body=body,
        )
        return name

    def list_services(self, namespace: str, label_selector: str) -> list[str]:
        result = self._call(
            f"list services {namespace} ({label_selector})",
            "list_namespaced_service",
            namespace=namespace,
            label_selector=label_selector,
        )
        return [item.metadata.name for item in result.items]

    def list_pods(self, namespace: str, label_selector: str) -> list[str]:
        result = self._call(
            f"list pods {namespace} ({label_selector})",
            "list_namespaced_pod",
            namespace=namespace,
            label_selector=label_selector,
        )
        return [item.metadata.name for item in result.items]

    def delete_service(self, namespace: str, name: str) -> None:
        self._call(
            f"delete service {namespace}/{name}",
            "delete_namespaced_service",
            name=name,
            namespace=namespace,
        )

    def delete_pod(self, namespace: str, name: str) -> None:
        self._call(
            f"delete pod {namespace}/{name}",
            "delete_namespaced_pod",
            name=name,
            namespace=namespace,
        )

    # --- Private: client setup ---

    def _get_api_client(self) -> Any:
        """Build an ApiClient pointed at the configured master."""
        from kubernetes import client

        configuration = client.Configuration()
        configuration.host = self._master
        configuration.verify_ssl = self._verify_ssl
        return client.ApiClient(configuration)

    def _get_core_api(self) -> Any:
        if self._core is None:
            from kubernetes import client

            self._core = client.CoreV1Api(self._get_api_client())
        return self._core

    # --- Private: calls ---

    def _call(self, operation: str, method_name: str, **kwargs: Any) -> Any:
        logger.debug("%s", operation)
        try:
            method = getattr(self._get_core_api(), method_name)
            return method(**kwargs)
        except Exception as exc:
            # Detect kubernetes ApiException by class name to avoid import
            if type(exc).__name__ == "ApiException":
                raise PlatformAPIError(
                    f"{operation} failed: K8s API error ({exc.status}): {exc.reason}",
                    status=exc.status,
                    reason=exc.reason,
                ) from exc
            raise PlatformAPIError(f"{operation} failed: {exc}") from exc
