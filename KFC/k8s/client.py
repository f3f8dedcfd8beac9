"""
Kubernetes Client Module - Context discovery and deployment log following

Handles:
- Kubeconfig contexts (enumerate, current)
- Namespace and deployment listing
- Resolving a deployment to its first running pod
- Following that pod's log stream on a background thread
"""
import codecs
import logging
from threading import Event, Lock, Thread
from typing import Callable, Dict, List, Optional

import urllib3
from kubernetes import client, config
from kubernetes.client.rest import ApiException

from KFC.errors import ConnectivityError, StreamError
from KFC.util import now_ms

logger = logging.getLogger(__name__)

CHUNK_SIZE = 4096

LineCallback = Callable[[str, str, str, Optional[int]], None]


def _api_error_message(error: ApiException) -> str:
    return f"{error.status} {error.reason}".strip()


def label_selector(match_labels: Dict[str, str]) -> str:
    """Convert a matchLabels mapping to a label selector string"""
    return ",".join(f"{key}={value}" for key, value in match_labels.items())


class FollowHandle:
    """
    A running log stream for one pod/container

    Lines are delivered to on_line from a daemon thread. on_error is called
    at most once, when the stream fails or ends; never after cancel().
    """

    def __init__(self, pod: str, container: str, response,
                 on_line: LineCallback, on_error: Callable[[Exception], None]):
        self.pod = pod
        self.container = container
        self.response = response
        self.on_line = on_line
        self.on_error = on_error

        self.cancelled = Event()
        self.thread: Optional[Thread] = None
        self._reported = False
        self._lock = Lock()

    def start(self) -> "FollowHandle":
        self.thread = Thread(target=self._pump, name=f"logs-{self.pod}", daemon=True)
        self.thread.start()
        return self

    def cancel(self) -> None:
        """Stop delivering lines and close the underlying connection"""
        if self.cancelled.is_set():
            return
        self.cancelled.set()
        try:
            self.response.close()
        except Exception as e:
            logger.debug(f"Error closing log stream for {self.pod}: {e}")

    def __enter__(self) -> "FollowHandle":
        return self

    def __exit__(self, *exc) -> None:
        self.cancel()

    def _pump(self) -> None:
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        pending = ""
        error: Exception = StreamError(f"Log stream for {self.pod} ended")
        try:
            for chunk in self.response.stream(CHUNK_SIZE, decode_content=True):
                if self.cancelled.is_set():
                    return
                pending += decoder.decode(chunk)
                *lines, pending = pending.split("\n")
                for line in lines:
                    self._deliver(line)
            pending += decoder.decode(b"", final=True)
            self._deliver(pending)
        except (urllib3.exceptions.HTTPError, OSError, ValueError) as e:
            error = StreamError(f"Log stream for {self.pod} interrupted: {e}")
        finally:
            try:
                self.response.release_conn()
            except Exception as e:
                logger.debug(f"Error releasing connection for {self.pod}: {e}")

        if not self.cancelled.is_set():
            self._report(error)

    def _deliver(self, line: str) -> None:
        line = line.rstrip("\r")
        if line and not self.cancelled.is_set():
            self.on_line(self.pod, self.container, line, now_ms())

    def _report(self, error: Exception) -> None:
        with self._lock:
            if self._reported:
                return
            self._reported = True
        self.on_error(error)


class K8sLogClient:
    """Thin wrapper over the kubernetes package for the viewer's needs"""

    def __init__(self):
        self._clients: Dict[Optional[str], client.ApiClient] = {}
        self._lock = Lock()

    def _api_client(self, context: Optional[str]) -> client.ApiClient:
        with self._lock:
            if context not in self._clients:
                try:
                    self._clients[context] = config.new_client_from_config(context=context)
                except (config.ConfigException, OSError) as e:
                    raise ConnectivityError(f"Cannot load kubeconfig: {e}") from e
            return self._clients[context]

    def _core(self, context: Optional[str]) -> client.CoreV1Api:
        return client.CoreV1Api(self._api_client(context))

    def _apps(self, context: Optional[str]) -> client.AppsV1Api:
        return client.AppsV1Api(self._api_client(context))

    # Discovery

    def enumerate_contexts(self) -> List[str]:
        try:
            contexts, _ = config.list_kube_config_contexts()
        except (config.ConfigException, OSError) as e:
            raise ConnectivityError(f"Cannot load kubeconfig: {e}") from e
        return [ctx["name"] for ctx in contexts or []]

    def current_context(self) -> Optional[str]:
        try:
            _, active = config.list_kube_config_contexts()
        except (config.ConfigException, OSError) as e:
            raise ConnectivityError(f"Cannot load kubeconfig: {e}") from e
        return active["name"] if active else None

    def list_namespaces(self, context: Optional[str] = None, timeout_s: float = 10) -> List[str]:
        try:
            response = self._core(context).list_namespace(_request_timeout=timeout_s)
        except ApiException as e:
            raise ConnectivityError(f"Failed to list namespaces: {_api_error_message(e)}") from e
        except urllib3.exceptions.HTTPError as e:
            raise ConnectivityError(f"Failed to list namespaces: {e}") from e
        return sorted(item.metadata.name for item in response.items)

    def list_deployments(self, namespace: str, context: Optional[str] = None,
                         timeout_s: float = 10) -> List[str]:
        try:
            response = self._apps(context).list_namespaced_deployment(namespace, _request_timeout=timeout_s)
        except ApiException as e:
            raise ConnectivityError(f"Failed to list deployments: {_api_error_message(e)}") from e
        except urllib3.exceptions.HTTPError as e:
            raise ConnectivityError(f"Failed to list deployments: {e}") from e
        return [item.metadata.name for item in response.items if item.metadata and item.metadata.name]

    # Following

    def resolve_pod(self, deployment: str, namespace: str, context: Optional[str] = None,
                    timeout_s: float = 10) -> tuple[str, str]:
        """
        Find the pod and container to follow for a deployment

        Returns:
            Tuple of (pod name, container name)

        Raises:
            ConnectivityError: deployment missing, no pods, or API failure
        """
        apps = self._apps(context)
        core = self._core(context)

        try:
            dep = apps.read_namespaced_deployment(deployment, namespace, _request_timeout=timeout_s)
        except ApiException as e:
            if e.status == 404:
                raise ConnectivityError(
                    f'Deployment "{deployment}" not found in namespace "{namespace}". '
                    f"Use 'kubectl get deployments -n {namespace}' to list available deployments."
                ) from e
            raise ConnectivityError(f"Failed to read deployment: {_api_error_message(e)}") from e
        except urllib3.exceptions.HTTPError as e:
            raise ConnectivityError(f"Failed to read deployment: {e}") from e

        match_labels = dep.spec.selector.match_labels if dep.spec and dep.spec.selector else None
        if not match_labels:
            raise ConnectivityError("Deployment has no selector labels")

        try:
            pods = core.list_namespaced_pod(namespace, label_selector=label_selector(match_labels),
                                            _request_timeout=timeout_s)
        except ApiException as e:
            raise ConnectivityError(f"Failed to list pods: {_api_error_message(e)}") from e
        except urllib3.exceptions.HTTPError as e:
            raise ConnectivityError(f"Failed to list pods: {e}") from e

        if not pods.items:
            raise ConnectivityError(
                f'No pods found for deployment "{deployment}". The deployment may have 0 replicas.'
            )

        running = next((pod for pod in pods.items
                        if pod.status and pod.status.phase == "Running" and pod.metadata.name), None)
        if running is None:
            raise ConnectivityError("No running pods found")

        containers = running.spec.containers if running.spec else []
        return running.metadata.name, containers[0].name if containers else ""

    def follow_pod_logs(self, deployment: str, namespace: str, context: Optional[str], tail_lines: int,
                        on_line: LineCallback, on_error: Callable[[Exception], None],
                        on_progress: Optional[Callable[[str], None]] = None,
                        timeout_s: float = 10) -> FollowHandle:
        """
        Start following the first running pod of a deployment

        Raises:
            ConnectivityError: if the pod cannot be resolved or the stream cannot be opened
        """
        progress = on_progress or (lambda message: None)

        progress(f"Resolving deployment {deployment}...")
        pod, container = self.resolve_pod(deployment, namespace, context, timeout_s)

        progress(f"Opening log stream for {pod}...")
        kwargs = {
            "follow": True,
            "tail_lines": tail_lines,
            "_preload_content": False,
            # Connect timeout only; a followed stream may be idle indefinitely
            "_request_timeout": (timeout_s, None),
        }
        if container:
            kwargs["container"] = container
        try:
            response = self._core(context).read_namespaced_pod_log(pod, namespace, **kwargs)
        except ApiException as e:
            raise ConnectivityError(f"Failed to open log stream for {pod}: {_api_error_message(e)}") from e
        except urllib3.exceptions.HTTPError as e:
            raise ConnectivityError(f"Failed to open log stream for {pod}: {e}") from e

        logger.info(f"Following {namespace}/{pod} ({container or 'default container'})")
        progress(f"Streaming {pod}")
        return FollowHandle(pod, container, response, on_line, on_error).start()
