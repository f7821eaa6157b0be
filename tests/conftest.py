import threading

import pytest

from dcompose.ENGINE.engine_client import EngineClient


class FakeEngineClient(EngineClient):
    """
    In-memory engine recording every call made to it.
    """
    def __init__(self, images=(), containers=None, fail_on=None):
        self.images = set(images)
        self.containers = containers or {}
        self.fail_on = fail_on or {}
        self.calls = []
        self.configs = {}
        self._next_id = 0
        self._lock = threading.Lock()

    def _record(self, method, *args):
        with self._lock:
            self.calls.append((method,) + args)
        failure = self.fail_on.get((method,) + args[:1])
        if failure is not None:
            raise failure

    def image_exists(self, name):
        self._record("image_exists", name)
        return name in self.images

    def pull_image(self, name):
        self._record("pull_image", name)
        self.images.add(name)

    def build_image(self, context_dir, tag, options=None):
        self._record("build_image", context_dir, tag, options)
        self.images.add(tag)
        return tag

    def create_container(self, config):
        self._record("create_container", config.name)
        with self._lock:
            self._next_id += 1
            handle = f"id{self._next_id}"
            self.configs[config.name] = config
            self.containers[handle] = {
                "Id": handle,
                "Name": "/" + config.name,
                "State": {"Running": False, "Status": "created"},
            }
        return handle

    def start_container(self, handle):
        self._record("start_container", handle)
        self.containers[handle]["State"] = {"Running": True, "Status": "running"}

    def stop_container(self, handle):
        self._record("stop_container", handle)
        self.containers[handle]["State"] = {"Running": False, "Status": "exited"}

    def kill_container(self, handle):
        self._record("kill_container", handle)
        self.containers[handle]["State"] = {"Running": False, "Status": "exited"}

    def delete_container(self, handle, force=True):
        self._record("delete_container", handle, force)
        self.containers.pop(handle, None)

    def inspect_container(self, handle):
        self._record("inspect_container", handle)
        return self.containers[handle]

    def list_containers(self, project=None):
        self._record("list_containers", project)
        summaries = []
        for handle, info in self.containers.items():
            labels = (info.get("Config") or {}).get("Labels") or {}
            if project and labels.get("com.docker.compose.project") != project:
                continue
            summaries.append({"Id": handle, "Names": [info["Name"]], "Labels": labels})
        return summaries

    def started(self):
        """Container names in the order they were started."""
        names = {handle: info["Name"].lstrip("/") for handle, info in self.containers.items()}
        return [names[call[1]] for call in self.calls if call[0] == "start_container"]


@pytest.fixture
def engine():
    return FakeEngineClient(images={"nginx:latest", "postgres:13", "redis:latest"})


@pytest.fixture
def engine_factory():
    return FakeEngineClient
