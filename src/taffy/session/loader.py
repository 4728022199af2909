"""SDK loading.

The two Google SDKs are loaded lazily and concurrently. A loaded SDK is
attached to an explicit ``SdkEnvironment`` owned by one session manager
instead of living in process-wide globals.
"""

from __future__ import annotations

import asyncio
import importlib
import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from taffy.google.exceptions import ScriptLoadError

logger = logging.getLogger(__name__)


class SdkEnvironment:
    """Namespaces of the SDKs loaded so far, keyed by script name."""

    def __init__(self) -> None:
        self._namespaces: dict[str, Any] = {}

    def attach(self, name: str, namespace: Any) -> None:
        self._namespaces[name] = namespace

    def detach(self, name: str) -> None:
        self._namespaces.pop(name, None)

    def get(self, name: str) -> Any | None:
        return self._namespaces.get(name)

    def has(self, name: str) -> bool:
        return name in self._namespaces


@dataclass
class SdkScript:
    """One SDK bundle and its completion callbacks.

    ``on_load`` receives the loaded namespace and may return an awaitable,
    which the loader awaits as part of the load.
    """

    name: str
    module: str
    on_load: Callable[[Any], Awaitable[None] | None]
    on_error: Callable[[ScriptLoadError], None]


class ScriptLoader:
    """Loads SDK scripts concurrently, one task per script.

    Unmounting forgets the injected loads but does not cancel them: a load
    already in flight still completes and still fires its callbacks.
    """

    def __init__(
        self,
        environment: SdkEnvironment,
        scripts: list[SdkScript],
        importer: Callable[[str], Any] = importlib.import_module,
    ):
        self.environment = environment
        self.scripts = scripts
        self._importer = importer
        self._tasks: dict[str, asyncio.Task] = {}
        self._in_flight: set[asyncio.Task] = set()

    @property
    def mounted(self) -> bool:
        return bool(self._tasks)

    def mount(self) -> None:
        """Start loading every script. Requires a running event loop."""
        if self._tasks:
            raise RuntimeError("Scripts are already mounted")

        for script in self.scripts:
            task = asyncio.create_task(self._load(script), name=f"load-{script.name}")
            self._tasks[script.name] = task
            self._in_flight.add(task)
            task.add_done_callback(self._in_flight.discard)

    async def _load(self, script: SdkScript) -> None:
        try:
            namespace = await asyncio.to_thread(self._importer, script.module)
        except Exception as e:
            logger.error(f"Failed to load {script.name} script ({script.module}): {e}")
            script.on_error(ScriptLoadError(script.name, e))
            return

        logger.info(f"{script.name.upper()} script loaded.")
        if script.name in self._tasks:
            self.environment.attach(script.name, namespace)
        result = script.on_load(namespace)
        if inspect.isawaitable(result):
            await result

    async def wait(self) -> None:
        """Wait for every mounted load, including its ``on_load`` work."""
        if self._tasks:
            await asyncio.gather(*self._tasks.values())

    def unmount(self) -> None:
        """Remove the injected scripts from the environment."""
        for name in self._tasks:
            self.environment.detach(name)
        self._tasks.clear()
