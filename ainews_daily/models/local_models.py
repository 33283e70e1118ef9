"""Local inference pipelines with a one-time capability probe.

Each configured route (language, classifier, summarizer, ner) is loaded once
at the start of a run. Routes that fail to load stay unavailable for the rest of
the run and callers use their rule-based paths instead; the next scheduled
run probes again.

Pipelines and their tokenizers are not thread-safe. Each route runs on its
own single worker thread, and callers wait on a per-route lock, so one
pipeline object never sees two calls at once.
"""

import asyncio
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from functools import partial
from typing import Any

from ..config import ModelConfig, ModelRoute, ModelSettings, get_model_config, get_settings
from ..errors import ModelLoadError
from ..logging import LoggingMixin, log_error

ModelPipeline = Callable[..., Any]
ModelLoader = Callable[[ModelRoute, ModelSettings], ModelPipeline]


class ModelState(Enum):
    """Lifecycle of the local model registry."""
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"


def load_transformers_pipeline(route: ModelRoute, settings: ModelSettings) -> ModelPipeline:
    """Build a Hugging Face ``transformers`` pipeline for a route.

    Raises:
        ModelLoadError: the library or the model weights are not available
    """
    try:
        from transformers import pipeline

        return pipeline(route.task, model=route.model, device=settings.device)
    except Exception as e:
        raise ModelLoadError(f"Cannot load {route.task} model {route.model}: {e}") from e


class LocalModels(LoggingMixin):
    """Registry of local inference pipelines, probed once per run."""

    ROUTES = ModelConfig.ROUTES

    def __init__(
        self,
        model_config: ModelConfig | None = None,
        settings: ModelSettings | None = None,
        loader: ModelLoader = load_transformers_pipeline,
        enabled: bool = True,
    ):
        self.model_config = model_config or get_model_config()
        self.settings = settings or get_settings().models
        self.loader = loader
        self.enabled = enabled
        self.state = ModelState.UNINITIALIZED
        self.routes: dict[str, ModelRoute] = {}
        self._pipelines: dict[str, ModelPipeline] = {}
        self._executors: dict[str, ThreadPoolExecutor] = {}
        self._run_locks: dict[str, asyncio.Lock] = {}
        self._load_lock = asyncio.Lock()

    @classmethod
    def rules_only(cls) -> "LocalModels":
        """A registry that never loads anything; every capability uses its fallback."""
        return cls(enabled=False)

    def available(self, route_name: str) -> bool:
        return route_name in self._pipelines

    def _load_route(self, route_name: str) -> ModelPipeline | None:
        try:
            route = self.model_config.get_route(route_name)
            self.routes[route_name] = route
            model_pipeline = self.loader(route, self.settings)
        except Exception as e:
            self.logger.warning("Model unavailable, using fallback", route=route_name, **log_error(e))
            return None

        self.logger.info("Model loaded", route=route_name, model=route.model)
        return model_pipeline

    async def load(self) -> "LocalModels":
        """Probe every route once. Later calls return the settled registry."""
        async with self._load_lock:
            if self.state is ModelState.READY:
                return self

            self.state = ModelState.LOADING
            if self.enabled:
                loop = asyncio.get_running_loop()
                for route_name in self.ROUTES:
                    model_pipeline = await loop.run_in_executor(None, self._load_route, route_name)
                    if model_pipeline is not None:
                        self._pipelines[route_name] = model_pipeline
                        self._executors[route_name] = ThreadPoolExecutor(
                            max_workers=1, thread_name_prefix=f"model-{route_name}"
                        )
                        self._run_locks[route_name] = asyncio.Lock()
            else:
                self.logger.info("Local models disabled, using rule-based paths")

            self.state = ModelState.READY
            self.logger.info("Local models ready", available=sorted(self._pipelines))
            return self

    async def run(self, route_name: str, *args: Any, **kwargs: Any) -> Any:
        """Call a loaded pipeline on its route thread with the per-call timeout.

        Calls into one route are serialized; the timeout covers the call
        itself, not the wait for the route.

        Raises:
            ModelLoadError: the route is not available
            TimeoutError: the call did not finish in time
        """
        if self.state is not ModelState.READY:
            raise RuntimeError("LocalModels.load() must complete before running models")

        model_pipeline = self._pipelines.get(route_name)
        if model_pipeline is None:
            raise ModelLoadError(f"Model route '{route_name}' is not available")

        options = {**self.routes[route_name].options, **kwargs}
        loop = asyncio.get_running_loop()
        async with self._run_locks[route_name]:
            # A timed-out call keeps its thread; the next call queues behind it
            return await asyncio.wait_for(
                loop.run_in_executor(self._executors[route_name], partial(model_pipeline, *args, **options)),
                timeout=self.settings.timeout_seconds,
            )

    def close(self) -> None:
        """Release the route threads. Calls still running finish in the background."""
        for executor in self._executors.values():
            executor.shutdown(wait=False, cancel_futures=True)
        self._executors.clear()
