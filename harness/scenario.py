"""
On-cluster build scenario orchestration.

A scenario provisions the build prerequisites and a fresh pool, opts the pool
into layering, waits for the build controller to start and finish a build,
and optionally rolls the resulting image out to nodes. Phases run strictly
in order; the first failure skips the rest and goes straight to cleanup.
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

from harness.cleanup import CleanupRegistry
from harness.client import ResourceStore
from harness.config import BuildConfiguration, HarnessConfig, ScenarioOptions
from harness.config.constants import (
    BASE_RENDERED_CONFIG,
    GLOBAL_PULL_SECRET_CLONE_NAME,
    IMAGESTREAM_NAME,
)
from harness.errors import CleanupError, ScenarioError
from harness.fixtures import (
    clone_global_pull_secret,
    create_build_config,
    create_dockerfile_overrides,
    create_image_stream,
    create_pool,
    get_builder_push_secret_name,
    get_image_stream_pullspec,
    get_random_node,
    label_node,
    opt_pool_into_layering,
    wait_for_node_image,
    wait_for_rendered_config,
)
from harness.node_exec import NodeExecutor
from harness.resources import POOL, BuildState, PoolBuildState, Snapshot
from harness.wait import Outcome, StateWaiter

logger = logging.getLogger(__name__)


class Phase(str, Enum):
    Provision = "provision"
    OptIn = "opt-in"
    BuildStart = "build-start"
    BuildComplete = "build-complete"
    Rollout = "rollout"
    Cleanup = "cleanup"

    def __str__(self) -> str:
        return self.value


@dataclass
class ScenarioResult:
    image_pullspec: str
    rendered_config: str | None = None
    # node name -> output of the verification command
    verification_output: dict[str, str] = field(default_factory=dict)


TERMINAL_STATES = (BuildState.Succeeded, BuildState.Failed)


def build_started(snap: Snapshot) -> Outcome:
    """A terminal state also counts: the build started and already finished."""
    if PoolBuildState(snap).state == BuildState.Idle:
        return Outcome.Continue
    return Outcome.Satisfied


def build_completed(start_state: BuildState) -> Callable[[Snapshot], Outcome]:
    """
    Predicate for the completion wait, seeded with the state the start wait saw.

    Build state only moves forward. Once the build left `Idle` a later `Idle`
    is a controller bug, and once it reported `Succeeded` any non-terminal state
    is one too. Both fail the wait like a failed build does.
    """
    started = start_state != BuildState.Idle
    finished = start_state in TERMINAL_STATES

    def predicate(snap: Snapshot) -> Outcome:
        nonlocal started, finished
        lps = PoolBuildState(snap)
        state = lps.state
        if state == BuildState.Failed:
            return Outcome.Unrecoverable
        if state == BuildState.Succeeded:
            if lps.has_os_image():
                return Outcome.Satisfied
            started = finished = True
            return Outcome.Continue
        if finished:
            logger.error(f"pool '{lps.name}' went from a finished build back to {state}")
            return Outcome.Unrecoverable
        if state == BuildState.Idle:
            if started:
                logger.error(f"pool '{lps.name}' regressed to Idle after its build started")
                return Outcome.Unrecoverable
            return Outcome.Continue
        started = True
        return Outcome.Continue

    return predicate


class ScenarioOrchestrator:
    """
    Runs one on-cluster build scenario end to end.

    Usage:
        orch = ScenarioOrchestrator(client, NodeExecutor(), HarnessConfig())
        result = orch.run(ScenarioOptions(builder_type="custom-pod-builder"))
        print(result.image_pullspec)
    """

    def __init__(
        self,
        store: ResourceStore,
        executor: NodeExecutor | None,
        config: HarnessConfig,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.store = store
        self.executor = executor
        self.config = config
        self._sleep = sleep
        self._clock = clock
        self.waiter = StateWaiter(store, config.poll_interval, logger, sleep=sleep, clock=clock)
        self._deadline: float | None = None

    def _budget(self, timeout: float) -> float:
        """Clamp a per-wait timeout to what is left of the scenario deadline."""
        if self._deadline is None:
            return timeout
        return max(0.0, min(timeout, self._deadline - self._clock()))

    def run(self, options: ScenarioOptions) -> ScenarioResult:
        """
        Execute every phase for `options`, then tear everything down.

        Teardown also runs when the run is interrupted (KeyboardInterrupt,
        SystemExit); the interruption then propagates unchanged.

        Raises:
            ScenarioError: Naming the failed phase and wrapping the cause.
        """
        logger.info(f"Running with ImageBuilder type: {options.builder_type}")
        if self.config.scenario_timeout is not None:
            self._deadline = self._clock() + self.config.scenario_timeout

        registry = CleanupRegistry(skip_cleanup=options.skip_cleanup or self.config.skip_cleanup)
        failure: ScenarioError | None = None
        completed = False
        try:
            result = self._run_phases(options, registry)
            completed = True
            return result
        except ScenarioError as e:
            logger.error(f"scenario failed: {e}")
            failure = e
            raise
        finally:
            if not completed and failure is None:
                logger.warning("scenario interrupted, tearing down before exiting")
            self._teardown(registry, failure, completed)

    def _teardown(self, registry: CleanupRegistry, failure: ScenarioError | None, completed: bool) -> None:
        try:
            registry.run_all()
        except CleanupError as e:
            if completed:
                raise ScenarioError(Phase.Cleanup, e) from e
            if failure is not None:
                failure.cleanup_error = e
                logger.error(f"cleanup after failed phase {failure.phase} also failed: {e}")
            else:
                logger.error(f"cleanup after interruption failed: {e}")

    def _run_phases(self, options: ScenarioOptions, registry: CleanupRegistry) -> ScenarioResult:
        phase = Phase.Provision
        try:
            rendered = self.provision(options, registry)

            phase = Phase.OptIn
            opt_pool_into_layering(self.store, registry, options.pool_name, self.config.retry)

            phase = Phase.BuildStart
            logger.info("Wait for build to start")
            started = self.waiter.wait_for(
                POOL,
                options.pool_name,
                build_started,
                timeout=self._budget(self.config.build_start_timeout),
                description=f"build start on pool '{options.pool_name}'",
            )
            start_state = PoolBuildState(started).state

            phase = Phase.BuildComplete
            logger.info("Build started! Waiting for completion...")
            done = self.waiter.wait_for(
                POOL,
                options.pool_name,
                build_completed(start_state),
                timeout=self._budget(self.config.build_timeout),
                description=f"build completion on pool '{options.pool_name}'",
            )
            pullspec = PoolBuildState(done).get_os_image()
            logger.info(f"Pool {options.pool_name!r} has finished building. Got image: {pullspec}")
            result = ScenarioResult(image_pullspec=pullspec, rendered_config=rendered)

            if options.verify_rollout:
                phase = Phase.Rollout
                result.verification_output = self.rollout(options, registry, pullspec)

            return result
        except Exception as e:
            raise ScenarioError(phase, e) from e

    def provision(self, options: ScenarioOptions, registry: CleanupRegistry) -> str:
        """Create the build prerequisites and the pool. Returns the pool's baseline rendered config."""
        ns = self.config.namespace
        push_secret = get_builder_push_secret_name(self.store, ns)

        create_image_stream(self.store, registry, IMAGESTREAM_NAME, ns)
        clone_global_pull_secret(self.store, registry, ns)
        final_pullspec = get_image_stream_pullspec(
            self.waiter,
            IMAGESTREAM_NAME,
            ns,
            timeout=self._budget(self.config.image_stream_timeout),
        )

        build_config = BuildConfiguration(
            builder_type=options.builder_type,
            base_pull_secret_name=GLOBAL_PULL_SECRET_CLONE_NAME,
            final_push_secret_name=push_secret,
            final_pullspec=final_pullspec,
        )
        create_build_config(self.store, registry, build_config, ns)

        create_pool(self.store, registry, options.pool_name)
        rendered = wait_for_rendered_config(
            self.waiter,
            options.pool_name,
            BASE_RENDERED_CONFIG,
            timeout=self._budget(self.config.rendered_config_timeout),
        )

        create_dockerfile_overrides(self.store, registry, options.overrides(), ns)
        return rendered

    def rollout(self, options: ScenarioOptions, registry: CleanupRegistry, pullspec: str) -> dict[str, str]:
        """Move the target nodes into the pool, wait for the new image, and run the verification command."""
        nodes = list(options.target_nodes) or [get_random_node(self.store, "worker")]
        outputs: dict[str, str] = {}
        for node in nodes:
            label_node(self.store, registry, node, options.pool_name, self.config.retry)
        for node in nodes:
            wait_for_node_image(self.waiter, node, pullspec, timeout=self._budget(self.config.rollout_timeout))
            if options.verify_command:
                if self.executor is None:
                    raise RuntimeError("a verification command needs a NodeExecutor")
                outputs[node] = self.executor.exec_on_node(node, *options.verify_command)
                logger.info(f"node {node}: {outputs[node]}")
        return outputs
