"""Deployment pipeline.

Advances one deployment from ``pending`` to a terminal status:

1. build preparation delay, then ``pending -> building``
2. deploy delay, then ``building -> success`` (project becomes ``active``)
   or ``building -> failed`` (project untouched)

Any fault along the way ends the deployment in ``failed``. There is no
automatic retry; a new deployment is the only way to try again.
"""

import asyncio
import random
from functools import lru_cache
from typing import Awaitable, Callable
from uuid import UUID

from launchos.config import settings
from launchos.core.events import EventBus, get_event_bus
from launchos.core.exceptions import PipelineFault
from launchos.core.store import RecordStore, get_record_store
from launchos.models.deployment import Deployment, DeploymentStatus
from launchos.utils.clock import Clock, utc_now
from launchos.utils.logging import DiagnosticLog, get_diagnostic_log, get_logger

OutcomeDecider = Callable[[Deployment], bool]
Sleep = Callable[[float], Awaitable[None]]

LOG_CONTEXT = "deploy-project"


def random_outcome(
    success_rate: float, rng: random.Random | None = None
) -> OutcomeDecider:
    """Decide build outcomes at random, succeeding with ``success_rate``."""
    if not 0.0 <= success_rate <= 1.0:
        raise ValueError("success_rate must be between 0 and 1")
    rng = rng or random.Random()

    def decide(deployment: Deployment) -> bool:
        return rng.random() < success_rate

    return decide


def always(outcome: bool) -> OutcomeDecider:
    """Outcome decider with a fixed answer."""

    def decide(deployment: Deployment) -> bool:
        return outcome

    return decide


class DeploymentPipeline:
    """Runs the build/deploy state machine for single deployments."""

    def __init__(
        self,
        store: RecordStore | None = None,
        events: EventBus | None = None,
        diagnostics: DiagnosticLog | None = None,
        decide_outcome: OutcomeDecider | None = None,
        clock: Clock | None = None,
        sleep: Sleep | None = None,
        build_prep_delay: float | None = None,
        deploy_delay: float | None = None,
        timeout: float | None = None,
    ):
        self.store = store if store is not None else get_record_store()
        self.events = events if events is not None else get_event_bus()
        self.diagnostics = diagnostics if diagnostics is not None else get_diagnostic_log()
        self.decide_outcome = decide_outcome or random_outcome(
            settings.deploy_success_rate
        )
        self._clock = clock or utc_now
        self._sleep = sleep or asyncio.sleep
        self.build_prep_delay = (
            settings.deploy_build_prep_seconds
            if build_prep_delay is None
            else build_prep_delay
        )
        self.deploy_delay = (
            settings.deploy_duration_seconds if deploy_delay is None else deploy_delay
        )
        self.timeout = timeout
        self.logger = get_logger("pipeline")
        self._in_flight: set[UUID] = set()

    async def run(self, deployment_id: UUID) -> DeploymentStatus | None:
        """Run a pending deployment to completion.

        Returns the final status, or the current status unchanged when the
        deployment is not pending or already has a run in flight. Never
        raises for faults inside the run; those end in ``failed``.
        """
        deployment = await self.store.get_deployment(deployment_id)
        if deployment is None:
            self.logger.warning("pipeline.unknown_deployment", deployment_id=str(deployment_id))
            return None

        if deployment.status != DeploymentStatus.PENDING or deployment_id in self._in_flight:
            self.logger.warning(
                "pipeline.rejected",
                deployment_id=str(deployment_id),
                status=deployment.status.value,
                in_flight=deployment_id in self._in_flight,
            )
            return deployment.status

        self._in_flight.add(deployment_id)
        self.diagnostics.info(
            f"Processing deployment {deployment.build_id}",
            LOG_CONTEXT,
            {"deployment_id": str(deployment_id)},
        )
        try:
            if self.timeout is not None:
                return await asyncio.wait_for(self._advance(deployment), self.timeout)
            return await self._advance(deployment)
        except asyncio.CancelledError:
            await self._fail(deployment, "pipeline cancelled")
            raise
        except Exception as e:
            fault = PipelineFault(str(deployment_id), str(e) or type(e).__name__)
            self.logger.error(
                "pipeline.fault",
                deployment_id=str(deployment_id),
                build_id=deployment.build_id,
                error=fault.message,
                exc_info=True,
            )
            return await self._fail(deployment, fault.message)
        finally:
            self._in_flight.discard(deployment_id)

    async def _advance(self, deployment: Deployment) -> DeploymentStatus:
        await self._sleep(self.build_prep_delay)

        building = await self.store.set_deployment_status(
            deployment.id, DeploymentStatus.BUILDING
        )
        await self.events.publish_deployment(building)
        self.diagnostics.info(f"Building deployment {deployment.build_id}", LOG_CONTEXT)

        await self._sleep(self.deploy_delay)

        if self.decide_outcome(building):
            done, project = await self.store.complete_deployment(
                deployment.id, self._clock()
            )
            self.diagnostics.info(
                f"Deployment {deployment.build_id} completed successfully",
                LOG_CONTEXT,
                {"project_id": str(deployment.project_id), "project_found": project is not None},
            )
        else:
            done = await self.store.set_deployment_status(
                deployment.id, DeploymentStatus.FAILED
            )
            self.diagnostics.warn(f"Deployment {deployment.build_id} failed", LOG_CONTEXT)

        await self.events.publish_deployment(done)
        return done.status

    async def _fail(self, deployment: Deployment, reason: str) -> DeploymentStatus | None:
        """Force a non-terminal deployment into ``failed``; never raises."""
        try:
            current = await self.store.get_deployment(deployment.id)
            if current is None:
                return None
            if current.status.is_terminal:
                return current.status
            failed = await self.store.set_deployment_status(
                deployment.id, DeploymentStatus.FAILED
            )
            self.diagnostics.error(
                f"Error in deployment {deployment.build_id}",
                LOG_CONTEXT,
                {"reason": reason},
            )
            await self.events.publish_deployment(failed)
            return failed.status
        except Exception as e:
            self.logger.error(
                "pipeline.fault_write_failed",
                deployment_id=str(deployment.id),
                error=str(e),
                exc_info=True,
            )
            return None


@lru_cache
def get_pipeline() -> DeploymentPipeline:
    """Get the deployment pipeline singleton."""
    return DeploymentPipeline(timeout=settings.deploy_pipeline_timeout_seconds)
