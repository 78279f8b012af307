"""
Startup provisioning: schema migration followed by three seeding stages.

States, in order:

    NOT_STARTED -> MIGRATING_SCHEMA -> SEEDING_ROLES -> SEEDING_USERS
                -> SEEDING_REFERENCE_DATA -> DONE

Every stage is attempted once the previous attempt has finished, whether
it succeeded or not. Failures are logged with their traceback and
recorded in the returned `ProvisioningReport`; they never propagate to
the caller, so the API starts (possibly under-seeded) even when the
database is unhealthy. There is no timeout: a stage runs until it
returns or raises.
"""

from __future__ import annotations

import logging
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass, field
from enum import Enum
from functools import partial
from typing import Any, Awaitable, Callable, Sequence

from core.config import Settings

from . import seed
from .migrations import MigrationRunner

logger = logging.getLogger(__name__)


class Stage(str, Enum):
    SCHEMA_MIGRATION = "schema_migration"
    ROLE_SEED = "role_seed"
    USER_SEED = "user_seed"
    REFERENCE_DATA_SEED = "reference_data_seed"


class PipelineState(str, Enum):
    NOT_STARTED = "not_started"
    MIGRATING_SCHEMA = "migrating_schema"
    SEEDING_ROLES = "seeding_roles"
    SEEDING_USERS = "seeding_users"
    SEEDING_REFERENCE_DATA = "seeding_reference_data"
    DONE = "done"


STAGE_ORDER: tuple[Stage, ...] = tuple(Stage)

STAGE_STATES = {
    Stage.SCHEMA_MIGRATION: PipelineState.MIGRATING_SCHEMA,
    Stage.ROLE_SEED: PipelineState.SEEDING_ROLES,
    Stage.USER_SEED: PipelineState.SEEDING_USERS,
    Stage.REFERENCE_DATA_SEED: PipelineState.SEEDING_REFERENCE_DATA,
}


class StageStatus(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class StageResult:
    stage: Stage
    status: StageStatus
    detail: str = ""
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status is StageStatus.SUCCEEDED

    def as_dict(self) -> dict[str, Any]:
        return {
            "stage": self.stage.value,
            "status": self.status.value,
            "detail": self.detail,
            "error": self.error,
        }


@dataclass
class ProvisioningReport:
    results: list[StageResult] = field(default_factory=list)
    state: PipelineState = PipelineState.NOT_STARTED
    # Set when the failure boundary itself caught something (e.g. no connection).
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and bool(self.results) and all(r.ok for r in self.results)

    @property
    def outcome(self) -> str:
        return "success" if self.ok else "partial_failure"

    @property
    def failed_stages(self) -> list[Stage]:
        return [r.stage for r in self.results if not r.ok]

    def result_for(self, stage: Stage) -> StageResult | None:
        for result in self.results:
            if result.stage is stage:
                return result
        return None

    def as_dict(self) -> dict[str, Any]:
        return {
            "outcome": self.outcome,
            "state": self.state.value,
            "error": self.error,
            "stages": [r.as_dict() for r in self.results],
        }


StageFn = Callable[[Any], Awaitable[str | None]]


def _describe(exc: BaseException) -> str:
    return f"{exc.__class__.__name__}: {exc}"


class ProvisioningPipeline:
    """
    Single-use, strictly sequential runner for the provisioning stages.
    """

    def __init__(self, steps: Sequence[tuple[Stage, StageFn]]) -> None:
        stages = [stage for stage, _ in steps]
        expected = [stage for stage in STAGE_ORDER if stage in stages]
        if stages != expected:
            raise ValueError(f"Provisioning stages must run in order {[s.value for s in STAGE_ORDER]}.")
        self._steps = list(steps)
        self._report = ProvisioningReport()

    @property
    def state(self) -> PipelineState:
        return self._report.state

    @property
    def report(self) -> ProvisioningReport:
        return self._report

    async def run(self, conn) -> ProvisioningReport:
        if self._report.state is not PipelineState.NOT_STARTED:
            raise RuntimeError("Provisioning pipeline has already run.")

        for stage, step in self._steps:
            self._report.state = STAGE_STATES[stage]
            logger.info("provisioning_stage_started stage=%s", stage.value)
            try:
                detail = await step(conn)
            except Exception as exc:
                logger.exception("provisioning_stage_failed stage=%s", stage.value)
                result = StageResult(stage=stage, status=StageStatus.FAILED, error=_describe(exc))
            else:
                result = StageResult(stage=stage, status=StageStatus.SUCCEEDED, detail=detail or "")
                logger.info("provisioning_stage_done stage=%s detail=%s", stage.value, result.detail)
            self._report.results.append(result)

        self._report.state = PipelineState.DONE
        return self._report

    def absorb(self, exc: BaseException) -> ProvisioningReport:
        """
        Close the report after a failure outside any single stage.

        Stages that never got an attempt are marked skipped.
        """
        attempted = {r.stage for r in self._report.results}
        for stage, _ in self._steps:
            if stage not in attempted:
                self._report.results.append(StageResult(stage=stage, status=StageStatus.SKIPPED))
        self._report.error = _describe(exc)
        self._report.state = PipelineState.DONE
        return self._report


async def migrate_schema(conn) -> str:
    result = await MigrationRunner(conn).apply_pending()
    return result.summary()


def build_pipeline(settings: Settings) -> ProvisioningPipeline:
    return ProvisioningPipeline(
        [
            (Stage.SCHEMA_MIGRATION, migrate_schema),
            (Stage.ROLE_SEED, seed.seed_roles),
            (Stage.USER_SEED, partial(seed.seed_admin_user, settings=settings)),
            (Stage.REFERENCE_DATA_SEED, seed.seed_reference_data),
        ]
    )


async def provision(
    scope: Callable[[], AbstractAsyncContextManager],
    pipeline: ProvisioningPipeline,
) -> ProvisioningReport:
    """
    Run `pipeline` inside one scoped connection; never raises.
    """
    logger.info("provisioning_started")
    try:
        async with scope() as conn:
            report = await pipeline.run(conn)
    except Exception as exc:
        logger.exception("provisioning_failed")
        report = pipeline.absorb(exc)

    if report.ok:
        logger.info("provisioning_complete outcome=%s", report.outcome)
    else:
        logger.error(
            "provisioning_complete outcome=%s failed_stages=%s",
            report.outcome,
            ",".join(s.value for s in report.failed_stages),
        )
    return report
