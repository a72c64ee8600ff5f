"""ComputeModule - Abstract base class for compute tasks."""

from abc import ABC, abstractmethod
from typing import Callable, Generic

from loguru import logger
from pydantic import ValidationError

from .errors import ImageProcessingError
from .schema_job import P, Q
from .schema_job_record import JobRecord, JobRecordUpdate, JobStatus


class ComputeModule(ABC, Generic[P, Q]):
    """
    Stateless, template-method based compute module.

    - Params are validated once and passed through
    - run() does the work and returns metadata only
    - execute() turns every failure into an error update, never raises
    """

    schema: type[P]

    @property
    @abstractmethod
    def task_type(self) -> str: ...

    def setup(self) -> None:
        """Optional per-execution setup."""
        pass

    @abstractmethod
    async def run(
        self,
        params: P,
        progress_callback: Callable[[int], None] | None = None,
    ) -> Q:
        """
        Execute task.

        - May write output files named by params
        - Must return metadata only
        """
        ...

    async def execute(
        self,
        job_record: JobRecord,
        progress_callback: Callable[[int], None] | None = None,
    ) -> JobRecordUpdate:
        try:
            params = self.schema.model_validate(job_record.params)

            self.setup()

            output = await self.run(params, progress_callback)

            return JobRecordUpdate(
                status=JobStatus.completed,
                output=output.model_dump(mode="json"),
                progress=100,
            )

        except ValidationError as exc:
            return JobRecordUpdate(
                status=JobStatus.error,
                error_message=f"Invalid parameters: {exc}",
            )

        except ImageProcessingError as exc:
            logger.error(f"Job {job_record.job_id} ({self.task_type}) failed: {exc}")
            return JobRecordUpdate(
                status=JobStatus.error,
                error_message=exc.public_safe_message or str(exc),
            )

        except Exception as exc:
            logger.exception(f"Job {job_record.job_id} ({self.task_type}) crashed")
            return JobRecordUpdate(
                status=JobStatus.error,
                error_message=str(exc),
            )
