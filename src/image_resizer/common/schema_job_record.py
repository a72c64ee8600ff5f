"""Job records exchanged with a task runner.

A runner hands a ``JobRecord`` to ``ComputeModule.execute`` and gets back a
``JobRecordUpdate`` describing how the resize job ended.
"""

from enum import StrEnum
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field, JsonValue

TaskParamsRecord = dict[str, JsonValue]
TaskOutputRecord = dict[str, JsonValue]


class JobStatus(StrEnum):
    queued = "queued"
    processing = "processing"
    completed = "completed"
    error = "error"


class JobRecord(BaseModel):
    """A queued resize job: task name plus unvalidated parameters."""

    job_id: str
    task_type: str
    params: TaskParamsRecord

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")


class JobRecordUpdate(BaseModel):
    """Outcome of one execution.

    ``output`` holds the JSON-dumped task output on success; ``error_message``
    holds a user-safe message on failure.
    """

    status: JobStatus
    progress: int | None = Field(default=None, ge=0, le=100)
    output: TaskOutputRecord | None = None
    error_message: str | None = None

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")
