"""
Commands accepted on the control channel.

Each command is tagged by its ``action`` field; ``Command`` is the closed
union the dispatcher matches on.
"""

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from seat_monitor.models.schemas import CourseInput


class _CommandBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class AddCourseCommand(_CommandBase):
    action: Literal["addCourse"] = "addCourse"
    course: CourseInput


class RemoveCourseCommand(_CommandBase):
    action: Literal["removeCourse"] = "removeCourse"
    course_key: str = Field(..., alias="courseKey")


class StartMonitoringCommand(_CommandBase):
    action: Literal["startMonitoring"] = "startMonitoring"
    interval_seconds: Optional[int] = Field(
        default=None,
        ge=1,
        alias="intervalSeconds",
        description="Falls back to the persisted interval when omitted",
    )


class StopMonitoringCommand(_CommandBase):
    action: Literal["stopMonitoring"] = "stopMonitoring"


class CheckNowCommand(_CommandBase):
    action: Literal["checkNow"] = "checkNow"


Command = Annotated[
    Union[
        AddCourseCommand,
        RemoveCourseCommand,
        StartMonitoringCommand,
        StopMonitoringCommand,
        CheckNowCommand,
    ],
    Field(discriminator="action"),
]

_command_adapter: TypeAdapter[Command] = TypeAdapter(Command)


def parse_command(payload: dict) -> Command:
    """Validate a raw ``{action, ...payload}`` message into a Command.

    Raises:
        pydantic.ValidationError: unknown action or invalid payload
    """
    return _command_adapter.validate_python(payload)
