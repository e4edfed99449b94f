"""ORM models; importing this package registers every table on ``Base.metadata``."""

from timeevidence.models.employee import CardAssignment, Employee
from timeevidence.models.supervisor import Supervisor
from timeevidence.models.swipe_event import SwipeEvent
from timeevidence.models.work_schedule import WorkSchedule

__all__ = ["CardAssignment", "Employee", "Supervisor", "SwipeEvent", "WorkSchedule"]
