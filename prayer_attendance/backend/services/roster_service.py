import logging
from typing import List

from ..db.cache_client import CacheClient
from ..models.domain_models import Student
from ..modules.sheet_client import SheetClient
from .attendance_service import MutationResult, ServiceError
from .sync_service import default_students

logger = logging.getLogger(__name__)


class DuplicateStudentError(ServiceError):
    pass


def sort_roster(students: List[Student]) -> List[Student]:
    return sorted(students, key=lambda s: (s.class_name, s.name))


class RosterService:
    """
    Roster management for administrators. Each change rewrites the cached
    roster and then pushes the whole roster to the remote store.
    """

    def __init__(self, cache_client: CacheClient, sheet_client: SheetClient):
        self.cache_client = cache_client
        self.sheet_client = sheet_client

    async def _load(self) -> List[Student]:
        cached = await self.cache_client.load_students()
        return cached if cached is not None else default_students()

    async def _store(self, students: List[Student]) -> List[Student]:
        await self.cache_client.save_students(students)
        self.sheet_client.push_students(students)
        return students

    async def list_students(self) -> List[Student]:
        return await self._load()

    async def add_student(self, student: Student) -> List[Student]:
        roster = await self._load()
        if any(s.id == student.id for s in roster):
            raise DuplicateStudentError(f"A student with id '{student.id}' already exists.")

        logger.info(f"Adding student '{student.id}' to class '{student.class_name}'.")
        return await self._store(sort_roster(roster + [student]))

    async def update_student(self, student: Student) -> MutationResult:
        roster = await self._load()
        if not any(s.id == student.id for s in roster):
            return MutationResult(changed=False, message=f"Student '{student.id}' not found; nothing changed.")

        await self._store(sort_roster([student if s.id == student.id else s for s in roster]))
        logger.info(f"Student '{student.id}' updated.")
        return MutationResult(changed=True, message="Student updated.")

    async def delete_student(self, student_id: str) -> MutationResult:
        roster = await self._load()
        remaining = [s for s in roster if s.id != student_id]
        if len(remaining) == len(roster):
            return MutationResult(changed=False, message=f"Student '{student_id}' not found; nothing changed.")

        # Attendance records of the student are left in place (dangling references are tolerated).
        await self._store(remaining)
        logger.info(f"Student '{student_id}' deleted.")
        return MutationResult(changed=True, message="Student deleted.")

    async def import_students(self, imported: List[Student]) -> List[Student]:
        """Merges imported students by id: an imported row replaces the existing one."""
        if not imported:
            return await self._load()

        roster = await self._load()
        positions = {s.id: i for i, s in enumerate(roster)}
        for student in imported:
            if student.id in positions:
                roster[positions[student.id]] = student
            else:
                positions[student.id] = len(roster)
                roster.append(student)

        logger.info(f"Imported {len(imported)} student row(s); roster now has {len(roster)} students.")
        return await self._store(sort_roster(roster))
