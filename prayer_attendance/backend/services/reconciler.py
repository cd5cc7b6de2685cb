from enum import Enum
from typing import Dict, List, Optional

from ..models.domain_models import AttendanceRecord, Student


class StudentSyncPolicy(str, Enum):
    REPLACE = "replace"
    MERGE = "merge"


def merge_attendance(remote: Optional[List[AttendanceRecord]], local: List[AttendanceRecord]) -> List[AttendanceRecord]:
    """
    Combines the remote snapshot with the local cache by record id.

    Remote records win. Local records whose id the remote does not know yet
    (written locally, remote write lost or still in flight) are kept.
    The result is ordered newest first. A missing remote snapshot leaves the
    local list untouched.
    """
    if remote is None:
        return list(local)

    by_id: Dict[str, AttendanceRecord] = {}
    for record in remote:
        by_id[record.id] = record
    for record in local:
        if record.id not in by_id:
            by_id[record.id] = record

    return sorted(by_id.values(), key=lambda r: r.timestamp, reverse=True)


def reconcile_students(
    remote: Optional[List[Student]],
    local: List[Student],
    policy: StudentSyncPolicy = StudentSyncPolicy.REPLACE,
) -> List[Student]:
    """
    Produces the working roster.

    An absent or empty remote roster never wipes the local one. Otherwise
    REPLACE takes the remote roster as-is and MERGE appends local students the
    remote roster does not contain.
    """
    if not remote:
        return list(local)

    policy = StudentSyncPolicy(policy)
    if policy is StudentSyncPolicy.REPLACE:
        return list(remote)

    remote_ids = {s.id for s in remote}
    return list(remote) + [s for s in local if s.id not in remote_ids]
