from typing import List

from ...models.domain_models import CamelModel, Student


class ImportResponse(CamelModel):
    imported: int
    total: int
    students: List[Student]
