"""
Standardized pagination parameters for consistent API pagination.
"""

from fastapi import Query
from typing import Annotated

# Student-facing lists
PaginationSkip = Annotated[int, Query(ge=0, description="Number of records to skip")]
PaginationLimit = Annotated[
    int, Query(ge=1, le=100, description="Maximum number of records to return")
]

# Admin triage lists
PaginationLimitLarge = Annotated[
    int, Query(ge=1, le=200, description="Maximum number of records to return")
]
