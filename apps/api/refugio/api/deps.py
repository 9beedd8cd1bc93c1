from __future__ import annotations

from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from refugio.repositories.factory import RepositoryRegistry


@lru_cache(maxsize=1)
def get_registry() -> RepositoryRegistry:
    return RepositoryRegistry()


Registry = Annotated[RepositoryRegistry, Depends(get_registry)]
