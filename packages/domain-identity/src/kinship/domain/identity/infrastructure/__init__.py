"""Identity infrastructure: principal repository and directory adapter."""

from kinship.domain.identity.infrastructure.principal_directory import (
    SqlAlchemyPrincipalDirectory,
)
from kinship.domain.identity.infrastructure.principal_repository import PrincipalRepository

__all__ = [
    "PrincipalRepository",
    "SqlAlchemyPrincipalDirectory",
]
