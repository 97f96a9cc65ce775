"""Listing repository interface.

Extends ``IRepository[Listing]`` with the row lock an adoption request
takes while it checks that the listing is open.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.listings.models import Listing


class IListingRepository(IRepository["Listing"]):
    @abstractmethod
    def get_for_update(self, id: str) -> Optional[Listing]:
        """Retrieve a listing with a row-level lock (SELECT FOR UPDATE)."""
