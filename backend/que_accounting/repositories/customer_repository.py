"""Customer repository (business-scoped)."""

from typing import List

from que_accounting.models.customer import Customer
from que_accounting.repositories.base_repo import BaseRepository


class CustomerRepository(BaseRepository[Customer]):

    def _get_model_class(self) -> type:
        return Customer

    def search(self, term: str, limit: int = 50) -> List[Customer]:
        pattern = f"%{term.strip()}%"
        return (
            self._scoped_query()
            .filter(Customer.name.ilike(pattern) | Customer.email.ilike(pattern))
            .order_by(Customer.name.asc())
            .limit(limit)
            .all()
        )
