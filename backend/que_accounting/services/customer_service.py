"""Customer CRUD for the resolved business."""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from que_accounting.models.customer import Customer
from que_accounting.platform.errors import NotFoundError, ValidationFailedError
from que_accounting.repositories.customer_repository import CustomerRepository

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("name", "email", "phone", "address")


class CustomerService:

    def __init__(self, session: Session, business_id: str):
        self.repository = CustomerRepository(session, business_id)

    def list(self, search: Optional[str] = None) -> List[Customer]:
        if search:
            return self.repository.search(search)
        return self.repository.get_all()

    def get(self, customer_id: str) -> Customer:
        customer = self.repository.get_by_id(customer_id)
        if customer is None:
            raise NotFoundError("Customer not found")
        return customer

    def create(self, data: Dict[str, Any]) -> Customer:
        if not (data.get("name") or "").strip():
            raise ValidationFailedError("Customer name is required")
        return self.repository.create({k: data.get(k) for k in UPDATABLE_FIELDS})

    def update(self, customer_id: str, data: Dict[str, Any]) -> Customer:
        changes = {k: v for k, v in data.items() if k in UPDATABLE_FIELDS}
        if "name" in changes and not (changes["name"] or "").strip():
            raise ValidationFailedError("Customer name cannot be empty")
        customer = self.repository.update(customer_id, changes)
        if customer is None:
            raise NotFoundError("Customer not found")
        return customer

    def delete(self, customer_id: str) -> None:
        if not self.repository.delete(customer_id):
            raise NotFoundError("Customer not found")
