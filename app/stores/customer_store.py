from app.repositories.customer_repo import CustomerRepository
from app.schemas.customer import CustomerCreate, CustomerRead, CustomerUpdate
from app.stores.base import EntityStore


class CustomerStore(EntityStore[CustomerRead]):
    """Customers, sorted by name on fetch."""

    create_schema = CustomerCreate
    update_schema = CustomerUpdate
    name = "customers"

    def __init__(self, repo: CustomerRepository):
        super().__init__(repo)
