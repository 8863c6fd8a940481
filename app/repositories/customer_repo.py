from app.repositories.base import TableRepository
from app.schemas.customer import CustomerRead


class CustomerRepository(TableRepository[CustomerRead]):
    """customers table, listed alphabetically."""

    table = "customers"
    read_model = CustomerRead
    order_by = "name"
    entity_label = "Customer"
