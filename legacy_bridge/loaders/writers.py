"""Writers for client, business and transaction entities."""

from typing import Any, Dict

from .base import EntityWriter, WriteContext
from ..models.record import ProcessedRecord, TargetEntity


class ClientWriter(EntityWriter):
    """Writes client records."""

    entity_type = TargetEntity.CLIENT
    required_fields = ("name",)

    def build_payload(self, record: ProcessedRecord, context: WriteContext) -> Dict[str, Any]:
        data = record.transformed_data
        return {
            "name": data.get("name"),
            "email": data.get("email"),
            "phone": data.get("phone"),
            "type": data.get("type") or "individual",
            "tin": data.get("tin"),
            "address": data.get("address"),
            **self.migration_info(record, context),
        }


class BusinessWriter(EntityWriter):
    """Writes business records."""

    entity_type = TargetEntity.BUSINESS
    required_fields = ("name",)

    def build_payload(self, record: ProcessedRecord, context: WriteContext) -> Dict[str, Any]:
        data = record.transformed_data
        return {
            "name": data.get("business_name") or data.get("company_name") or data.get("name"),
            "business_type": data.get("business_type"),
            "tin": data.get("tin"),
            "email": data.get("email"),
            "phone": data.get("phone"),
            "address": data.get("address"),
            **self.migration_info(record, context),
        }


class TransactionWriter(EntityWriter):
    """Writes transaction records."""

    entity_type = TargetEntity.TRANSACTION
    required_fields = ("date", "amount")

    def build_payload(self, record: ProcessedRecord, context: WriteContext) -> Dict[str, Any]:
        data = record.transformed_data
        return {
            "date": data.get("date"),
            "amount": data.get("amount"),
            "currency": data.get("currency"),
            "description": data.get("description"),
            "reference": data.get("reference"),
            "category": data.get("category"),
            **self.migration_info(record, context),
        }


DEFAULT_WRITERS = {
    TargetEntity.CLIENT: ClientWriter(),
    TargetEntity.BUSINESS: BusinessWriter(),
    TargetEntity.TRANSACTION: TransactionWriter(),
}
